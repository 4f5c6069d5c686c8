"""Persisted state joining a deep research job to its ledger authorization."""

from pydantic import BaseModel, ConfigDict, Field

from ..metering.clauses import Clause
from ..upstream.models import AsyncJob


class JobRecord(BaseModel):
    """Authorization and job descriptor stored under a transaction id."""

    model_config = ConfigDict(populate_by_name=True)

    authorize_clauses: list[Clause] = Field(alias="authorizeClauses")
    async_resp: AsyncJob = Field(alias="asyncResp")

    def serialize(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def deserialize(cls, value: str) -> "JobRecord":
        return cls.model_validate_json(value)
