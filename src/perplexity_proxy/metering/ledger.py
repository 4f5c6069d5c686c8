"""Budget ledger gateway.

The ledger reserves spend on ``authorize`` and closes the transaction on
``settle``. Its own guarantees (expiry of stale authorizations, rejecting a
second settle) are relied upon, not re-implemented here.
"""

import logging
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings, settings
from ..errors import LedgerError
from .clauses import Clause, ensure_unique

logger = logging.getLogger(__name__)


class AuthorizeResult(BaseModel):
    """Result of reserving spend against the ledger."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    transaction_id: str = Field(alias="transactionId")
    total_amount: str = Field(default="0", alias="totalAmount")


class LedgerGateway(Protocol):
    """Interface to the external budget ledger."""

    async def authorize(self, clauses: list[Clause]) -> AuthorizeResult:
        ...

    async def settle(
        self,
        transaction_id: str,
        vendor_id: Optional[str],
        clauses: list[Clause],
    ) -> Any:
        ...


class HttpLedgerGateway:
    """Ledger gateway calling CONTRACT_AUTHORIZE / CONTRACT_SETTLE over HTTP."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or settings
        if not self.config.ledger_url:
            raise ValueError("LEDGER_URL is required to use the HTTP ledger gateway")
        self.base_url = self.config.ledger_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self.config.http_timeout_seconds
        )

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.ledger_api_token:
            headers["Authorization"] = f"Bearer {self.config.ledger_api_token}"
        return headers

    async def _post(self, action: str, payload: dict) -> Any:
        response = await self._client.post(
            f"{self.base_url}/{action}",
            headers=self._headers(),
            json=payload,
        )
        if not response.is_success:
            raise LedgerError(
                f"Ledger {action} failed: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
                body=response.text,
            )
        return response.json()

    async def authorize(self, clauses: list[Clause]) -> AuthorizeResult:
        """Reserve an upper-bound spend and return the new transaction id."""
        payload = {"clauses": [c.to_wire() for c in ensure_unique(clauses)]}
        data = await self._post("CONTRACT_AUTHORIZE", payload)
        return AuthorizeResult.model_validate(data)

    async def settle(
        self,
        transaction_id: str,
        vendor_id: Optional[str],
        clauses: list[Clause],
    ) -> Any:
        """Report actual consumption for a transaction."""
        payload = {
            "transactionId": transaction_id,
            "vendorId": vendor_id,
            "clauses": [c.to_wire() for c in ensure_unique(clauses)],
        }
        return await self._post("CONTRACT_SETTLE", payload)
