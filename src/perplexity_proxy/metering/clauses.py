"""Priced resource clauses used to authorize and settle ledger transactions."""

from enum import Enum
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field


class Resource(str, Enum):
    """Resources metered per model."""

    INPUT_TOKEN = "input-token"
    OUTPUT_TOKEN = "output-token"
    CITATION_TOKEN = "citation-token"
    REASONING_TOKEN = "reasoning-token"
    SEARCH_QUERY = "search-query"


class Clause(BaseModel):
    """A single priced line item, ``<model>:<resource>`` with an amount."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    clause_id: str = Field(alias="clauseId")
    amount: int = Field(ge=0)

    @property
    def resource(self) -> Resource:
        return Resource(self.clause_id.rsplit(":", 1)[-1])

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


def clause_id(model: str, resource: Resource) -> str:
    """Build the composite clause key for a model and resource."""
    return f"{model}:{resource.value}"


def make_clause(model: str, resource: Resource, amount: int) -> Clause:
    return Clause(clause_id=clause_id(model, resource), amount=max(0, amount))


def ensure_unique(clauses: Iterable[Clause]) -> list[Clause]:
    """Return the clauses as a list, rejecting duplicate clause ids."""
    result = list(clauses)
    seen: set[str] = set()
    for clause in result:
        if clause.clause_id in seen:
            raise ValueError(f"Duplicate clause id in one ledger call: {clause.clause_id}")
        seen.add(clause.clause_id)
    return result


def reconcile(authorized: Iterable[Clause], actual: Mapping[Resource, int]) -> list[Clause]:
    """Settlement clauses for an authorization given actual consumption.

    Each settled amount is ``min(actual, authorized)``; clauses with no
    reported consumption settle at zero. The result has exactly the clause
    ids that were authorized.

    Args:
        authorized: Clauses sent with the authorize call
        actual: Actual consumption keyed by resource

    Returns:
        Clauses to send with the settle call
    """
    return [
        Clause(
            clause_id=clause.clause_id,
            amount=max(0, min(int(actual.get(clause.resource) or 0), clause.amount)),
        )
        for clause in ensure_unique(authorized)
    ]


def zero_settlement(authorized: Iterable[Clause]) -> list[Clause]:
    """Settle every authorized clause at zero (full refund)."""
    return reconcile(authorized, {})
