"""Usage estimation, clause reconciliation and ledger access."""

from .clauses import Clause, Resource, clause_id, make_clause, reconcile, zero_settlement
from .estimator import (
    citation_token_cap,
    estimate_input_tokens,
    estimate_input_tokens_from_messages,
    estimate_search_queries,
    reasoning_token_cap,
)
from .ledger import AuthorizeResult, HttpLedgerGateway, LedgerGateway
from .usage_log import SettlementLogger, SettlementRecord

__all__ = [
    "Clause",
    "Resource",
    "clause_id",
    "make_clause",
    "reconcile",
    "zero_settlement",
    "citation_token_cap",
    "estimate_input_tokens",
    "estimate_input_tokens_from_messages",
    "estimate_search_queries",
    "reasoning_token_cap",
    "AuthorizeResult",
    "HttpLedgerGateway",
    "LedgerGateway",
    "SettlementLogger",
    "SettlementRecord",
]
