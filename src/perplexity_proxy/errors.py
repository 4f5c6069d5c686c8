"""Exceptions raised by the Perplexity proxy."""

from typing import Optional


class PerplexityProxyError(Exception):
    """Base class for all proxy errors."""


class MissingCredentialError(PerplexityProxyError):
    """The upstream API key is not configured."""


class UpstreamError(PerplexityProxyError):
    """The upstream API call did not produce a usable result."""


class UpstreamHttpError(UpstreamError):
    """The upstream API answered with a non-2xx status."""

    def __init__(self, status: int, status_text: str, body: str):
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(f"Perplexity API error: {status} {status_text} - {body}")


class UpstreamSchemaError(UpstreamError):
    """The upstream payload is not a recognizable chat completion or job."""


class EmptyStreamError(UpstreamError):
    """A streamed response ended without a single parseable payload."""


class UnknownTransactionError(PerplexityProxyError):
    """No deep research job is recorded for a transaction id."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"No deep research job found for transaction {transaction_id!r}")


class LedgerError(PerplexityProxyError):
    """The ledger service rejected an authorize or settle request."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(message)
