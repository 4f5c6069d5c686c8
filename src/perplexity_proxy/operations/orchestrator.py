"""Metered operations: estimate, authorize, call upstream, reconcile, settle.

Every authorized transaction is settled exactly once with amounts no larger
than what was authorized. Synchronous operations settle before returning.
A deep research job is authorized when it is created and settled by the
first poll that observes a terminal status; the authorization is kept in
the job store in between.

Nothing here retries. An upstream failure after authorization leaves the
transaction authorized but unsettled; expiring it is the ledger's concern.
"""

import logging
import time
from typing import Optional

import httpx

from ..config import settings
from ..errors import PerplexityProxyError, UnknownTransactionError
from ..jobs import JobRecord, JobStore
from ..metering import (
    Clause,
    LedgerGateway,
    Resource,
    SettlementLogger,
    citation_token_cap,
    estimate_input_tokens,
    estimate_input_tokens_from_messages,
    estimate_search_queries,
    make_clause,
    reasoning_token_cap,
    reconcile,
    zero_settlement,
)
from ..upstream import (
    DEEP_RESEARCH_MODEL,
    AsyncJobStatus,
    PerplexityClient,
    completion_to_dict,
    first_answer,
    usage_of,
)
from .models import (
    AskPerplexityInput,
    AskPerplexityOutput,
    AuthorizedCaps,
    ChatCompletionsInput,
    ChatCompletionsOutput,
    DeepResearchInput,
    DeepResearchOutput,
    DeepResearchResultInput,
    DeepResearchResultOutput,
)

logger = logging.getLogger(__name__)

PENDING_STATUSES = (AsyncJobStatus.CREATED, AsyncJobStatus.IN_PROGRESS)


class PerplexityOperations:
    """The four metered Perplexity operations."""

    def __init__(
        self,
        client: PerplexityClient,
        ledger: LedgerGateway,
        job_store: JobStore,
        vendor_id: Optional[str] = None,
        settlement_logger: Optional[SettlementLogger] = None,
        default_max_tokens: Optional[int] = None,
    ):
        self.client = client
        self.ledger = ledger
        self.job_store = job_store
        self.vendor_id = vendor_id if vendor_id is not None else settings.ledger_vendor_id
        self.settlement_logger = settlement_logger
        self.default_max_tokens = default_max_tokens or settings.default_max_tokens

    async def _authorize(self, operation: str, clauses: list[Clause]):
        authorization = await self.ledger.authorize(clauses)
        logger.info(
            f"{operation}: authorized transaction {authorization.transaction_id} "
            f"({', '.join(f'{c.clause_id}={c.amount}' for c in clauses)})"
        )
        return authorization

    async def _settle(
        self,
        operation: str,
        transaction_id: str,
        model: str,
        authorized: list[Clause],
        settled: list[Clause],
    ):
        await self.ledger.settle(transaction_id, self.vendor_id, settled)
        logger.info(
            f"{operation}: settled transaction {transaction_id} "
            f"({', '.join(f'{c.clause_id}={c.amount}' for c in settled)})"
        )
        if self.settlement_logger:
            self.settlement_logger.log_settlement(
                operation=operation,
                transaction_id=transaction_id,
                model=model,
                authorized=authorized,
                settled=settled,
            )

    @staticmethod
    def _log_unsettled(operation: str, transaction_id: str, error: Exception):
        logger.warning(
            f"{operation}: upstream call failed, transaction {transaction_id} "
            f"left authorized but unsettled: {error}"
        )

    async def ask(self, request: AskPerplexityInput) -> AskPerplexityOutput:
        """Ask a single question over a streamed completion."""
        started_at = time.monotonic()
        model = request.model
        output_cap = request.max_tokens or self.default_max_tokens
        input_tokens = estimate_input_tokens(request.query)

        authorized = [
            make_clause(model, Resource.INPUT_TOKEN, input_tokens),
            make_clause(model, Resource.OUTPUT_TOKEN, output_cap),
        ]
        authorization = await self._authorize("ask", authorized)

        body = {
            "model": model,
            "messages": [{"role": "user", "content": request.query}],
            **request.to_request_options(),
            "max_tokens": output_cap,
            "stream": True,
        }
        try:
            result = await self.client.chat_completion(body, started_at=started_at)
        except (PerplexityProxyError, httpx.HTTPError) as e:
            self._log_unsettled("ask", authorization.transaction_id, e)
            raise

        usage = usage_of(result)
        settled = reconcile(
            authorized,
            {
                Resource.INPUT_TOKEN: usage.prompt_tokens,
                Resource.OUTPUT_TOKEN: usage.completion_tokens,
            },
        )
        await self._settle("ask", authorization.transaction_id, model, authorized, settled)

        return AskPerplexityOutput(
            answer=first_answer(result),
            raw=completion_to_dict(result),
            input_tokens=input_tokens,
            total_amount=authorization.total_amount,
        )

    async def chat_completions(self, request: ChatCompletionsInput) -> ChatCompletionsOutput:
        """Run a non-streamed chat completion over the caller's messages."""
        model = request.model
        output_cap = request.max_tokens or self.default_max_tokens
        input_tokens = estimate_input_tokens_from_messages(request.messages)

        authorized = [
            make_clause(model, Resource.INPUT_TOKEN, input_tokens),
            make_clause(model, Resource.OUTPUT_TOKEN, output_cap),
        ]
        authorization = await self._authorize("chat_completions", authorized)

        body = {
            "model": model,
            "messages": [m.model_dump(exclude_none=True) for m in request.messages],
            **request.to_request_options(),
            "max_tokens": output_cap,
            "stream": False,
        }
        try:
            result = await self.client.chat_completion(body)
        except (PerplexityProxyError, httpx.HTTPError) as e:
            self._log_unsettled("chat_completions", authorization.transaction_id, e)
            raise

        usage = usage_of(result)
        settled = reconcile(
            authorized,
            {
                Resource.INPUT_TOKEN: usage.prompt_tokens,
                Resource.OUTPUT_TOKEN: usage.completion_tokens,
            },
        )
        await self._settle(
            "chat_completions", authorization.transaction_id, model, authorized, settled
        )

        return ChatCompletionsOutput(
            answer=first_answer(result) or None,
            raw=completion_to_dict(result),
        )

    async def deep_research(self, request: DeepResearchInput) -> DeepResearchOutput:
        """Authorize and submit a deep research job; settlement happens on poll."""
        model = DEEP_RESEARCH_MODEL
        output_cap = request.max_tokens or self.default_max_tokens
        caps = AuthorizedCaps(
            input_tokens=estimate_input_tokens_from_messages(request.messages),
            output_tokens=output_cap,
            citation_tokens=citation_token_cap(output_cap),
            reasoning_tokens=reasoning_token_cap(output_cap),
            search_queries=estimate_search_queries(request.reasoning_effort),
        )

        authorized = [
            make_clause(model, Resource.INPUT_TOKEN, caps.input_tokens),
            make_clause(model, Resource.OUTPUT_TOKEN, caps.output_tokens),
            make_clause(model, Resource.CITATION_TOKEN, caps.citation_tokens),
            make_clause(model, Resource.REASONING_TOKEN, caps.reasoning_tokens),
            make_clause(model, Resource.SEARCH_QUERY, caps.search_queries),
        ]
        authorization = await self._authorize("deep_research", authorized)

        body = {
            "model": model,
            "messages": [m.model_dump(exclude_none=True) for m in request.messages],
            **request.to_request_options(),
            "max_tokens": output_cap,
        }
        try:
            job = await self.client.create_async_job(body)
        except (PerplexityProxyError, httpx.HTTPError) as e:
            self._log_unsettled("deep_research", authorization.transaction_id, e)
            raise

        record = JobRecord(authorize_clauses=authorized, async_resp=job)
        await self.job_store.put(authorization.transaction_id, record.serialize())
        logger.info(
            f"deep_research: job {job.id} recorded under transaction {authorization.transaction_id}"
        )

        return DeepResearchOutput(
            request=job,
            transaction_id=authorization.transaction_id,
            total_amount=authorization.total_amount,
            authorized_caps=caps,
        )

    async def get_deep_research_result(
        self, request: DeepResearchResultInput
    ) -> DeepResearchResultOutput:
        """Poll a deep research job and settle once it reaches a terminal status.

        Raises:
            UnknownTransactionError: If no job was recorded for the transaction
        """
        transaction_id = request.transaction_id
        stored = await self.job_store.get(transaction_id)
        if stored is None:
            raise UnknownTransactionError(transaction_id)
        record = JobRecord.deserialize(stored)

        job = await self.client.get_async_job(record.async_resp.id)
        logger.info(f"deep_research: job {job.id} status {job.status.value}")

        if job.status in PENDING_STATUSES:
            return DeepResearchResultOutput(status=job.status, settled=False)

        authorized = record.authorize_clauses
        model = record.async_resp.model

        if job.status == AsyncJobStatus.FAILED or job.response is None:
            settled = zero_settlement(authorized)
            await self._settle("deep_research_result", transaction_id, model, authorized, settled)
            return DeepResearchResultOutput(
                status=job.status,
                error_message=job.error_message,
                settled=True,
            )

        usage = usage_of(job.response)
        settled = reconcile(
            authorized,
            {
                Resource.INPUT_TOKEN: usage.prompt_tokens,
                Resource.OUTPUT_TOKEN: usage.completion_tokens,
                Resource.CITATION_TOKEN: usage.citation_tokens or 0,
                Resource.REASONING_TOKEN: usage.reasoning_tokens or 0,
                Resource.SEARCH_QUERY: usage.num_search_queries or 0,
            },
        )
        await self._settle("deep_research_result", transaction_id, model, authorized, settled)

        return DeepResearchResultOutput(
            status=job.status,
            response=completion_to_dict(job.response),
            error_message=job.error_message,
            settled=True,
        )
