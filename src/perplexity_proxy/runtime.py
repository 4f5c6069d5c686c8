"""Wiring of clients, stores and tools for a running proxy."""

import logging
from typing import Optional

from .config import Settings, settings
from .jobs import SqliteJobStore
from .metering import HttpLedgerGateway, SettlementLogger
from .operations import PerplexityOperations
from .tools import PerplexityTools, ToolRegistry
from .upstream import PerplexityClient

logger = logging.getLogger(__name__)


class ProxyRuntime:
    """Owns the long-lived resources behind the tool surface."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.client = PerplexityClient(self.config)
        self.ledger = HttpLedgerGateway(self.config)
        self.job_store = SqliteJobStore(self.config.job_store_path)
        self.settlement_logger = SettlementLogger(
            log_path=self.config.usage_log_path,
            enabled=self.config.enable_usage_logging,
        )
        self.operations = PerplexityOperations(
            client=self.client,
            ledger=self.ledger,
            job_store=self.job_store,
            vendor_id=self.config.ledger_vendor_id,
            settlement_logger=self.settlement_logger,
            default_max_tokens=self.config.default_max_tokens,
        )

        self.registry = ToolRegistry()
        PerplexityTools(self.operations).register(self.registry)

    async def initialize(self):
        await self.job_store.initialize()
        logger.info(f"Job store ready at {self.job_store.db_path}")

    async def shutdown(self):
        await self.job_store.close()
        await self.client.aclose()
        await self.ledger.aclose()
