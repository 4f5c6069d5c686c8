"""JSONL audit log of ledger settlements."""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from .clauses import Clause

logger = logging.getLogger(__name__)


@dataclass
class SettlementRecord:
    """Record of a single settle call."""

    timestamp: str
    operation: str
    transaction_id: str
    model: str
    authorized: Dict[str, int]
    settled: Dict[str, int]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class SettlementLogger:
    """Appends one JSON line per settlement."""

    def __init__(self, log_path: Path, enabled: bool = True):
        """Initialize the logger.

        Args:
            log_path: Path to the JSONL log file
            enabled: Whether records are written to disk
        """
        self.log_path = log_path
        self.enabled = enabled

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_settlement(
        self,
        operation: str,
        transaction_id: str,
        model: str,
        authorized: list[Clause],
        settled: list[Clause],
    ) -> SettlementRecord:
        """Record a settlement against its authorization."""
        record = SettlementRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            transaction_id=transaction_id,
            model=model,
            authorized={c.clause_id: c.amount for c in authorized},
            settled={c.clause_id: c.amount for c in settled},
        )

        if self.enabled:
            self._write_to_log(record)

        return record

    def _write_to_log(self, record: SettlementRecord):
        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write settlement log: {e}")
