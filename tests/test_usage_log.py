"""Tests for the settlement audit log."""

import json

from perplexity_proxy.metering import SettlementLogger
from perplexity_proxy.metering.clauses import Resource, make_clause


def _log_one(logger: SettlementLogger, transaction_id: str = "tx-1", settled_output: int = 40):
    authorized = [
        make_clause("sonar", Resource.INPUT_TOKEN, 3),
        make_clause("sonar", Resource.OUTPUT_TOKEN, 16000),
    ]
    settled = [
        make_clause("sonar", Resource.INPUT_TOKEN, 3),
        make_clause("sonar", Resource.OUTPUT_TOKEN, settled_output),
    ]
    return logger.log_settlement(
        operation="ask",
        transaction_id=transaction_id,
        model="sonar",
        authorized=authorized,
        settled=settled,
    )


class TestSettlementLogger:
    """Test SettlementLogger."""

    def test_writes_one_json_line_per_settlement(self, tmp_path):
        log_path = tmp_path / "logs" / "settlements.jsonl"
        logger = SettlementLogger(log_path)

        _log_one(logger)
        _log_one(logger, transaction_id="tx-2")

        lines = log_path.read_text().splitlines()
        assert len(lines) == 2
        record = json.loads(lines[0])
        assert record["operation"] == "ask"
        assert record["transaction_id"] == "tx-1"
        assert record["authorized"] == {"sonar:input-token": 3, "sonar:output-token": 16000}
        assert record["settled"] == {"sonar:input-token": 3, "sonar:output-token": 40}
        assert "timestamp" in record

    def test_disabled_logger_writes_nothing(self, tmp_path):
        log_path = tmp_path / "settlements.jsonl"
        logger = SettlementLogger(log_path, enabled=False)

        record = _log_one(logger)

        assert not log_path.exists()
        assert record.settled == {"sonar:input-token": 3, "sonar:output-token": 40}

    def test_logger_holds_no_records_in_memory(self, tmp_path):
        logger = SettlementLogger(tmp_path / "settlements.jsonl")

        for i in range(5):
            _log_one(logger, transaction_id=f"tx-{i}")

        assert not hasattr(logger, "session_records")
        assert len((tmp_path / "settlements.jsonl").read_text().splitlines()) == 5

    def test_write_failure_does_not_raise(self, tmp_path):
        log_dir = tmp_path / "blocked"
        logger = SettlementLogger(log_dir / "settlements.jsonl")
        logger.log_path = log_dir

        record = _log_one(logger)

        assert record.transaction_id == "tx-1"
