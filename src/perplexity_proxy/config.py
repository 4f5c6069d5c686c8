"""Configuration management for the Perplexity proxy."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import MissingCredentialError

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


class Settings(BaseModel):
    """Application settings."""

    # Upstream chat/search API
    perplexity_api_key: Optional[str] = os.getenv("PERPLEXITY_API_KEY")
    perplexity_base_url: str = os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai")
    http_timeout_seconds: float = float(os.getenv("PERPLEXITY_HTTP_TIMEOUT", "120"))

    # Wall-clock window for reading a streamed completion
    stream_deadline_seconds: float = float(os.getenv("STREAM_DEADLINE_SECONDS", "55"))

    # Output-token cap used when the caller does not send max_tokens
    default_max_tokens: int = int(os.getenv("DEFAULT_MAX_TOKENS", "16000"))

    # Budget ledger (authorize / settle)
    ledger_url: Optional[str] = os.getenv("LEDGER_URL")
    ledger_api_token: Optional[str] = os.getenv("LEDGER_API_TOKEN")
    ledger_vendor_id: Optional[str] = os.getenv("LEDGER_VENDOR_ID")

    # Deep research job records
    job_store_path: Path = Path(os.getenv("JOB_STORE_PATH", "data/perplexity_jobs.db"))

    # Settlement audit log
    enable_usage_logging: bool = os.getenv("ENABLE_USAGE_LOGGING", "true").lower() == "true"
    usage_log_path: Path = Path(os.getenv("USAGE_LOG_PATH", "logs/settlements.jsonl"))

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()


def ensure_api_key(config: Settings) -> str:
    """Return the upstream API key or fail before any request is made."""
    if not config.perplexity_api_key:
        raise MissingCredentialError(
            "Missing PERPLEXITY_API_KEY in environment. Add it to your .env file."
        )
    return config.perplexity_api_key


settings = Settings()
