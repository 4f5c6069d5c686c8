"""Deep research job persistence."""

from .models import JobRecord
from .store import JobStore, SqliteJobStore

__all__ = ["JobRecord", "JobStore", "SqliteJobStore"]
