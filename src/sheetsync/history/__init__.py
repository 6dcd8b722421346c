"""Run history persistence."""

from .models import RunRecord
from .store import RunHistoryStore

__all__ = ["RunHistoryStore", "RunRecord"]
