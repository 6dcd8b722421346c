"""Data models for run history."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class RunRecord(BaseModel):
    """A completed synchronization run."""

    id: str
    source: str
    started_at: datetime
    finished_at: datetime
    succeeded: int = 0
    failed: int = 0
    results: list[dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return self.succeeded + self.failed
