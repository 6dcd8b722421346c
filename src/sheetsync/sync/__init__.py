"""Synchronization of unprocessed rows into the record API."""

from .models import DEFAULT_CONFIG, SyncConfig, SyncResult, SyncStatus
from .orchestrator import SyncOrchestrator, build_payload
from .runner import create_transport, run_sync

__all__ = [
    "DEFAULT_CONFIG",
    "SyncConfig",
    "SyncOrchestrator",
    "SyncResult",
    "SyncStatus",
    "build_payload",
    "create_transport",
    "run_sync",
]
