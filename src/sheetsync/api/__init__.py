"""HTTP API for triggering synchronizations."""

from .app import create_app

__all__ = ["create_app"]
