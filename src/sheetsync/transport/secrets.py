"""Persistence of refreshed credentials."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from dotenv import set_key

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """Somewhere refreshed credentials are written so the next run can use them."""

    @abstractmethod
    def persist(self, name: str, value: str):
        """Store ``value`` under ``name``."""
        pass


class DotenvSecretStore(SecretStore):
    """Writes secrets into a dotenv file."""

    def __init__(self, env_path: Path):
        self.env_path = env_path

    def persist(self, name: str, value: str):
        self.env_path.parent.mkdir(parents=True, exist_ok=True)
        self.env_path.touch(exist_ok=True)
        set_key(str(self.env_path), name, value, quote_mode="always")
        logger.info(f"Persisted secret {name} to {self.env_path}")


class MemorySecretStore(SecretStore):
    """Keeps secrets in a dict; used for dry runs and tests."""

    def __init__(self):
        self.values: dict[str, str] = {}

    def persist(self, name: str, value: str):
        self.values[name] = value
