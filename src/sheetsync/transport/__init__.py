"""Authenticated HTTP transport."""

from .credentials import CredentialState
from .http import AuthenticatedTransport, error_code
from .secrets import DotenvSecretStore, MemorySecretStore, SecretStore

__all__ = [
    "AuthenticatedTransport",
    "CredentialState",
    "DotenvSecretStore",
    "MemorySecretStore",
    "SecretStore",
    "error_code",
]
