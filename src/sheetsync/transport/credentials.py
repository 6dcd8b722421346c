"""Process-scoped OAuth credential state and refresh-token exchange."""

import asyncio
import logging
from typing import Optional

import httpx

from ..errors import UnexpectedStatusError
from .secrets import SecretStore

logger = logging.getLogger(__name__)


class CredentialState:
    """Current access and refresh tokens for one run.

    The state is owned by the transport that uses it. Tokens only change
    through :meth:`refresh`, and refreshes are serialized: a refresh token
    exchanged twice concurrently can be revoked by the provider.
    """

    def __init__(
        self,
        access_token: str,
        refresh_token: Optional[str],
        token_url: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        resource: Optional[str] = None,
        scope: Optional[str] = None,
        secret_store: Optional[SecretStore] = None,
        access_token_name: str = "ACCESS_TOKEN",
        refresh_token_name: str = "REFRESH_TOKEN",
    ):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.resource = resource
        self.scope = scope
        self.secret_store = secret_store
        self.access_token_name = access_token_name
        self.refresh_token_name = refresh_token_name
        self.refresh_count = 0
        self._lock = asyncio.Lock()

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"

    def _grant(self) -> dict[str, str]:
        data = {"grant_type": "refresh_token", "refresh_token": self.refresh_token}
        optional = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "resource": self.resource,
            "scope": self.scope,
        }
        data.update({key: value for key, value in optional.items() if value})
        return data

    async def refresh(self, client: httpx.AsyncClient, stale_token: Optional[str] = None) -> str:
        """Exchange the refresh token for a new token pair.

        ``stale_token`` is the access token the caller saw fail. If another
        refresh already replaced it while this call waited for the lock, the
        new token is returned without a second exchange.
        """
        async with self._lock:
            if stale_token is not None and self.access_token != stale_token:
                logger.info("Access token was refreshed by a concurrent call, reusing it")
                return self.access_token

            if not self.refresh_token:
                raise UnexpectedStatusError(401, "Refresh access token", "No refresh token available")

            logger.info(f"Refreshing access token via {self.token_url}")
            response = await client.post(self.token_url, data=self._grant())
            try:
                body = response.json()
            except ValueError:
                body = None
            if response.status_code != 200 or not isinstance(body, dict) or "access_token" not in body:
                raise UnexpectedStatusError(response.status_code, "Refresh access token", body)

            self.access_token = body["access_token"]
            self.refresh_token = body.get("refresh_token") or self.refresh_token
            self.refresh_count += 1

            if self.secret_store is not None:
                self.secret_store.persist(self.access_token_name, self.access_token)
                self.secret_store.persist(self.refresh_token_name, self.refresh_token)

            logger.info("Access token refreshed")
            return self.access_token
