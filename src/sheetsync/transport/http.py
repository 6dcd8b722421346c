"""HTTP calls with status checking and transparent token refresh."""

import logging
from typing import Any, Iterable, Optional, Union

import httpx

from ..errors import AuthExpiredError, UnexpectedStatusError
from .credentials import CredentialState

logger = logging.getLogger(__name__)

ExpectedStatus = Union[int, Iterable[int]]

DEFAULT_AUTH_EXPIRED_CODES = ("InvalidAuthenticationToken", "invalid_token", "expired_token")


def _expected_set(expected_status: ExpectedStatus) -> set[int]:
    if isinstance(expected_status, int):
        return {expected_status}
    return set(expected_status)


def error_code(body: Any) -> Optional[str]:
    """Pull the machine-readable error code out of an error body.

    Handles both ``{"error": {"code": ...}}`` (Graph style) and
    ``{"error": "invalid_token"}`` (OAuth style).
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        return str(code) if code is not None else None
    if isinstance(error, str):
        return error
    code = body.get("code")
    return str(code) if code is not None else None


class AuthenticatedTransport:
    """Wraps an ``httpx.AsyncClient`` with the call contract used by SheetSync.

    Every call names the statuses it expects; anything else raises
    :class:`UnexpectedStatusError` carrying the status and parsed body.
    :meth:`call_with_refresh` additionally recovers once from an expired
    access token.
    """

    def __init__(
        self,
        credentials: Optional[CredentialState] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        auth_expired_codes: Iterable[str] = DEFAULT_AUTH_EXPIRED_CODES,
    ):
        self.credentials = credentials
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.auth_expired_codes = set(auth_expired_codes)

    async def call(
        self,
        method: str,
        url: str,
        expected_status: ExpectedStatus,
        operation: str,
        expects_body: bool = True,
        **kwargs,
    ) -> Any:
        """Issue a request and return its parsed JSON body (or ``None``)."""
        logger.debug(f"{operation}: {method} {url}")
        response = await self._client.request(method, url, **kwargs)

        body = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                if expects_body:
                    logger.warning(
                        f"{operation}: response body is not JSON (HTTP {response.status_code})"
                    )
        elif expects_body:
            logger.warning(f"{operation}: expected a response body, got none (HTTP {response.status_code})")

        if response.status_code not in _expected_set(expected_status):
            raise UnexpectedStatusError(response.status_code, operation, body)
        return body

    def is_auth_expired(self, error: UnexpectedStatusError) -> bool:
        return error.status == 401 and error_code(error.body) in self.auth_expired_codes

    async def call_with_refresh(
        self,
        method: str,
        url: str,
        expected_status: ExpectedStatus,
        operation: str,
        expects_body: bool = True,
        headers: Optional[dict[str, str]] = None,
        **kwargs,
    ) -> Any:
        """Call with the current access token, refreshing and retrying once on expiry."""
        if self.credentials is None:
            raise RuntimeError("call_with_refresh requires credentials")

        token = self.credentials.access_token
        try:
            return await self.call(
                method,
                url,
                expected_status,
                operation,
                expects_body,
                headers=self._auth_headers(headers),
                **kwargs,
            )
        except UnexpectedStatusError as e:
            if not self.is_auth_expired(e):
                raise
            expired = AuthExpiredError(e.status, e.operation, e.body)

        logger.info(f"{operation}: access token expired ({error_code(expired.body)}), refreshing")
        # A failed refresh or retry propagates, chained to the expiry; there is no second refresh.
        try:
            await self.credentials.refresh(self._client, stale_token=token)
            return await self.call(
                method,
                url,
                expected_status,
                operation,
                expects_body,
                headers=self._auth_headers(headers),
                **kwargs,
            )
        except UnexpectedStatusError as retry_error:
            raise retry_error from expired

    def _auth_headers(self, headers: Optional[dict[str, str]]) -> dict[str, str]:
        merged = dict(headers or {})
        merged["Authorization"] = self.credentials.authorization
        return merged

    async def close(self):
        await self._client.aclose()
