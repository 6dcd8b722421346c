"""Wire settings into a ready-to-run synchronization."""

import logging
from typing import Any, Optional

from ..config import Settings, settings as default_settings
from ..history import RunHistoryStore
from ..records import RecordClient
from ..transport import AuthenticatedTransport, CredentialState, DotenvSecretStore
from .models import SyncResult
from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


def create_transport(settings: Settings) -> AuthenticatedTransport:
    """Build the transport, with refreshable credentials when an access token is configured."""
    credentials = None
    if settings.access_token:
        credentials = CredentialState(
            access_token=settings.access_token,
            refresh_token=settings.refresh_token,
            token_url=settings.token_url,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            resource=settings.token_resource,
            scope=settings.token_scope,
            secret_store=DotenvSecretStore(settings.secrets_env_path),
            access_token_name=settings.access_token_secret_name,
            refresh_token_name=settings.refresh_token_secret_name,
        )
    return AuthenticatedTransport(
        credentials,
        timeout=settings.http_timeout_seconds,
        auth_expired_codes=settings.auth_expired_codes,
    )


async def run_sync(
    settings: Optional[Settings] = None,
    source: Optional[str] = None,
    defaults: Optional[dict[str, Any]] = None,
) -> list[SyncResult]:
    """Run one synchronization with everything built from settings."""
    settings = settings or default_settings
    source = source or settings.source

    transport = create_transport(settings)
    history = None
    if settings.history_enabled:
        history = RunHistoryStore(settings.database_path)
        await history.initialize()

    orchestrator = SyncOrchestrator(
        source=source,
        records=RecordClient(settings.records_base_url, transport),
        transport=transport,
        defaults=defaults,
        metadata_sheet=settings.metadata_sheet,
        history=history,
        settings=settings,
    )

    logger.info(f"Starting synchronization of {source}")
    try:
        return await orchestrator.run()
    finally:
        await transport.close()
        if history is not None:
            await history.close()
