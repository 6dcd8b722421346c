"""Client for the downstream record-creation API."""

import logging
from typing import Any

from .transport import AuthenticatedTransport

logger = logging.getLogger(__name__)

CREATED = 201


class RecordClient:
    """Creates records through the authenticated transport."""

    def __init__(self, base_url: str, transport: AuthenticatedTransport):
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    async def create_record(
        self, record_type: str, version: str, field_values: dict[str, str]
    ) -> Any:
        """Create one record and return the API's representation of it."""
        logger.debug(f"Creating {record_type} v{version} record with {len(field_values)} fields")
        return await self.transport.call_with_refresh(
            "POST",
            f"{self.base_url}/records",
            CREATED,
            f"Create {record_type} record",
            json={"type": record_type, "version": version, "fields": field_values},
        )
