"""Select a tabular backend from a source location."""

import json
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from ..config import Settings, settings as default_settings
from ..errors import UnsupportedSourceError
from ..transport import AuthenticatedTransport
from .base import TabularStore

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("https", "gsheets", "memory")


def source_scheme(source: str) -> str:
    """Return the scheme of a source location, failing on unsupported ones."""
    scheme = urlparse(source).scheme.lower() if source else ""
    if scheme not in SUPPORTED_SCHEMES:
        raise UnsupportedSourceError(
            f"Unsupported source {source!r}; expected one of: "
            + ", ".join(f"{s}://" for s in SUPPORTED_SCHEMES)
        )
    return scheme


def open_store(
    source: str,
    transport: Optional[AuthenticatedTransport] = None,
    settings: Optional[Settings] = None,
) -> TabularStore:
    """Create the store for ``source``.

    - ``https://.../workbook``: Microsoft Graph workbook (needs ``transport``)
    - ``gsheets://<spreadsheet id>``: Google Sheets
    - ``memory://[<path to workbook json>]``: in-process workbook
    """
    settings = settings or default_settings
    scheme = source_scheme(source)
    parsed = urlparse(source)

    if scheme == "https":
        if transport is None or transport.credentials is None:
            raise UnsupportedSourceError("Graph workbook sources need an authenticated transport")
        from .graph import GraphWorkbookStore

        return GraphWorkbookStore(source, transport)

    if scheme == "gsheets":
        if not parsed.netloc:
            raise UnsupportedSourceError(f"Missing spreadsheet id in {source!r}")
        from .gsheets import GoogleSheetsStore

        return GoogleSheetsStore(
            parsed.netloc,
            credentials_path=settings.google_credentials_path,
            token_path=settings.google_token_path,
        )

    from .memory import MemoryWorkbookStore

    seed = parsed.netloc + parsed.path
    if not seed:
        return MemoryWorkbookStore()
    with open(Path(seed)) as f:
        sheets = json.load(f)
    logger.info(f"Loaded in-memory workbook from {seed} ({len(sheets)} sheets)")
    return MemoryWorkbookStore(sheets)
