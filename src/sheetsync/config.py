"""Configuration management for SheetSync."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_list(name: str, default: list[str]) -> list[str]:
    """Parse a comma-separated environment variable."""
    value = os.getenv(name)
    if value:
        return [item.strip() for item in value.split(",") if item.strip()]
    return default


class Settings(BaseModel):
    """Application settings."""

    # Source workbook location; the scheme selects the backend
    # (https -> Microsoft Graph workbook, gsheets:// -> Google Sheets, memory:// -> in-process)
    source: str = os.getenv("SHEETSYNC_SOURCE", "")
    metadata_sheet: str = os.getenv("METADATA_SHEET", "metadata")

    # Downstream record API
    records_base_url: str = os.getenv("RECORDS_BASE_URL", "")

    # OAuth token endpoint and client used for refresh-token grants
    token_url: str = os.getenv("TOKEN_URL", "")
    client_id: Optional[str] = os.getenv("CLIENT_ID")
    client_secret: Optional[str] = os.getenv("CLIENT_SECRET")
    token_resource: Optional[str] = os.getenv("TOKEN_RESOURCE")
    token_scope: Optional[str] = os.getenv("TOKEN_SCOPE")

    # Current credentials and the secret names they are persisted under after a refresh
    access_token: Optional[str] = os.getenv("ACCESS_TOKEN")
    refresh_token: Optional[str] = os.getenv("REFRESH_TOKEN")
    access_token_secret_name: str = os.getenv("ACCESS_TOKEN_SECRET_NAME", "ACCESS_TOKEN")
    refresh_token_secret_name: str = os.getenv("REFRESH_TOKEN_SECRET_NAME", "REFRESH_TOKEN")
    secrets_env_path: Path = Path(os.getenv("SECRETS_ENV_PATH", ".env"))

    # Error codes in a 401 body that mean the access token must be refreshed
    auth_expired_codes: list[str] = _parse_list(
        "AUTH_EXPIRED_CODES", ["InvalidAuthenticationToken", "invalid_token", "expired_token"]
    )

    # Google Sheets API credentials (gsheets:// sources)
    google_credentials_path: Path = Path(os.getenv("GOOGLE_CREDENTIALS_PATH", "credentials.json"))
    google_token_path: Path = Path(os.getenv("GOOGLE_TOKEN_PATH", "token.json"))

    # Run history persistence
    database_path: Path = Path(os.getenv("DATABASE_PATH", "data/sheetsync.db"))
    history_enabled: bool = os.getenv("HISTORY_ENABLED", "true").lower() == "true"

    # HTTP client timeout, the only bound on a hung downstream call
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_list("CORS_ALLOW_ORIGINS", ["*"])


settings = Settings()
