"""Data models for synchronization runs."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError

DEFAULT_CONFIG: dict[str, str] = {
    "record_type": "",
    "record_version": "1",
    "incoming_sheet": "incoming",
    "incoming_table": "IncomingTable",
    "status_column": "Processed",
    "message_column": "Result",
    "max_rows": "500",
    "mapping_sheet": "mapping",
    "mapping_key_column": "Source",
    "mapping_value_column": "Destination",
    "metadata_key_column": "Key",
    "metadata_value_column": "Value",
}

SUCCESS_VALUES = ("Y", "SUCCESS")
FAILURE_FLAG = "N"


class SyncStatus(str, Enum):
    """Outcome of processing one row."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class SyncResult(BaseModel):
    """What happened to one input row. Never modified once created."""

    model_config = ConfigDict(frozen=True)

    row_range: str
    status: SyncStatus
    response: Optional[Any] = None
    error_message: Optional[str] = None

    def to_output(self) -> dict[str, Any]:
        """The row's entry in the run output."""
        output: dict[str, Any] = {"row_range": self.row_range, "status": self.status.value}
        if self.status is SyncStatus.SUCCESS:
            output["response"] = self.response
        else:
            output["error_message"] = self.error_message
        return output


def status_values(result: SyncResult) -> list[str]:
    """The status and message cells written back for a result."""
    if result.status is SyncStatus.SUCCESS:
        return list(SUCCESS_VALUES)
    return [FAILURE_FLAG, f"FAILURE: {result.error_message}"]


class SyncConfig(BaseModel):
    """Merged run configuration (defaults overlaid with the metadata sheet)."""

    model_config = ConfigDict(extra="allow")

    record_type: str
    record_version: str = "1"
    incoming_sheet: str = "incoming"
    incoming_table: str = "IncomingTable"
    status_column: str = "Processed"
    message_column: str = "Result"
    max_rows: int = Field(default=500, ge=1)
    mapping_sheet: str = "mapping"
    mapping_key_column: str = "Source"
    mapping_value_column: str = "Destination"

    @field_validator("record_type", "incoming_sheet", "status_column", "message_column", "mapping_sheet")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> "SyncConfig":
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sync configuration: {e}") from e


def validate_field_mapping(mapping: dict[str, Any]) -> dict[str, str]:
    """Check a source-column -> destination-field mapping loaded from a sheet."""
    if not mapping:
        raise ConfigurationError("Field mapping is empty; nothing to send downstream")
    return {str(source): str(destination) for source, destination in mapping.items()}
