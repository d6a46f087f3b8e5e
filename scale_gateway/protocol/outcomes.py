"""
Pydantic models for decoded scale responses and session outcomes.

Serialized field names (camelCase aliases) and the ``type`` values are the
public payload contract of every device operation.
"""

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorReason(str, Enum):
    """Why an operation produced an error outcome (not serialized)."""
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    UNRECOGNIZED = "unrecognized"
    INCOMPLETE = "incomplete"
    OUT_OF_RANGE = "out_of_range"


class OutcomeModel(BaseModel):
    """Base class for all outcome payloads."""

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(by_alias=True)


class StatusFlags(OutcomeModel):
    """Facets of the 11-bit status field carried by a weight response."""
    zero: bool = False
    tare: bool = False
    stable: bool = False
    net: bool = False
    tare_mode: Literal["normal", "preset"] = Field("normal", alias="tareMode")
    high_resolution: bool = Field(False, alias="highResolution")
    initial_zero: bool = Field(False, alias="initialZero")
    overload: bool = False
    negative: bool = False
    range: Literal[1, 2] = 1
    preset_tare: bool = Field(False, alias="presetTare")


class StatusCode(OutcomeModel):
    code: Optional[int] = None
    description: str = "Unknown"


class WeightOutcome(OutcomeModel):
    type: Literal["weight"] = "weight"
    unit: str = "kg"
    gross: str
    tare: str
    flags: str
    lrc: str
    lrc_valid: bool = Field(alias="lrcValid")
    weight: Optional[float] = None
    status_flags: Optional[StatusFlags] = Field(None, alias="statusFlags")


class StatusOutcome(OutcomeModel):
    type: Literal["status"] = "status"
    status: StatusCode
    lrc: str
    lrc_valid: bool = Field(alias="lrcValid")


class TareOutcome(OutcomeModel):
    type: Literal["tare"] = "tare"
    message: str
    lrc: str
    lrc_valid: bool = Field(alias="lrcValid")
    success: bool


class PresetTareOutcome(OutcomeModel):
    """Response to a preset tare write or clear (distinguished by ``type``)."""
    type: Literal["presetTare", "clearPreset"] = "presetTare"
    message: str
    lrc: str
    lrc_valid: bool = Field(alias="lrcValid")
    success: bool


class ErrorOutcome(OutcomeModel):
    type: Literal["error"] = "error"
    error: str
    raw_response: Optional[str] = Field(None, alias="rawResponse")
    reason: ErrorReason = Field(ErrorReason.UNRECOGNIZED, exclude=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


SessionOutcome = Union[
    WeightOutcome,
    StatusOutcome,
    TareOutcome,
    PresetTareOutcome,
    ErrorOutcome,
]
