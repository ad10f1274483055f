"""Pydantic schemas for the transcoding module.

Parameter models accept the camelCase keys sent by the browser tools as well
as snake_case. Missing, null or zero values fall back to the documented
defaults; out-of-range numbers are rejected, while unrecognized quality and
rotation values fall back to the medium tier and 90 degrees.
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from videokit.core.logging import log_warning
from videokit.modules.transcoding.models import EngineState, Operation

logger = logging.getLogger(__name__)


class OperationParams(BaseModel):
    """Base class for per-operation parameters. Instances are immutable."""

    model_config = {
        "frozen": True,
        "extra": "ignore",
        "populate_by_name": True,
    }


class NoParams(OperationParams):
    """Parameters for operations that take none."""

    pass


def _default_if_falsy(value: Any, default: Any) -> Any:
    """Treat None, 0 and empty strings as 'not provided'."""
    if value is None or value == 0 or value == "":
        return default
    return value


class VideoToGifParams(OperationParams):
    """Parameters for video-to-gif."""
    fps: float = Field(default=10, gt=0, allow_inf_nan=False, description="Output frame rate")
    width: int = Field(default=480, gt=0, description="Output width in pixels; height keeps aspect")

    @field_validator("fps", mode="before")
    @classmethod
    def default_fps(cls, v: Any) -> Any:
        return _default_if_falsy(v, 10)

    @field_validator("width", mode="before")
    @classmethod
    def default_width(cls, v: Any) -> Any:
        return _default_if_falsy(v, 480)


class TrimParams(OperationParams):
    """Parameters for trim-video. Times are passed through to the engine verbatim."""
    start_time: str = Field(default="0", alias="startTime", description="Start position (seconds or HH:MM:SS)")
    duration: str = Field(default="10", description="Clip length (seconds or HH:MM:SS)")

    @field_validator("start_time", mode="before")
    @classmethod
    def normalize_start(cls, v: Any) -> str:
        return str(_default_if_falsy(v, "0")).strip() or "0"

    @field_validator("duration", mode="before")
    @classmethod
    def normalize_duration(cls, v: Any) -> str:
        return str(_default_if_falsy(v, "10")).strip() or "10"


class SpeedParams(OperationParams):
    """Parameters for speed-video."""
    speed: float = Field(default=1.5, gt=0, allow_inf_nan=False, description="Playback speed multiplier")

    @field_validator("speed", mode="before")
    @classmethod
    def default_speed(cls, v: Any) -> Any:
        return _default_if_falsy(v, 1.5)


class ResizeParams(OperationParams):
    """Parameters for resize-video."""
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)

    @field_validator("width", mode="before")
    @classmethod
    def default_width(cls, v: Any) -> Any:
        return _default_if_falsy(v, 1280)

    @field_validator("height", mode="before")
    @classmethod
    def default_height(cls, v: Any) -> Any:
        return _default_if_falsy(v, 720)


class CompressParams(OperationParams):
    """Parameters for compress-video.

    Unknown or non-string quality values are accepted and compressed at the
    medium tier.
    """
    quality: str = Field(default="medium", description="low, medium or high")

    @field_validator("quality", mode="before")
    @classmethod
    def default_quality(cls, v: Any) -> Any:
        v = _default_if_falsy(v, "medium")
        if not isinstance(v, str):
            log_warning(logger, "Non-string compression quality, compressing as medium", quality=repr(v))
            return str(v)
        return v


class RotateParams(OperationParams):
    """Parameters for rotate-video. Unsupported angles rotate by 90 degrees."""
    rotation: int = Field(default=90, description="Clockwise degrees: 90, 180 or 270")

    @field_validator("rotation", mode="before")
    @classmethod
    def default_rotation(cls, v: Any) -> Any:
        v = _default_if_falsy(v, 90)
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            v = int(v.strip())
        elif isinstance(v, float) and v.is_integer():
            v = int(v)
        if isinstance(v, bool) or not isinstance(v, int):
            log_warning(logger, "Unrecognized rotation, rotating by 90 degrees", rotation=repr(v))
            return 90
        return v


class FlipParams(OperationParams):
    """Parameters for flip-video. Anything but 'vertical' flips horizontally."""
    direction: str = Field(default="horizontal", description="horizontal or vertical")

    @field_validator("direction", mode="before")
    @classmethod
    def default_direction(cls, v: Any) -> Any:
        return _default_if_falsy(v, "horizontal")


class TranscodeRequest(BaseModel):
    """A single transcoding request handed over by the calling tool."""

    source_bytes: Optional[bytes] = Field(None, description="Source media content")
    source_name: str = Field(default="input.mp4", description="Original file name")
    source_size: Optional[int] = Field(None, ge=0, description="Source size in bytes")
    operation: Union[Operation, str] = Field(..., description="Operation identifier")
    # Raw mappings stay raw; the catalog validates them against the operation's model
    params: Union[dict[str, Any], OperationParams, None] = Field(
        None,
        union_mode="left_to_right",
        description="Operation parameters; defaults apply when omitted",
    )

    @model_validator(mode="after")
    def fill_source_size(self) -> "TranscodeRequest":
        if self.source_size is None and self.source_bytes is not None:
            self.source_size = len(self.source_bytes)
        return self


class SizeAdmit(BaseModel):
    """Admission granted by the size gate."""

    model_config = {"frozen": True}

    admitted: Literal[True] = True


class TranscodeSuccess(BaseModel):
    """Output produced by the engine."""

    model_config = {"frozen": True}

    output_bytes: bytes
    mime: str
    filename: str
    requires_fallback: Literal[False] = False


class TranscodeFallback(BaseModel):
    """The caller should use a desktop tool instead of in-process transcoding."""

    model_config = {"frozen": True}

    message: str
    requires_fallback: Literal[True] = True


TranscodeResult = Union[TranscodeSuccess, TranscodeFallback]


class OperationInfo(BaseModel):
    """Catalog entry as exposed over the API."""
    operation: Operation
    mime: str
    extension: str
    default_params: dict[str, Any]


class EngineStatusResponse(BaseModel):
    """Engine lifecycle state."""
    state: EngineState
    load_attempts: int
