"""Domain enums and static tables for the transcoding module."""

from enum import Enum
from typing import NamedTuple


class Operation(str, Enum):
    """Video operations the transcoding engine can perform."""
    MUTE_VIDEO = "mute-video"
    MP4_TO_MP3 = "mp4-to-mp3"
    VIDEO_TO_GIF = "video-to-gif"
    GIF_TO_MP4 = "gif-to-mp4"
    TRIM_VIDEO = "trim-video"
    SPEED_VIDEO = "speed-video"
    RESIZE_VIDEO = "resize-video"
    COMPRESS_VIDEO = "compress-video"
    ROTATE_VIDEO = "rotate-video"
    FLIP_VIDEO = "flip-video"
    MOV_TO_MP4 = "mov-to-mp4"
    WEBM_TO_MP4 = "webm-to-mp4"
    MKV_TO_MP4 = "mkv-to-mp4"
    AVI_TO_MP4 = "avi-to-mp4"
    MP4_TO_WEBM = "mp4-to-webm"


class EngineState(str, Enum):
    """Load state of the shared transcoding engine."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    # Not terminal: the next ensure_ready() treats it as UNLOADED
    LOAD_FAILED = "load_failed"


class CompressQuality(str, Enum):
    """Quality tiers accepted by compress-video."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Constant rate factor per quality tier
COMPRESSION_CRF = {
    CompressQuality.LOW: "35",
    CompressQuality.MEDIUM: "28",
    CompressQuality.HIGH: "18",
}


class FlipDirection(str, Enum):
    """Mirror axis for flip-video."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


# Filter chain per supported rotation, clockwise degrees
ROTATION_FILTERS = {
    90: "transpose=1",
    180: "transpose=1,transpose=1",
    270: "transpose=2",
}

# Speed factors inside this range keep the audio track (atempo limits)
AUDIO_TEMPO_RANGE = (0.5, 2.0)


class ContentType(NamedTuple):
    """MIME type and file extension of an operation's output."""
    mime: str
    ext: str


DEFAULT_CONTENT_TYPE = ContentType("video/mp4", "mp4")

CONTENT_TYPES = {
    Operation.VIDEO_TO_GIF: ContentType("image/gif", "gif"),
    Operation.GIF_TO_MP4: ContentType("video/mp4", "mp4"),
    Operation.MOV_TO_MP4: ContentType("video/mp4", "mp4"),
    Operation.WEBM_TO_MP4: ContentType("video/mp4", "mp4"),
    Operation.MKV_TO_MP4: ContentType("video/mp4", "mp4"),
    Operation.AVI_TO_MP4: ContentType("video/mp4", "mp4"),
    Operation.MP4_TO_MP3: ContentType("audio/mpeg", "mp3"),
    Operation.TRIM_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.MUTE_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.SPEED_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.RESIZE_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.COMPRESS_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.ROTATE_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.FLIP_VIDEO: ContentType("video/mp4", "mp4"),
    Operation.MP4_TO_WEBM: ContentType("video/webm", "webm"),
}
