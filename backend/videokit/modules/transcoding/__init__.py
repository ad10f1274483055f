"""Transcoding module for in-process video operations.

Maps fifteen video operations onto FFmpeg command pipelines and runs them
against a shared, lazily loaded engine.
"""

from videokit.modules.transcoding.catalog import (
    OperationCatalog,
    OperationSpec,
    build_command,
    default_catalog,
)
from videokit.modules.transcoding.engine import EngineLifecycleManager, TranscodeEngine
from videokit.modules.transcoding.errors import (
    EngineLoadError,
    EngineUnsupportedError,
    InputMissingError,
    TranscodeExecutionError,
    TranscodingError,
    UnsupportedOperationError,
)
from videokit.modules.transcoding.ffmpeg import FFmpegEngine, FFmpegRunError, load_ffmpeg_engine
from videokit.modules.transcoding.models import EngineState, Operation
from videokit.modules.transcoding.results import package_result
from videokit.modules.transcoding.schemas import (
    TranscodeFallback,
    TranscodeRequest,
    TranscodeResult,
    TranscodeSuccess,
)
from videokit.modules.transcoding.service import TranscodingService
from videokit.modules.transcoding.size_gate import MAX_SOURCE_SIZE, check_source_size

__all__ = [
    # Models
    "Operation",
    "EngineState",
    # Schemas
    "TranscodeRequest",
    "TranscodeResult",
    "TranscodeSuccess",
    "TranscodeFallback",
    # Catalog
    "OperationCatalog",
    "OperationSpec",
    "build_command",
    "default_catalog",
    # Engine
    "EngineLifecycleManager",
    "TranscodeEngine",
    "FFmpegEngine",
    "FFmpegRunError",
    "load_ffmpeg_engine",
    # Service
    "TranscodingService",
    "check_source_size",
    "MAX_SOURCE_SIZE",
    "package_result",
    # Errors
    "TranscodingError",
    "InputMissingError",
    "UnsupportedOperationError",
    "EngineLoadError",
    "EngineUnsupportedError",
    "TranscodeExecutionError",
]
