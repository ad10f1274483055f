"""Output metadata for finished transcodes."""

from typing import Union

from videokit.modules.transcoding.models import (
    CONTENT_TYPES,
    DEFAULT_CONTENT_TYPE,
    ContentType,
    Operation,
)
from videokit.modules.transcoding.schemas import TranscodeSuccess


def resolve_content_type(operation: Union[Operation, str]) -> ContentType:
    """MIME type and extension for an operation's output (video/mp4 if unknown)."""
    try:
        return CONTENT_TYPES.get(Operation(operation), DEFAULT_CONTENT_TYPE)
    except ValueError:
        return DEFAULT_CONTENT_TYPE


def output_filename(operation: Union[Operation, str]) -> str:
    name = getattr(operation, "value", operation)
    return f"{name}-output.{resolve_content_type(operation).ext}"


def package_result(output_bytes: bytes, operation: Union[Operation, str]) -> TranscodeSuccess:
    """Wrap engine output with its MIME type and suggested filename.

    Args:
        output_bytes: Bytes read back from the engine
        operation: Operation that produced them

    Returns:
        TranscodeSuccess
    """
    content_type = resolve_content_type(operation)
    return TranscodeSuccess(
        output_bytes=output_bytes,
        mime=content_type.mime,
        filename=output_filename(operation),
    )
