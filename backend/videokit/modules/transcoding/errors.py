"""Exceptions raised by the transcoding module.

Exceeding the source size limit is not an error: it is returned as a
TranscodeFallback result.
"""

from typing import Optional


class TranscodingError(Exception):
    """Base exception for transcoding errors."""

    pass


class InputMissingError(TranscodingError):
    """Raised when a request carries no source bytes."""

    def __init__(self, message: str = "No video file provided"):
        super().__init__(message)


class UnsupportedOperationError(TranscodingError):
    """Raised when an operation identifier is not in the catalog."""

    def __init__(self, operation: object):
        self.operation = getattr(operation, "value", operation)
        super().__init__(f"Operation '{self.operation}' is not supported")


class EngineLoadError(TranscodingError):
    """Raised when the transcoding engine could not be constructed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class EngineUnsupportedError(EngineLoadError):
    """Raised when this environment cannot host the engine at all.

    Distinct from a load attempt that started and failed.
    """

    pass


class TranscodeExecutionError(TranscodingError):
    """Raised when the engine ran the command but it failed."""

    def __init__(
        self,
        operation: object,
        cause: Optional[BaseException] = None,
        diagnostics: Optional[str] = None,
    ):
        self.operation = getattr(operation, "value", operation)
        self.cause = cause
        self.diagnostics = diagnostics
        message = f"Video processing failed for '{self.operation}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
