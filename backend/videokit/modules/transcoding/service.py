"""Service layer for transcoding requests.

Runs one request end to end: size admission, engine acquisition, staging
of request-scoped virtual files, command execution and cleanup.
"""

import logging
import os
import uuid
from typing import Optional

from videokit.core.logging import (
    clear_correlation_id,
    correlation_id_var,
    log_error,
    log_info,
    log_warning,
    set_correlation_id,
)
from videokit.modules.transcoding.catalog import OperationCatalog, default_catalog
from videokit.modules.transcoding.engine import EngineLifecycleManager, TranscodeEngine
from videokit.modules.transcoding.errors import (
    InputMissingError,
    TranscodeExecutionError,
)
from videokit.modules.transcoding.ffmpeg import FFmpegRunError
from videokit.modules.transcoding.results import package_result, resolve_content_type
from videokit.modules.transcoding.schemas import (
    TranscodeFallback,
    TranscodeRequest,
    TranscodeResult,
)
from videokit.modules.transcoding.size_gate import check_source_size

logger = logging.getLogger(__name__)


def input_extension(source_name: str) -> str:
    """Lower-cased extension of the source name, '.mp4' when there is none."""
    ext = os.path.splitext(source_name or "")[1].lower()
    return ext if ext[1:].isalnum() and ext[1:].isascii() else ".mp4"


def virtual_file_names(source_name: str, output_ext: str) -> tuple[str, str]:
    """Generate collision-free input/output names for one request."""
    token = uuid.uuid4().hex
    return f"{token}-input{input_extension(source_name)}", f"{token}-output.{output_ext}"


class TranscodingService:
    """Executes transcoding requests against the shared engine."""

    def __init__(
        self,
        lifecycle: EngineLifecycleManager,
        catalog: Optional[OperationCatalog] = None,
    ):
        """Initialize service.

        Args:
            lifecycle: Manager owning the engine
            catalog: Operation catalog (default catalog when omitted)
        """
        self.lifecycle = lifecycle
        self.catalog = catalog or default_catalog

    async def execute(self, request: TranscodeRequest) -> TranscodeResult:
        """Run a transcoding request.

        Args:
            request: Source bytes, operation and parameters

        Returns:
            TranscodeSuccess, or TranscodeFallback for oversized sources

        Raises:
            InputMissingError: If the request has no source bytes
            UnsupportedOperationError: If the operation is not in the catalog
            EngineLoadError: If the engine cannot be loaded
            TranscodeExecutionError: If the engine fails on this input
        """
        owns_correlation_id = correlation_id_var.get() is None
        if owns_correlation_id:
            set_correlation_id(str(uuid.uuid4()))

        try:
            return await self._execute(request)
        finally:
            if owns_correlation_id:
                clear_correlation_id()

    async def _execute(self, request: TranscodeRequest) -> TranscodeResult:
        operation = getattr(request.operation, "value", request.operation)

        if not request.source_bytes:
            raise InputMissingError()

        source_size = request.source_size
        if source_size is None:
            source_size = len(request.source_bytes)
        admission = check_source_size(source_size)
        if isinstance(admission, TranscodeFallback):
            log_info(
                logger,
                "Source exceeds in-process size limit, returning fallback",
                operation=operation,
                source_size=source_size,
            )
            return admission

        # Unknown operations and invalid parameters fail before the engine loads
        spec = self.catalog.get(request.operation)
        params = spec.resolve_params(request.params)

        engine = await self.lifecycle.ensure_ready()

        content_type = resolve_content_type(spec.operation)
        input_name, output_name = virtual_file_names(request.source_name, content_type.ext)
        command = self.catalog.build_command(spec.operation, params, input_name, output_name)

        log_info(
            logger,
            "Executing transcode",
            operation=operation,
            source_name=request.source_name,
            source_size=source_size,
        )

        try:
            await engine.write_file(input_name, request.source_bytes)
            await engine.run(command)
            output_bytes = await engine.read_file(output_name)
        except Exception as exc:
            diagnostics = exc.stderr if isinstance(exc, FFmpegRunError) else None
            log_error(logger, "Transcode failed", exc, operation=operation)
            raise TranscodeExecutionError(operation, exc, diagnostics) from exc
        finally:
            await self._cleanup(engine, (input_name, output_name), operation)

        log_info(
            logger,
            "Transcode complete",
            operation=operation,
            output_size=len(output_bytes),
        )
        return package_result(output_bytes, spec.operation)

    async def _cleanup(
        self, engine: TranscodeEngine, names: tuple[str, ...], operation: str
    ) -> None:
        for name in names:
            try:
                await engine.delete_file(name)
            except FileNotFoundError:
                # Never written (e.g. engine failed before producing output)
                logger.debug(
                    "Virtual file already absent",
                    extra={"file_name": name, "operation": operation},
                )
            except Exception as exc:
                log_warning(
                    logger,
                    "Failed to delete virtual file",
                    operation=operation,
                    file_name=name,
                    error=str(exc),
                )
