"""API Router for the transcoding service."""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from videokit.core.logging import log_info
from videokit.modules.transcoding.errors import (
    EngineLoadError,
    InputMissingError,
    TranscodeExecutionError,
    UnsupportedOperationError,
)
from videokit.modules.transcoding.results import resolve_content_type
from videokit.modules.transcoding.schemas import (
    EngineStatusResponse,
    OperationInfo,
    TranscodeFallback,
    TranscodeRequest,
)
from videokit.modules.transcoding.service import TranscodingService
from videokit.modules.transcoding.size_gate import check_source_size

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transcoding", tags=["transcoding"])

# Characters of engine stderr returned to the client
MAX_DIAGNOSTICS_CHARS = 1000


def get_transcoding_service(request: Request) -> TranscodingService:
    """Dependency to get the application's TranscodingService."""
    return request.app.state.transcoding_service


@router.get("/operations", response_model=list[OperationInfo])
async def list_operations(
    service: TranscodingService = Depends(get_transcoding_service),
) -> list[OperationInfo]:
    """List supported operations with their default parameters."""
    operations = []
    for operation, defaults in service.catalog.describe():
        content_type = resolve_content_type(operation)
        operations.append(
            OperationInfo(
                operation=operation,
                mime=content_type.mime,
                extension=content_type.ext,
                default_params=defaults,
            )
        )
    return operations


@router.get("/engine", response_model=EngineStatusResponse)
async def get_engine_status(
    service: TranscodingService = Depends(get_transcoding_service),
) -> EngineStatusResponse:
    """Get the engine load state."""
    return EngineStatusResponse(
        state=service.lifecycle.state,
        load_attempts=service.lifecycle.load_attempts,
    )


@router.post("/{operation}")
async def transcode(
    operation: str,
    file: Optional[UploadFile] = File(None),
    params: Optional[str] = Form(None, description="JSON object of operation parameters"),
    service: TranscodingService = Depends(get_transcoding_service),
):
    """Transcode an uploaded file.

    Returns the output bytes, or a JSON fallback notice when the file is too
    large for in-process processing.
    """
    try:
        parsed_params = json.loads(params) if params else None
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"params is not valid JSON: {e}",
        )
    if parsed_params is not None and not isinstance(parsed_params, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="params must be a JSON object",
        )

    # UploadFile.size is known once the multipart body is spooled; oversized
    # uploads are answered without reading them into memory
    source_size = file.size if file is not None else None
    if source_size is not None:
        admission = check_source_size(source_size)
        if isinstance(admission, TranscodeFallback):
            log_info(
                logger,
                "Upload exceeds in-process size limit, returning fallback",
                operation=operation,
                source_size=source_size,
            )
            return JSONResponse(content=admission.model_dump())

    source_bytes = await file.read() if file is not None else None

    try:
        result = await service.execute(
            TranscodeRequest(
                source_bytes=source_bytes,
                source_name=(file.filename if file is not None else None) or "input.mp4",
                source_size=source_size,
                operation=operation,
                params=parsed_params,
            )
        )
    except InputMissingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UnsupportedOperationError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )
    except EngineLoadError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except TranscodeExecutionError as e:
        detail = {"message": str(e)}
        if e.diagnostics:
            detail["diagnostics"] = e.diagnostics[-MAX_DIAGNOSTICS_CHARS:]
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

    if isinstance(result, TranscodeFallback):
        return JSONResponse(content=result.model_dump())

    return Response(
        content=result.output_bytes,
        media_type=result.mime,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
