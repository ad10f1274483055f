"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from videokit.core.config import settings
from videokit.core.logging import setup_logging
from videokit.core.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from videokit.modules.transcoding.engine import EngineFactory, EngineLifecycleManager
from videokit.modules.transcoding.ffmpeg import load_ffmpeg_engine
from videokit.modules.transcoding.router import router as transcoding_router
from videokit.modules.transcoding.service import TranscodingService


def create_app(engine_factory: Optional[EngineFactory] = None) -> FastAPI:
    """Build the application.

    Args:
        engine_factory: Engine constructor; the FFmpeg engine when omitted

    Returns:
        Configured FastAPI app
    """
    factory = engine_factory or partial(load_ffmpeg_engine, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Engine loads lazily on the first transcode request
        lifecycle = EngineLifecycleManager(factory)
        app.state.transcoding_service = TranscodingService(lifecycle)
        try:
            yield
        finally:
            await lifecycle.shutdown()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="In-process video transcoding: conversions, trims, resizes and more.",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints",
            },
            {
                "name": "transcoding",
                "description": "Video operations executed by the shared FFmpeg engine",
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", CorrelationIdMiddleware.CORRELATION_ID_HEADER],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/health", tags=["health"])
    async def health_check(request: Request) -> dict[str, str]:
        """Health check endpoint.

        Returns:
            dict: Service status and engine load state.
        """
        service: TranscodingService = request.app.state.transcoding_service
        return {"status": "healthy", "engine": service.lifecycle.state.value}

    app.include_router(transcoding_router, prefix=settings.API_V1_PREFIX)

    return app


setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

app = create_app()
