"""Application Factory

Builds a FastAPI app whose routes come from ``CompiledOperation`` values and
whose ``/openapi.json`` is the document generated from those same schemas.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from apiforge import __version__
from apiforge.core.config import settings
from apiforge.core.errors import raise_result, register_error_handlers
from apiforge.core.logging import configure_logging, get_logger
from apiforge.core.middleware import RequestLoggingMiddleware
from apiforge.operations import CompiledOperation, OpenAPIDocumentGenerator, Router

log = get_logger(__name__)


def create_app(
    operations: Iterable[CompiledOperation] = (),
    *,
    title: str = "API",
    version: str = "1.0.0",
    description: str = "",
    generator: OpenAPIDocumentGenerator | None = None,
    cors_origins: list[str] | None = None,
    slow_threshold_ms: float = 1000.0,
    configure_logs: bool = True,
) -> FastAPI:
    """Create the app, register every operation and serve the generated document."""
    if configure_logs:
        configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    
    spec = generator or OpenAPIDocumentGenerator(title, version)
    if description and generator is None:
        spec.set_description(description)
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("startup", service=settings.SERVICE_NAME, title=title, operations=len(router.operations()),
            apiforge_version=__version__)
        yield
        log.info("shutdown", service=settings.SERVICE_NAME)
    
    # The generated document replaces FastAPI's own.
    app = FastAPI(title=title, version=version, description=description, lifespan=lifespan,
        openapi_url=None, docs_url=None, redoc_url=None)
    app.state.openapi_generator = spec
    
    register_error_handlers(app)
    
    # Middleware (order matters: last added = first executed)
    app.add_middleware(RequestLoggingMiddleware, slow_threshold_ms=slow_threshold_ms)
    if cors_origins:
        app.add_middleware(CORSMiddleware, allow_origins=cors_origins, allow_credentials=True,
            allow_methods=["*"], allow_headers=["*"])
    
    router = Router(app, spec)
    app.state.operation_router = router
    for op in operations:
        raise_result(router.register(op))
    
    @app.get("/openapi.json", include_in_schema=False)
    async def openapi_document() -> JSONResponse:
        return JSONResponse(spec.to_dict())
    
    @app.get("/health", include_in_schema=False)
    async def health_check():
        return {"status": "healthy", "version": version}
    
    return app
