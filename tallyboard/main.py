"""
FastAPI application factory.

Wires configuration, structured request logging, CORS (which also answers the
OPTIONS preflight for /track), the error envelopes and the routers.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tallyboard import __version__
from tallyboard.config import Settings, get_settings
from tallyboard.errors import ReportSourceError
from tallyboard.routers import engagement, reports, system, tracking
from tallyboard.storage import get_source
from tallyboard.utils.logging import bind_request_context, configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# (router, prefix, tag)
ROUTERS = [
    (system.router, "", "System"),
    (tracking.router, "", "Tracking"),
    (reports.router, "/api/v1/reports", "Reports"),
    (engagement.router, "/api/v1/engagement", "Engagement"),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the record source before the first request and log shutdown."""
    settings = get_settings()
    source = get_source()

    logger.info(
        "application_startup",
        version=app.version,
        dev_mode=settings.dev_mode,
        record_source=type(source).__name__,
        db_path=settings.db_path,
    )

    yield

    logger.info("application_shutdown")


def _add_request_tracing(app: FastAPI) -> None:
    @app.middleware("http")
    async def request_tracing_middleware(request: Request, call_next):
        """Tag the request with an id, log its outcome and duration."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        bind_request_context(request_id, method=request.method, path=request.url.path)
        started = time.perf_counter()

        logger.info("request_started", client=request.client.host if request.client else None)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Internal server error", "request_id": request_id},
                headers={REQUEST_ID_HEADER: request_id},
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response


def _add_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReportSourceError)
    async def report_source_error_handler(request: Request, exc: ReportSourceError):
        """A report whose fetches failed is unavailable, never partial."""
        logger.warning("report_unavailable", kind=exc.kind, entity=exc.entity, error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": str(exc), "entity": exc.entity},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to build the app with (defaults to get_settings())

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Tallyboard API",
        description="Dashboard metrics, financial statements and document engagement tracking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    _add_request_tracing(app)
    _add_error_handlers(app)

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    logger.info("application_configured", routers_count=len(ROUTERS))
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tallyboard.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
