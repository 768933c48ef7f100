"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers and configures uvicorn server.

Dependencies: fastapi, contract_workflow.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contract_workflow.api.deps.dependencies import get_service_cache
from contract_workflow.configs import get_settings
from contract_workflow.observability.logger import configure_logging
from contract_workflow.observability.middleware import (
    CorrelationMiddleware,
    RequestLoggingMiddleware,
)
from .routers import health_router, workflows_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    logger = logging.getLogger("uvicorn")

    # Startup
    configure_logging(get_settings().observability.log_level)
    cache = get_service_cache()
    _ = cache.workflow_service
    logger.info(f"Contract service at {get_settings().api.base_url}")

    yield

    # Shutdown: stop every poller before the HTTP client goes away
    await cache.aclose()
    logger.info("Service cache cleared")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="Contract Workflow API",
        description="Extraction, AI analysis and compliance workflow status per contract",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CorrelationMiddleware,
        header_name=get_settings().observability.correlation_header,
    )

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(workflows_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "contract_workflow.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
