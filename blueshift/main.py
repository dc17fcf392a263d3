"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blueshift import __version__
from blueshift.api.middleware import RequestLoggingMiddleware
from blueshift.api.v1.router import router as v1_router
from blueshift.config import load_deploy_config, settings
from blueshift.core.classifier import DEFAULT_MATCHERS, ErrorClassifier, ErrorMatcher
from blueshift.core.coordinator import PushCoordinator
from blueshift.core.events import DeploySuccessEvent, EventBus
from blueshift.core.exceptions import DeploymentError
from blueshift.core.orchestrator import DeploymentOrchestrator
from blueshift.handlers.healthchecker import HealthChecker
from blueshift.pushers.cf import create_cf_pusher
from blueshift.utils.fetcher import ArtifactFetcher
from blueshift.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def build_orchestrator(app: FastAPI) -> DeploymentOrchestrator:
    """Wire the orchestrator from settings and the environments file."""
    config = load_deploy_config(settings)

    matchers = list(DEFAULT_MATCHERS)
    matchers.extend(
        ErrorMatcher(
            pattern=m.pattern,
            description=m.description,
            solution=m.solution,
            code=m.code,
        )
        for m in config.matchers
    )

    events = EventBus()
    if settings.health_check_enabled:
        client = httpx.AsyncClient(timeout=30.0)
        app.state.http_client = client
        events.bind(
            DeploySuccessEvent,
            HealthChecker(config, client, endpoint=settings.health_check_endpoint),
        )

    logger.info(
        "orchestrator.configured",
        environments=sorted(config.environments),
        matchers=len(matchers),
        health_check=settings.health_check_enabled,
    )
    return DeploymentOrchestrator(
        config=config,
        events=events,
        coordinator=PushCoordinator(
            create_cf_pusher, ArtifactFetcher(timeout=settings.push_timeout)
        ),
        classifier=ErrorClassifier(matchers),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
    )
    if app.state.orchestrator is None:
        app.state.orchestrator = build_orchestrator(app)

    yield

    # Shutdown
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
    logger.info("application.shutdown")


def create_app(orchestrator: DeploymentOrchestrator | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator; when omitted it is built from
            configuration at startup
    """
    app = FastAPI(
        title="Blueshift API",
        description="Zero-downtime blue-green deployments across Cloud Foundry foundations",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers
    @app.exception_handler(DeploymentError)
    async def deployment_error_handler(
        request: Request, exc: DeploymentError
    ) -> JSONResponse:
        """Handle deployment errors raised outside the pipeline."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": type(exc).__name__.upper(),
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

        if settings.is_development:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": str(exc),
                        "type": type(exc).__name__,
                    }
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                }
            },
        )

    # Include routers
    app.include_router(v1_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "blueshift.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
