"""FastAPI application factory and entry point."""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from echostats import __version__
from echostats.api.exception_handlers import register_exception_handlers
from echostats.api.health_checks import register_health_endpoints
from echostats.api.routers import api_router
from echostats.config import Settings, get_settings
from echostats.infrastructure.lifecycle import lifespan
from echostats.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)

    Returns:
        Configured FastAPI app
    """
    explicit = settings is not None
    settings = settings or get_settings()

    app = FastAPI(
        title="echostats",
        description="Spotify listening statistics API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if explicit:
        # Routes resolve settings through Depends(get_settings); keep them on the same object
        app.dependency_overrides[get_settings] = lambda: settings

    # Middleware order: the LAST added runs FIRST. CORS wraps the request logger so
    # preflight responses get the CORS headers and still show up in the logs.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Access-Token", "X-Refresh-Token", "X-Correlation-ID"],
    )

    register_exception_handlers(app)
    register_health_endpoints(app, settings)
    app.include_router(api_router)

    return app


app = create_app()


def run() -> None:
    """Run the server with uvicorn (console script entry point)."""
    settings = get_settings()
    uvicorn.run(
        "echostats.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
