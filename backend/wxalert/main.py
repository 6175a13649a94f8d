"""FastAPI application factory and lifespan for the weather alert monitor."""

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import state as state_api
from .api.router import api_router
from .config import settings
from .services.open_meteo import fetch_reading
from .services.poller import PollController
from .ws.handler import websocket_endpoint, ws_manager

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_controller(fetcher=None) -> PollController:
    """Create a PollController for the configured location.

    ``fetcher`` defaults to the Open-Meteo client with configured URL and
    timeout; tests pass a stub.
    """
    if fetcher is None:
        fetcher = partial(
            fetch_reading,
            base_url=settings.forecast_url,
            timeout=settings.request_timeout,
        )
    return PollController(
        fetcher,
        latitude=settings.latitude,
        longitude=settings.longitude,
        auto_refresh_interval=settings.auto_refresh_interval_sec,
    )


def create_app(fetcher=None) -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the controller with the first fetch; stop it on shutdown."""
        controller = build_controller(fetcher)
        ws_manager.attach(controller)
        state_api.set_controller(controller)
        app.state.controller = controller

        logger.info("Monitoring %s (%s, %s)", settings.location_name,
                    settings.latitude, settings.longitude)
        controller.start()
        if settings.auto_refresh_on_start:
            await controller.set_auto_refresh(True)

        yield

        logger.info("Shutting down...")
        controller.stop()
        state_api.set_controller(None)
        ws_manager.attach(None)
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Weather Alert Monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routes
    app.include_router(api_router)

    # WebSocket
    app.websocket("/ws/live")(websocket_endpoint)

    return app


# Application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
