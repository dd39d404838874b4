from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from iterview import __version__
from iterview.api.routes.checkpoints import router as checkpoints_router
from iterview.api.routes.health import router as health_router
from iterview.utils.logger import api_logger, request_log


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Start config watcher in the main event loop
    if hasattr(app.state, "config_manager"):
        from iterview.api.deps import get_checkpoint_service
        from iterview.config import ConfigValidationError, settings

        def on_config_change(new_config):
            api_logger.info(
                "Configuration changed, refreshing checkpoint settings",
                changed_keys=list(new_config.keys()),
            )
            try:
                get_checkpoint_service().update_config(settings.checkpoint_config())
            except ConfigValidationError as e:
                api_logger.warning("Ignoring invalid checkpoint settings", errors=e.errors)

        app.state.config_manager.register_change_callback(on_config_change)
        await app.state.config_manager.start_watching()
        api_logger.info("Config file watcher started with change callback")

    yield

    if hasattr(app.state, "config_manager"):
        try:
            await app.state.config_manager.stop_watching()
            api_logger.info("Config file watcher stopped")
        except asyncio.CancelledError:
            api_logger.debug("Config watcher stop cancelled")


def create_app() -> FastAPI:
    app = FastAPI(
        title="iterview",
        description="Checkpoints and change review across git working trees",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(checkpoints_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        request_log(
            api_logger,
            request.method,
            request.url.path,
            response.status_code,
            round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    return app
