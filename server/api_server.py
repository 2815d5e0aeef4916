"""FastAPI application entry point for advisor_ai_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.core.AppServices import AppServices
from server.routers.ChatRouter import router as chat_router
from server.routers.IndexRouter import router as index_router
from server.routers.OwnerRouter import router as owner_router
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


def create_app(services: AppServices | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services (AppServices | None): Prebuilt services. When given, the
            lifespan neither builds, boots nor closes clients.

    Returns:
        FastAPI: The configured application.
    """
    if services is not None:
        helper_config = services.helper_config
        logging = helper_config.get_logger()
    else:
        logging = setup_logging()
        helper_config = HelperConfig(logger=logging)

    app_version = helper_config.get_string_val("APP_VERSION", default="unknown")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # when the app starts
        owns_services = app.state.services is None
        if owns_services:
            app.state.services = AppServices.from_config(helper_config=helper_config)
            await app.state.services.boot()
            await app.state.services.check_connections()

        # while the app is running...
        yield

        # when the app shuts down, close all client connections
        if owns_services:
            await app.state.services.close()

    app = FastAPI(
        title="advisor_ai_bridge",
        description=(
            "AI assistant backend for financial advisors. "
            "Answers chat messages with retrieval over the advisor's mail, calendar and CRM, "
            "and acts on them through tool calls (send email, schedule, manage contacts). "
            "Workspace indexing is triggered via POST /api/index/{owner_id}."
        ),
        version=app_version,
        lifespan=lifespan,
    )
    app.state.logging = logging
    app.state.helper_config = helper_config
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(owner_router)
    app.include_router(index_router)
    return app


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    app.state.logging.info(
        "Starting advisor_ai_bridge API Server v%s from root dir: %s on port 8000...",
        app.version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
