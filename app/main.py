from __future__ import annotations

import logging

from fastapi import FastAPI

from app.config import get_data_directory_settings, get_logging_settings
from app.logging_utils import configure_logging, log_event


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging(get_logging_settings())

    application = FastAPI(
        title="Dashboard Data API",
        version="1.0.0",
    )

    from app.api.routers import data_router

    application.include_router(data_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        data_dir = get_data_directory_settings().base_dir
        return {
            "status": "ok",
            "data_dir": str(data_dir),
            "data_dir_present": str(data_dir.is_dir()).lower(),
        }

    log_event(
        logging.getLogger(__name__),
        logging.INFO,
        "app_created",
        data_dir=str(get_data_directory_settings().base_dir),
    )
    return application


app = create_app()
