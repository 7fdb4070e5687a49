# backend/activityhub/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute

from .api.errors import register_error_handlers
from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .routes import prometheus
from .routes.v1 import activities as activities_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import notifications as notifications_v1
from .routes.v1 import packs as packs_v1
from .routes.v1 import webhooks as webhooks_v1

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("%s API starting up...", BRAND_NAME)
    logger.info(
        "Environment: %s, schedule lock backend: %s, email provider: %s",
        settings.environment,
        settings.schedule_lock_backend,
        settings.email_provider,
    )
    if is_running_tests():
        logger.info("Running under pytest")
    yield
    logger.info("%s API shutting down...", BRAND_NAME)


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)
register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(activities_v1.router, prefix="/activities")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(packs_v1.router, prefix="/packs")
api_v1.include_router(webhooks_v1.router, prefix="/webhooks")

app.include_router(api_v1)
app.include_router(prometheus.router)
