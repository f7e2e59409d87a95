from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.client_tenants import router as client_tenants_router
from app.api.clients import router as clients_router
from app.api.courses import router as courses_router
from app.api.errors import register_error_handlers
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.programs import router as programs_router
from app.api.specializations import links_router as specialization_programs_router
from app.api.specializations import router as specializations_router
from app.api.students import router as students_router
from app.api.teachers import router as teachers_router
from app.api.tenants import router as tenants_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db import engine as db
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.services.registry import InMemoryBackend

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with db.lifespan_db():
        yield


# only app setup + router registration

app = FastAPI(
    title="lms-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Record services come from get_services: a request-scoped database
# session when DATABASE_URL is set, the in-memory backend otherwise.
app.state.session_factory = db.async_session_factory
app.state.memory = InMemoryBackend()

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) -> Metrics -> CORS -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(tenants_router)
app.include_router(clients_router)
app.include_router(programs_router)
app.include_router(courses_router)
app.include_router(students_router)
app.include_router(teachers_router)
app.include_router(client_tenants_router)
app.include_router(specializations_router)
app.include_router(specialization_programs_router)

logger.info(
    "lms-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
