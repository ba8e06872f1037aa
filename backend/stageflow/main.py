from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging

from stageflow.api.router import api_router
from stageflow.core.config import settings
from stageflow.core.database import supabase_service
from stageflow.core.dependencies import ServiceFactory
from stageflow.core.error_handlers import (
    http_exception_handler,
    validation_exception_handler,
    stageflow_exception_handler,
    general_exception_handler,
)
from stageflow.core.exceptions import StageflowBaseException
from stageflow.core.logging_config import setup_logging
from stageflow.services.task_change_listener import RealtimeTaskListener

logger = logging.getLogger(__name__)


async def start_task_listener() -> Optional[RealtimeTaskListener]:
    """Start propagating task changes received over Supabase Realtime."""
    realtime_client = await supabase_service.create_realtime_client()
    if realtime_client is None:
        logger.warning("Task change listener enabled but Supabase is not configured, not started")
        return None
    task_listener = RealtimeTaskListener(realtime_client, ServiceFactory.create_task_status_service())
    await task_listener.start()
    logger.info("Task change listener started")
    return task_listener


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        log_dir=settings.LOG_DIR,
        level=settings.LOG_LEVEL,
        enable_json=settings.LOG_JSON,
    )
    logger.info("Starting up Stageflow Backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    app.state.task_listener = await start_task_listener() if settings.TASK_LISTENER_ENABLED else None
    yield
    if app.state.task_listener is not None:
        await app.state.task_listener.stop()
        app.state.task_listener = None
    logger.info("Shutting down Stageflow Backend...")


app = FastAPI(
    title="Stageflow Backend",
    description="Task, stage and deal completion propagation for rental and builder pipelines",
    version=settings.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)
app.state.settings = settings

# Add exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StageflowBaseException, stageflow_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

allowed_origins = list(settings.BACKEND_CORS_ORIGINS)

# Only allow all origins in development
if settings.ENVIRONMENT == "development" and settings.DEBUG:
    allowed_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {
        "message": "Stageflow Backend API",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "services": {
            "database": "connected" if supabase_service.client else "disconnected",
            "api": "running"
        }
    }
