"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
registers exception handlers and includes all API routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conveyor_ai.core.logging_config import get_logger, setup_logging
from conveyor_ai.core.monitoring import initialize_logfire

from .api.v1 import agents, executions, health, pipelines, reviews
from .core import constant
from .core.config import settings
from .core.database import init_db
from .exception_handlers import setup_exception_handlers
from .services.orchestrator import get_orchestrator

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Startup creates the execution state tables, wires the service and
    reschedules executions that were approved but never resumed; shutdown
    waits for in-flight resumptions so no approved execution is cut off
    mid-group.
    """
    try:
        logger.info("Starting up conveyor-ai server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    service = get_orchestrator()
    try:
        await service.review.resume_pending()
    except Exception as e:
        logger.error(f"Resuming approved executions failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down conveyor-ai server...")
    await service.review.drain()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    conveyor-ai Server API

    Runs static agent pipelines and dynamic agent plans with human-in-the-loop
    approval gates. Paused executions are persisted and resumed through the
    review endpoints.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=settings.cors.allow_methods,
    allow_headers=settings.cors.allow_headers,
)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, prefix=constant.API_V1_STR, tags=["health"])
app.include_router(pipelines.router, prefix=f"{constant.API_V1_STR}/pipelines", tags=["pipelines"])
app.include_router(agents.router, prefix=f"{constant.API_V1_STR}/agents", tags=["agents"])
app.include_router(executions.router, prefix=f"{constant.API_V1_STR}/executions", tags=["executions"])
app.include_router(reviews.router, prefix=f"{constant.API_V1_STR}/reviews", tags=["reviews"])


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("conveyor_ai.server.main:app", host=settings.server_host, port=settings.server_port)
