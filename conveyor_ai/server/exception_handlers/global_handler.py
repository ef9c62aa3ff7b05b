"""
Exception Handlers for the FastAPI Application.

Engine errors map to responses as follows:

- ``NotFoundError`` -> 404
- ``ConflictError`` -> 409
- ``PlanValidationError`` -> 422
- ``AgentRegistrationError`` -> 400
- ``EngineFailure`` and any unhandled exception -> 500 with an error id that
  clients can quote when reporting issues.
"""

import traceback
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from conveyor_ai.agent_core.errors import (
    AgentNotFoundError,
    AgentRegistrationError,
    ConflictError,
    EngineFailure,
    NotFoundError,
    PlanValidationError,
)
from conveyor_ai.core.logging_config import get_logger
from conveyor_ai.core.monitoring import log_error

logger = get_logger(__name__)


def _error_body(exc: Exception, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": str(exc), "error_type": type(exc).__name__}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    execution_id = exc.execution_id if isinstance(exc, AgentNotFoundError) else None
    logger.info(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=404, content=_error_body(exc, execution_id=execution_id))


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=409, content=_error_body(exc))


async def plan_validation_handler(request: Request, exc: PlanValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=_error_body(exc))


async def agent_registration_handler(request: Request, exc: AgentRegistrationError) -> JSONResponse:
    logger.warning(f"Agent registration failed: {exc}")
    return JSONResponse(status_code=400, content=_error_body(exc))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler to log detailed error information.

    Called for ``EngineFailure`` and any exception no other handler claims.
    Logs the full error context and returns a JSON response with an error ID.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with error details and error ID
    """
    error_id = uuid.uuid4().hex

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {str(exc)}",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )
    log_error(type(exc).__name__, str(exc), {"error_id": error_id, "path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(PlanValidationError, plan_validation_handler)
    app.add_exception_handler(AgentRegistrationError, agent_registration_handler)
    app.add_exception_handler(EngineFailure, global_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
