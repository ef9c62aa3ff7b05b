"""
Monitoring and Tracing Configuration Module.

Integrates Pydantic Logfire for tracing of:
- Dynamic execution lifecycle events (submitted, paused, resumed, finished)
- Pydantic AI model calls made by agents and the planner
- FastAPI endpoints, SQLAlchemy and HTTPX calls

Tracing is opt-in (``LOGFIRE_ENABLED``). The ``log_*`` helpers are safe to call
either way and never raise.
"""

import logging
import os
from typing import Any, Dict, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "conveyor-ai-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

LOGFIRE_TRACE_PYDANTIC_AI = os.getenv("LOGFIRE_TRACE_PYDANTIC_AI", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")

_initialized = False


def initialize_logfire(app: FastAPI | None = None) -> bool:
    """
    Initialize Logfire monitoring and tracing.

    Args:
        app: FastAPI application to instrument (optional).

    Returns:
        True if Logfire was configured, False if it is disabled or misconfigured.
    """
    global _initialized
    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not LOGFIRE_TOKEN:
        logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set; monitoring stays off.")
        return False

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False

    instrumentations = []
    if LOGFIRE_TRACE_PYDANTIC_AI:
        instrumentations.append(("Pydantic AI", logfire.instrument_pydantic_ai))
    if LOGFIRE_TRACE_SQLALCHEMY:
        instrumentations.append(("SQLAlchemy", logfire.instrument_sqlalchemy))
    if LOGFIRE_TRACE_HTTPX:
        instrumentations.append(("HTTPX", logfire.instrument_httpx))
    if LOGFIRE_TRACE_FASTAPI and app is not None:
        instrumentations.append(("FastAPI", lambda: logfire.instrument_fastapi(app=app)))

    for label, instrument in instrumentations:
        try:
            instrument()
            logger.info(f"Logfire: {label} instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument {label}: {e}")

    _initialized = True
    logger.info(f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}")
    return True


def log_execution_event(event: str, execution_id: str, **attributes: Any) -> None:
    """
    Record a dynamic execution lifecycle event.

    Args:
        event: Short event name (e.g. "submitted", "paused", "completed").
        execution_id: The execution the event belongs to.
        **attributes: Extra structured attributes (status, cursor, ...).
    """
    logger.debug("execution %s: %s %s", execution_id, event, attributes)
    if not _initialized:
        return
    try:
        logfire.info("Execution {event}", event=event, execution_id=execution_id, **attributes)
    except Exception:
        logger.debug(f"Could not log execution event to Logfire: execution_id={execution_id}")


def log_error(error_type: str, error_message: str, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _initialized:
        return
    try:
        logfire.error("{error_type}: {error_message}", error_type=error_type, error_message=error_message, **(context or {}))
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
