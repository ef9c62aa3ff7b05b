"""
conveyor-ai Server Package.

FastAPI application exposing static pipelines, dynamic executions and the
review gateway over HTTP.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Configuration, constants and database connections.
    services: Service wiring and FastAPI dependencies.
    exception_handlers: Mapping of engine errors to HTTP responses.
"""
