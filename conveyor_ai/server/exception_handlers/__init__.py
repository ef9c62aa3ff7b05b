"""
Exception handlers for the conveyor-ai server.

Maps the engine's error taxonomy to HTTP responses and provides a last-resort
handler for anything unexpected.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
