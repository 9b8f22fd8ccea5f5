"""FastAPI middleware for error handling."""

from .error_handlers import (
    document_exists_handler,
    document_not_found_handler,
    http_exception_handler,
    internal_exception_handler,
    invalid_path_handler,
    register_error_handlers,
    validation_exception_handler,
)

__all__ = [
    "register_error_handlers",
    "validation_exception_handler",
    "http_exception_handler",
    "document_not_found_handler",
    "document_exists_handler",
    "invalid_path_handler",
    "internal_exception_handler",
]
