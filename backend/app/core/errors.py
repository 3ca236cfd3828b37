"""
Domain errors raised by the services layer.
Each carries the HTTP status it maps to; ``app.main`` renders them as JSON.
"""
from typing import Any, Dict, Optional


class RecordsError(Exception):
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(RecordsError):
    status_code = 404


class ForbiddenError(RecordsError):
    status_code = 403


class ValidationFailure(RecordsError):
    status_code = 400


class StorageError(RecordsError):
    status_code = 500
