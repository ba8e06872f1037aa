"""
Custom exception classes for better error handling
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException


class StageflowBaseException(Exception):
    """Base exception for all Stageflow exceptions"""
    def __init__(self, message: str, code: str = "STAGEFLOW_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(StageflowBaseException):
    """Raised when input validation fails"""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class StoreError(StageflowBaseException):
    """Raised when the persistence collaborator reports a failure"""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        record_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "STORE_ERROR", details)
        self.operation = operation
        self.table = table
        self.record_id = record_id

    def __str__(self) -> str:
        context = ", ".join(
            f"{key}={value}"
            for key, value in (("operation", self.operation), ("table", self.table), ("id", self.record_id))
            if value
        )
        return f"{self.message} ({context})" if context else self.message


class ResourceNotFoundError(StageflowBaseException):
    """Raised when a resource is not found"""
    def __init__(self, resource_type: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(message, "NOT_FOUND", details)
        self.resource_type = resource_type
        self.resource_id = resource_id


def create_http_exception(error: StageflowBaseException) -> HTTPException:
    """Convert a StageflowBaseException to an HTTPException"""
    status_code = 500  # Default to internal server error

    if isinstance(error, ValidationError):
        status_code = 400
    elif isinstance(error, ResourceNotFoundError):
        status_code = 404
    elif isinstance(error, StoreError):
        status_code = 503

    return HTTPException(
        status_code=status_code,
        detail={
            "code": error.code,
            "message": error.message,
            "details": error.details
        }
    )
