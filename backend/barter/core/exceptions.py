"""
Domain error taxonomy.

Services raise these instead of building HTTPExceptions inline. Each one
is still an HTTPException, so FastAPI renders it with the matching status
code and no extra handler is needed.
"""

from typing import Optional

from fastapi import HTTPException, status


class DomainError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class InvalidOperationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not allowed in the current state"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"

    def __init__(self):
        # Reasons are never echoed back to the caller
        super().__init__()


class StorageError(DomainError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "A storage error occurred"
