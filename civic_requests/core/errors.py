"""
Typed errors raised by the request core.

The HTTP layer (``civic_requests.main``) translates each of these into a
response; nothing below the routers knows about status codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class CivicError(Exception):
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(CivicError):
    def __init__(self, errors: List[FieldError], message: str = "Invalid input"):
        super().__init__(message)
        self.errors = list(errors)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])


class Unauthenticated(CivicError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(CivicError):
    # never carries request details
    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(CivicError):
    def __init__(self, request_id: Optional[str] = None):
        super().__init__("Request not found")
        self.request_id = request_id


class ConflictError(CivicError):
    def __init__(self, message: str = "Request was modified concurrently, re-fetch and retry"):
        super().__init__(message)


class StorageUnavailable(CivicError):
    retryable = True

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(message)
