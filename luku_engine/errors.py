"""
Engine error types.

Every failure surfaced to callers is an ``EngineError`` with a stable ``code``.
``StaleWriteError`` is internal to the transaction runner and signals a
version mismatch that should be retried.
"""
from typing import Optional


class EngineError(Exception):
    """Base class for gamification engine errors"""
    code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(EngineError, LookupError):
    code = "not_found"


class InvalidArgumentError(EngineError, ValueError):
    code = "invalid_argument"


class ConflictError(EngineError):
    code = "conflict"


class AlreadyExistsError(ConflictError):
    code = "already_exists"


class InsufficientPointsError(EngineError):
    code = "insufficient_points"

    def __init__(self, available: int, required: int, message: Optional[str] = None):
        super().__init__(
            message or f"Insufficient points: you have {available}, need {required}"
        )
        self.available = available
        self.required = required


class DependencyUnavailableError(EngineError):
    code = "dependency_unavailable"


class StaleWriteError(EngineError):
    """Conditional write rejected because the stored version moved on"""
    code = "stale_write"

    def __init__(self, user_id: str, expected_version: int):
        super().__init__(
            f"Concurrent modification detected for user {user_id} (expected version {expected_version})"
        )
        self.user_id = user_id
        self.expected_version = expected_version
