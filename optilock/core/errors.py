"""Error Hierarchy — typed, categorized exceptions for every optimistic-locking failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - StaleVersionConflict is recoverable (409); InternalConsistencyError is critical (500)
    - Store I/O errors are NOT wrapped here: SQLAlchemyError propagates from persist unmodified
    - to_response() produces the REST envelope used by api/error_handlers.py

Design Decisions:
    - Single hierarchy with OptiLockError base: one FastAPI handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Conflict never subclasses the consistency error: callers catch one without the other
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity_type: str | None = None
    entity_id: str | None = None
    expected_version: int | None = None
    affected_rows: int | None = None
    debug_info: dict[str, Any] | None = None


class OptiLockError(Exception):
    """Base exception for all optilock errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recoverable": self.recoverable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "entity_type": self.context.entity_type,
                    "entity_id": self.context.entity_id,
                    "expected_version": self.context.expected_version,
                },
            }
        }


# ─── Write Outcome Errors ────────────────────────────────────────

class StaleVersionConflict(OptiLockError):
    """Conditional write matched zero rows: version moved on, or row is gone."""
    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        expected_version: int,
        context: ErrorContext | None = None,
        operation: str = "update",
    ):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        ctx.entity_id = str(entity_id)
        ctx.expected_version = expected_version
        ctx.affected_rows = 0
        super().__init__(
            f"Attempted to {operation} a stale {entity_type} (id={entity_id}, "
            f"expected version {expected_version})",
            "STALE_VERSION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.operation = operation


class InternalConsistencyError(OptiLockError):
    """Identity predicate matched more than one row."""
    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        affected_rows: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        ctx.entity_id = str(entity_id)
        ctx.affected_rows = affected_rows
        super().__init__(
            f"Identity {entity_type}(id={entity_id}) matched {affected_rows} rows; "
            "expected at most one",
            "INTERNAL_CONSISTENCY_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.affected_rows = affected_rows


# ─── Usage Errors ────────────────────────────────────────────────

class ImmutableIdentityError(OptiLockError):
    """Primary key of a persisted entity was modified in memory."""
    def __init__(self, entity_type: str, entity_id: Any, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        ctx.entity_id = str(entity_id)
        super().__init__(
            f"Identity of {entity_type}(id={entity_id}) cannot change after creation",
            "IMMUTABLE_IDENTITY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )


class UnsavedEntityError(OptiLockError):
    """persist/delete called on an entity that was never created."""
    def __init__(self, entity_type: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        super().__init__(
            f"{entity_type} has no identity yet; create it before persisting",
            "UNSAVED_ENTITY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )


class LockPolicyUnboundError(OptiLockError):
    """Locking toggles used before the entity was bound to a repository."""
    def __init__(self, entity_type: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        super().__init__(
            f"{entity_type} has no lock policy; load it through a repository "
            "or call attach() first",
            "LOCK_POLICY_UNBOUND", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, ctx, 500,
        )


class ResourceNotFoundError(OptiLockError):
    """Requested entity does not exist."""
    def __init__(
        self, resource_type: str, resource_id: Any, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_type = resource_type
        ctx.entity_id = str(resource_id)
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


class InvalidVersionTokenError(OptiLockError):
    """Client-supplied version token (ETag / If-Match) is not a version."""
    def __init__(self, token: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.debug_info = {"token": token}
        super().__init__(
            f"Invalid version token: {token!r}",
            "INVALID_VERSION_TOKEN", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
