"""Error taxonomy for the availability and booking engine.

Every error carries a machine-readable ``kind`` and a human message that
can be rendered directly. Nothing here is retried internally; only
``ConflictError`` is a legitimate race outcome a caller may retry after a
fresh availability read.
"""


class SchedulingError(Exception):
    """Base exception for scheduling failures."""

    kind = "scheduling_error"

    def __init__(self, message: str, kind: str | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)


class ValidationError(SchedulingError):
    """Malformed input, rejected before touching storage."""

    kind = "validation"


class InvalidTransitionError(ValidationError):
    """The requested status change is not allowed from the current status."""

    kind = "invalid_transition"


class NotFoundError(SchedulingError):
    kind = "not_found"


class ForbiddenError(SchedulingError):
    """The actor does not own the resource or lacks the role."""

    kind = "forbidden"


class ConflictError(SchedulingError):
    """The slot is no longer available, or the row changed since it was read."""

    kind = "conflict"

    def __init__(self, message: str = "This time slot is no longer available. Please choose another."):
        super().__init__(message)


class PolicyViolationError(SchedulingError):
    """Cancel or reschedule attempted inside the protected window."""

    kind = "policy_violation"
