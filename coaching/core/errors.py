"""Domain errors shared by the scheduling and assessment engines.

Engines raise (or return, for booking operations) these instead of HTTP
errors; the route layer decides the status code and user-facing copy.
"""


class SchedulingError(Exception):
    """Base class carrying a machine readable ``code`` and a human ``message``."""

    default_code = 'error'

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(SchedulingError):
    """Malformed input to a pure function (slot labels, answer sets)."""

    default_code = 'validation_error'


class StorageError(SchedulingError):
    """The persistence layer was unreachable or rejected a write."""

    default_code = 'storage_error'


class PreconditionViolation(SchedulingError):
    """An operation was called while its stated precondition did not hold."""

    default_code = 'precondition_failed'


class SlotConflict(PreconditionViolation):
    """Another scheduled appointment already holds the requested start time."""

    default_code = 'slot_conflict'
