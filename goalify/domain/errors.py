"""
Error taxonomy of the task tracker

Every error carries a user-facing `message` that can be shown as-is.
"""

# Validation reasons
EMPTY_NAME = "EMPTY_NAME"
NAME_TOO_LONG = "NAME_TOO_LONG"
NOTE_TOO_LONG = "NOTE_TOO_LONG"
INVALID_COLOR = "INVALID_COLOR"
INVALID_ORDER = "INVALID_ORDER"
INVALID_ENABLED = "INVALID_ENABLED"


class TrackerError(Exception):
    code = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(TrackerError):
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "You are not signed in"):
        super().__init__(message)


class TaskValidationError(TrackerError, ValueError):
    code = "VALIDATION_ERROR"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class TaskNotFoundError(TrackerError):
    code = "NOT_FOUND"


class RemoteReadFailed(TrackerError):
    code = "REMOTE_READ_FAILED"


class RemoteWriteFailed(TrackerError):
    code = "REMOTE_WRITE_FAILED"


class PartialReorderFailure(RemoteWriteFailed):
    """Some reorder writes failed; others may have been persisted."""
    code = "PARTIAL_REORDER_FAILURE"

    def __init__(self, message: str, failed: int, total: int):
        super().__init__(message)
        self.failed = failed
        self.total = total


class RemoteTimeout(TrackerError):
    """
    The store did not answer within REMOTE_TIMEOUT_SECONDS.

    Only the wait is abandoned. A call already handed to a worker thread may still
    commit after the in-memory change was rolled back; the next initialize() picks
    the persisted row up. On PostgreSQL the same limit is set as statement_timeout.
    """
    code = "TIMEOUT"


class StoreError(Exception):
    """Raised by store adapters when the persistence service rejects a call or is unreachable."""
    pass
