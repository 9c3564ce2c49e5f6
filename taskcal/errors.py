class TaskcalError(Exception):
    """Base class for errors surfaced to the user as a notification."""


class ValidationError(TaskcalError):
    """Rejected client-side input (empty task text, malformed date key or id)."""


class BackendError(TaskcalError):
    """The persistence backend failed a select, delete or insert."""


class FetchError(TaskcalError):
    """Loading the task set failed. The snapshot keeps its last good value."""


class WriteError(TaskcalError):
    """Replacing a day failed. The snapshot has already been resynced."""
