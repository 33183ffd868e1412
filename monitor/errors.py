"""Exception taxonomy for the monitoring core.

Control-surface errors (``InvalidArgument``, ``SessionNotFound``) are raised
to the caller and mapped to HTTP statuses by ``api.routes``. Subprocess and
frame-level failures are reported as events instead and never appear here.
"""


class MonitorError(Exception):
    """Base class for every error raised by the monitoring core."""


class InvalidArgument(MonitorError):
    """A control-surface request was missing or carried a bad value."""


class SessionNotFound(MonitorError):
    """No active session has the requested id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id


class SpawnError(MonitorError):
    """The agent subprocess could not be started."""


class CorrelationError(MonitorError):
    """A tool-call id was registered twice within one session."""
