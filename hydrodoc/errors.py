"""Exception types raised by the pipeline and its stores."""


class HydroDocError(Exception):
    """Base class for pipeline errors."""


class SessionNotFoundError(HydroDocError, KeyError):
    """No checkpoint or artifact exists for the given session id."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Unknown session '{self.session_id}'."


class SessionNotPausedError(HydroDocError):
    """Resume was requested for a session that is not waiting for review."""


class StreamClosedError(HydroDocError):
    """An event was published after the stream already ended."""
