"""Error types raised or reported by the session core."""


class SessionError(Exception):
    """Base class for recording session errors."""


class InvalidDuration(SessionError):
    """Timer duration is not a positive number of milliseconds."""


class AlreadyRunning(SessionError):
    """A timer or recording start was requested while already active."""


class TimerRunning(SessionError):
    """Timer reset requested while the timer is still running."""


class SourceUnavailable(SessionError):
    """The audio/ASR source did not become ready."""


class GenerationFailed(SessionError):
    """The question generation service reported a failure."""


class PersistenceFailed(SessionError):
    """Saving transcript lines failed; lines are retained for a manual retry."""
