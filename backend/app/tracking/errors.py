"""Exceptions raised by the live tracking engine."""

from enum import Enum


class TrackingError(Exception):
    """Base class for tracking failures."""


class PositionErrorKind(str, Enum):
    permission_denied = "permission_denied"
    position_unavailable = "position_unavailable"
    timeout = "timeout"


POSITION_ERROR_MESSAGES = {
    PositionErrorKind.permission_denied: "Location access denied by user",
    PositionErrorKind.position_unavailable: "Location information unavailable",
    PositionErrorKind.timeout: "Location request timed out",
}


class PositionError(TrackingError):
    """The position source failed; live tracking must stop."""

    def __init__(self, kind: PositionErrorKind, detail: str | None = None):
        self.kind = PositionErrorKind(kind)
        self.detail = detail
        super().__init__(POSITION_ERROR_MESSAGES[self.kind])

    @property
    def message(self) -> str:
        return POSITION_ERROR_MESSAGES[self.kind]


class SubmissionError(TrackingError):
    """A tracking record could not be delivered to its sink."""


class SessionNotActiveError(TrackingError):
    """Operation requires a running tracking session."""


class NoPositionError(TrackingError):
    """No position has been received yet."""
