"""Error taxonomy for the browser harness."""

from __future__ import annotations

import enum

# Substrings reported by drivers when the connection to the browser dropped
# mid-request. The session usually survives these.
TRANSPORT_ERROR_MARKERS = (
    "unexpected end of stream on Connection",
    "caused connection abort: recv failed",
    "Connection aborted",
    "RemoteDisconnected",
    "Connection reset by peer",
)

# Substrings reported when the remote session itself is gone.
SESSION_GONE_MARKERS = ("invalid session id", "session deleted", "no such session")

MODAL_ERROR_MARKERS = ("Modal", "modal dialog", "unexpected alert open")


class HarnessError(RuntimeError):
    """Base class for all harness errors."""


class SessionUnavailable(HarnessError):
    """Raised when no usable browser session can be provided."""


class ConstructionError(SessionUnavailable):
    """Raised when a browser session could not be created at all."""


class NoOpenWindowsError(SessionUnavailable):
    """Raised when recovery finds no open window; the browser likely terminated."""


class LocatorSyntaxError(HarnessError, ValueError):
    """Raised for blank or unrecognised locators."""


class StabilityCheckError(HarnessError):
    """Raised when page stability polling fails after partial progress."""


class EndpointError(HarnessError):
    """Raised by automation endpoints for protocol failures."""


class StaleWindowError(EndpointError):
    """The targeted window or tab no longer exists."""


class NoSuchSessionError(EndpointError):
    """The remote session is gone."""


class TransientTransportError(EndpointError):
    """The connection to the browser dropped; the session may still be alive."""


class UnexpectedDialogError(EndpointError):
    """A native dialog blocks the requested operation."""


class EndpointTimeoutError(EndpointError):
    """The endpoint did not answer within its timeout."""


class NoSuchElementError(EndpointError):
    """No element matched a locator."""


class FailureKind(str, enum.Enum):
    """Coarse classification of endpoint failures."""

    STALE_WINDOW = "stale_window"
    TRANSPORT = "transport"
    NO_SESSION = "no_session"
    DIALOG = "dialog"
    TIMEOUT = "timeout"
    OTHER = "other"


def classify_failure(exc: BaseException) -> FailureKind:
    """Classify ``exc`` by type first and by known message markers second."""

    if isinstance(exc, StaleWindowError):
        return FailureKind.STALE_WINDOW
    if isinstance(exc, TransientTransportError):
        return FailureKind.TRANSPORT
    if isinstance(exc, NoSuchSessionError):
        return FailureKind.NO_SESSION
    if isinstance(exc, UnexpectedDialogError):
        return FailureKind.DIALOG
    if isinstance(exc, EndpointTimeoutError):
        return FailureKind.TIMEOUT
    message = str(exc)
    if any(marker in message for marker in SESSION_GONE_MARKERS):
        return FailureKind.NO_SESSION
    if any(marker in message for marker in TRANSPORT_ERROR_MARKERS):
        return FailureKind.TRANSPORT
    if is_modal_blocking(exc):
        return FailureKind.DIALOG
    return FailureKind.OTHER


def is_modal_blocking(exc: BaseException) -> bool:
    """Return True when ``exc`` signals that a modal dialog blocks the page."""

    if isinstance(exc, UnexpectedDialogError):
        return True
    message = str(exc)
    return any(marker in message for marker in MODAL_ERROR_MARKERS)
