"""
Capture error module.

Exceptions raised by capture providers and the classification of raw
provider failures into session errors.
"""

from typing import Sequence

from screencheck.common.constants import (
    DEFAULT_CANCEL_KEYWORDS, ErrorKind, ErrorNames, Messages, SessionStatus
)
from screencheck.common.protocol_definitions import SessionError, create_session_error


class CaptureProviderError(Exception):
    """Base class for capture provider failures."""
    name = 'CaptureProviderError'


class CaptureAbortedError(CaptureProviderError):
    """The user dismissed the capture prompt without deciding."""
    name = 'AbortError'


class CapturePermissionError(CaptureProviderError):
    """The user or a policy refused capture permission."""
    name = 'NotAllowedError'


class CaptureNotFoundError(CaptureProviderError):
    """The requested capture source does not exist."""
    name = 'NotFoundError'


ABORT = 'abort'
PERMISSION = 'permission'
OTHER = 'other'

STATUS_FOR_KIND = {
    ErrorKind.CANCELLED: SessionStatus.CANCELLED,
    ErrorKind.DENIED: SessionStatus.DENIED,
    ErrorKind.UNKNOWN: SessionStatus.ERROR,
}


def error_category(err: BaseException) -> str:
    """Read the failure category from the error's name, falling back to its class name."""
    name = getattr(err, 'name', None)
    if not isinstance(name, str) or not name:
        name = type(err).__name__
    name = name.lower()
    if name in ErrorNames.ABORT:
        return ABORT
    if name in ErrorNames.PERMISSION:
        return PERMISSION
    return OTHER


class ErrorClassifier:
    """Classifies raw provider failures as cancelled, denied or unknown.

    Platforms disagree on how a dismissed picker is reported: some raise an
    abort, others a permission refusal whose message mentions cancellation.
    ``cancel_keywords`` decides which permission refusals count as a
    cancellation; pass an empty sequence to treat all of them as denials.
    """

    def __init__(self, cancel_keywords: Sequence[str] = DEFAULT_CANCEL_KEYWORDS):
        self.cancel_keywords = tuple(k.lower() for k in cancel_keywords if k)

    def _mentions_cancel(self, message: str) -> bool:
        lowered = message.lower()
        return any(keyword in lowered for keyword in self.cancel_keywords)

    def classify(self, err) -> SessionError:
        """Classify a raw provider failure."""
        if not isinstance(err, BaseException):
            return create_session_error(ErrorKind.UNKNOWN, Messages.UNEXPECTED)

        category = error_category(err)
        message = str(err)

        if category == ABORT or (category == PERMISSION and self._mentions_cancel(message)):
            return create_session_error(ErrorKind.CANCELLED, Messages.CANCELLED)

        if category == PERMISSION:
            return create_session_error(ErrorKind.DENIED, Messages.DENIED)

        return create_session_error(ErrorKind.UNKNOWN, message or Messages.START_FAILED)

    @staticmethod
    def status_for(error: SessionError) -> str:
        """Session status that a classified error settles into."""
        return STATUS_FOR_KIND.get(error.kind, SessionStatus.ERROR)
