"""
Data definitions for the screen-capture test client.

This module defines the data structures exchanged between the session
manager, the capture providers and whatever presents the session state.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass

from screencheck.common.constants import DEFAULT_FRAME_RATE, DisplaySurface


@dataclass(frozen=True)
class ScreenMetadata:
    """Negotiated properties of a captured video track."""
    display_surface: str = DisplaySurface.UNKNOWN
    width: int = 0
    height: int = 0
    frame_rate: float = 0


@dataclass(frozen=True)
class SessionError:
    """Structured failure of a capture attempt."""
    kind: str
    message: str


@dataclass(frozen=True)
class SessionSnapshot:
    """Observable state of a session manager at one instant."""
    status: str
    stream: Optional[Any] = None
    metadata: Optional[ScreenMetadata] = None
    error: Optional[SessionError] = None
    is_supported: bool = False


def create_capture_constraints(frame_rate: float = DEFAULT_FRAME_RATE) -> Dict[str, Any]:
    """Create video-only capture constraints with a target frame rate hint."""
    return {
        "video": {
            "frame_rate": {"ideal": frame_rate}
        },
        "audio": False
    }


def create_session_error(kind: str, message: str) -> SessionError:
    """Create a session error."""
    return SessionError(kind=kind, message=message)


def create_metadata(display_surface: str, width: int, height: int, frame_rate: float) -> ScreenMetadata:
    """Create a metadata snapshot."""
    return ScreenMetadata(
        display_surface=display_surface,
        width=width,
        height=height,
        frame_rate=frame_rate
    )
