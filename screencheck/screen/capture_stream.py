"""
Capture stream module.

This module defines the contract between the session manager and a
capture provider: tracks, streams and the provider itself. Concrete
providers subclass these.
"""

import uuid
from typing import Any, Callable, Dict, List, Optional

from screencheck.common.constants import TrackState
from screencheck.utils.logger import logger


class CaptureTrack:
    """A single captured media track."""

    def __init__(self, kind: str = 'video', settings: Optional[Dict[str, Any]] = None,
                 track_id: Optional[str] = None):
        self.id = track_id or uuid.uuid4().hex
        self.kind = kind
        self.ready_state = TrackState.LIVE
        self._settings = dict(settings or {})
        self._ended_listeners: List[Callable[[], None]] = []
        self._sinks: List[Callable[[Any], None]] = []

    @property
    def is_live(self) -> bool:
        return self.ready_state == TrackState.LIVE

    @property
    def ended_listener_count(self) -> int:
        return len(self._ended_listeners)

    @property
    def has_sinks(self) -> bool:
        return bool(self._sinks)

    def get_settings(self) -> Dict[str, Any]:
        """Get the negotiated track settings."""
        return dict(self._settings)

    def add_ended_listener(self, callback: Callable[[], None]):
        """Subscribe to the platform-initiated end of this track."""
        if callback not in self._ended_listeners:
            self._ended_listeners.append(callback)

    def remove_ended_listener(self, callback: Callable[[], None]):
        """Unsubscribe from the end notification. Unknown callbacks are ignored."""
        if callback in self._ended_listeners:
            self._ended_listeners.remove(callback)

    def add_sink(self, sink: Callable[[Any], None]):
        """Attach a read-only frame consumer."""
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: Callable[[Any], None]):
        """Detach a frame consumer."""
        if sink in self._sinks:
            self._sinks.remove(sink)

    def stop(self):
        """Stop the track. Does not fire ended listeners."""
        if not self.is_live:
            return
        self.ready_state = TrackState.ENDED
        self._on_stop()

    def end(self):
        """End the track from the platform side and notify ended listeners once."""
        if not self.is_live:
            return
        self.ready_state = TrackState.ENDED
        self._on_stop()
        for callback in list(self._ended_listeners):
            try:
                callback()
            except Exception as e:
                logger.log_error("track ended listener", e)

    def deliver(self, frame: Any):
        """Hand a frame to every attached sink."""
        for sink in list(self._sinks):
            try:
                sink(frame)
            except Exception as e:
                logger.log_error("frame sink", e)

    def _on_stop(self):
        """Release provider resources. Called once when the track leaves the live state."""


class CaptureStream:
    """A captured stream made of zero or more tracks."""

    def __init__(self, tracks: Optional[List[CaptureTrack]] = None, stream_id: Optional[str] = None):
        self.id = stream_id or uuid.uuid4().hex
        self._tracks = list(tracks or [])

    @property
    def active(self) -> bool:
        return any(track.is_live for track in self._tracks)

    def get_tracks(self) -> List[CaptureTrack]:
        return list(self._tracks)

    def get_video_tracks(self) -> List[CaptureTrack]:
        return [track for track in self._tracks if track.kind == 'video']

    def stop_all(self):
        """Stop every track of the stream."""
        for track in self._tracks:
            track.stop()


class CaptureProvider:
    """Platform facility that grants access to a screen capture stream."""

    def is_available(self) -> bool:
        """Whether the platform exposes a capture-acquisition function."""
        raise NotImplementedError

    def is_secure_context(self) -> bool:
        """Whether capture may be requested from the current execution context."""
        raise NotImplementedError

    async def acquire(self, constraints: Dict[str, Any]) -> CaptureStream:
        """Request a capture stream. Raises on denial, dismissal or failure."""
        raise NotImplementedError
