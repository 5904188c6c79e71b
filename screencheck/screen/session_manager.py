"""
Capture session manager module.

This module drives the lifecycle of a single screen-capture session:
request, grant, deny, cancel and end, with resource release on every
exit path.
"""

import asyncio
from typing import Callable, List, Optional

from screencheck.common.constants import ErrorKind, Messages, SessionStatus
from screencheck.common.protocol_definitions import (
    SessionSnapshot, create_capture_constraints, create_session_error
)
from screencheck.screen.capture_stream import CaptureProvider, CaptureStream, CaptureTrack
from screencheck.screen.errors import ErrorClassifier
from screencheck.screen.metadata import extract_metadata
from screencheck.utils.config import ClientConfig
from screencheck.utils.logger import logger


class _Session:
    """One acquisition-to-release lifespan of a capture stream."""

    def __init__(self, stream: CaptureStream, track: Optional[CaptureTrack]):
        self.stream = stream
        self.track = track
        self.ended = False
        self.on_track_ended: Optional[Callable[[], None]] = None


class SessionManager:
    """Owns at most one capture session and exposes its state.

    Commands are ``start()`` and ``stop()``; ``dispose()`` tears the manager
    down. State is read through properties or observed with
    ``add_listener()``, which receives a ``SessionSnapshot`` on every change.
    All calls are expected on one event loop.
    """

    def __init__(self, provider: Optional[CaptureProvider], config: Optional[ClientConfig] = None,
                 classifier: Optional[ErrorClassifier] = None):
        self.provider = provider
        self.config = config or ClientConfig()
        self.classifier = classifier or ErrorClassifier(self.config.cancel_keywords)

        self._status = SessionStatus.IDLE
        self._metadata = None
        self._error = None
        self._session: Optional[_Session] = None

        self._alive = True
        # Bumped by start/stop/dispose; a settlement for an older request is stale
        self._request_id = 0
        self._listeners: List[Callable[[SessionSnapshot], None]] = []

    # Observable state

    @property
    def status(self) -> str:
        return self._status

    @property
    def stream(self) -> Optional[CaptureStream]:
        return self._session.stream if self._session else None

    @property
    def metadata(self):
        return self._metadata

    @property
    def error(self):
        return self._error

    @property
    def is_disposed(self) -> bool:
        return not self._alive

    @property
    def is_supported(self) -> bool:
        """Capability probe: capture function present and context secure."""
        if self.provider is None:
            return False
        try:
            if not self.provider.is_available():
                return False
            if self.config.require_secure_context and not self.provider.is_secure_context():
                return False
        except Exception as e:
            logger.log_error("capability probe", e)
            return False
        return True

    def snapshot(self) -> SessionSnapshot:
        """Get the current observable state."""
        return SessionSnapshot(
            status=self._status,
            stream=self.stream,
            metadata=self._metadata,
            error=self._error,
            is_supported=self.is_supported
        )

    def add_listener(self, callback: Callable[[SessionSnapshot], None]):
        """Observe state changes."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[SessionSnapshot], None]):
        """Stop observing state changes."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # Commands

    async def start(self):
        """Request a new capture session, replacing any existing one."""
        if not self._alive:
            logger.warning("[SESSION] start() ignored, manager is disposed")
            return

        self._request_id += 1
        request_id = self._request_id
        self._end_session()

        if not self.is_supported:
            self._commit(
                SessionStatus.ERROR,
                error=create_session_error(ErrorKind.UNKNOWN, Messages.UNSUPPORTED)
            )
            return

        self._commit(SessionStatus.REQUESTING)
        constraints = create_capture_constraints(self.config.frame_rate)

        try:
            stream = await self.provider.acquire(constraints)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._is_current(request_id):
                logger.debug(f"[SESSION] Discarding stale failure: {e}")
                return
            error = self.classifier.classify(e)
            logger.log_session_error(error)
            self._commit(self.classifier.status_for(error), error=error)
            return

        if not self._is_current(request_id):
            logger.info("[SESSION] Releasing stream granted after teardown")
            stream.stop_all()
            return

        try:
            video_tracks = stream.get_video_tracks()
            track = video_tracks[0] if video_tracks else None
            session = _Session(stream, track)
            metadata = None

            if track is not None:
                metadata = extract_metadata(track)
                session.on_track_ended = lambda: self._on_track_ended(session)
                track.add_ended_listener(session.on_track_ended)
        except Exception as e:
            logger.log_error("session setup", e)
            stream.stop_all()
            self._commit(
                SessionStatus.ERROR,
                error=create_session_error(ErrorKind.UNKNOWN, str(e) or Messages.START_FAILED)
            )
            return

        self._session = session
        logger.log_metadata(metadata)
        self._commit(SessionStatus.ACTIVE, metadata=metadata)

        # Ended before the listener was attached
        if track is not None and not track.is_live:
            self._on_track_ended(session)

    def stop(self):
        """Stop the current session. Safe to call in any state."""
        if not self._alive:
            return
        # A request still in flight must not become active afterwards
        self._request_id += 1
        self._end_session()
        self._commit(SessionStatus.STOPPED)

    def dispose(self):
        """Tear down the manager. Later settlements are released and ignored."""
        if not self._alive:
            return
        self._alive = False
        self._request_id += 1
        self._end_session()
        self._listeners.clear()
        logger.debug("[SESSION] Manager disposed")

    # Internals

    def _is_current(self, request_id: int) -> bool:
        return self._alive and request_id == self._request_id

    def _end_session(self) -> bool:
        """Release the held session exactly once. Returns False if there was nothing to end."""
        session = self._session
        self._session = None
        if session is None or session.ended:
            return False

        session.ended = True
        if session.track is not None and session.on_track_ended is not None:
            session.track.remove_ended_listener(session.on_track_ended)
        session.stream.stop_all()
        logger.debug(f"[SESSION] Released stream {session.stream.id}")
        return True

    def _on_track_ended(self, session: _Session):
        if not self._alive or session is not self._session or session.ended:
            return
        logger.info("[SESSION] Capture ended by the platform")
        self._end_session()
        self._commit(SessionStatus.STOPPED)

    def _commit(self, status: str, metadata=None, error=None):
        """Apply a transition and notify listeners if anything changed."""
        before = (self._status, self._metadata, self._error)
        self._status = status
        self._metadata = metadata
        self._error = error

        if before[0] != status:
            logger.log_transition(before[0], status)
        if before == (status, metadata, error):
            return

        snapshot = self.snapshot()
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception as e:
                logger.log_error("session listener", e)
