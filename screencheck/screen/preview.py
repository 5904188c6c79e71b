"""
Screen preview module.

This module attaches read-only to a captured video track, keeps the
latest frame and writes snapshots with Pillow.
"""

import time
from pathlib import Path
from typing import Optional

from PIL import Image as PILImage

from screencheck.common.constants import DEFAULT_SNAPSHOT_QUALITY, FRAME_STATS_INTERVAL
from screencheck.screen.capture_stream import CaptureTrack
from screencheck.utils.logger import logger


class SnapshotSink:
    """Read-only frame consumer for a capture track."""

    def __init__(self):
        self.track: Optional[CaptureTrack] = None
        self.latest_frame: Optional[PILImage.Image] = None
        self.frame_count = 0
        self._first_frame_at: Optional[float] = None
        self._last_frame_at: Optional[float] = None

    def attach(self, track: CaptureTrack):
        """Start receiving frames from a track."""
        self.detach()
        self.track = track
        track.add_sink(self)
        logger.debug(f"[PREVIEW] Attached to track {track.id}")

    def detach(self):
        """Stop receiving frames. The track itself is left running."""
        if self.track is not None:
            self.track.remove_sink(self)
            self.track = None

    def __call__(self, frame: PILImage.Image):
        now = time.time()
        if self._first_frame_at is None:
            self._first_frame_at = now
        self._last_frame_at = now
        self.latest_frame = frame
        self.frame_count += 1

        if self.frame_count % FRAME_STATS_INTERVAL == 0:
            logger.debug(f"[PREVIEW] Frames: {self.frame_count}, "
                         f"FPS: {self.measured_fps:.1f}, "
                         f"Resolution: {frame.width}x{frame.height}")

    @property
    def measured_fps(self) -> float:
        if self.frame_count < 2 or self._first_frame_at is None:
            return 0.0
        elapsed = self._last_frame_at - self._first_frame_at
        return (self.frame_count - 1) / elapsed if elapsed > 0 else 0.0

    def save(self, path, quality: int = DEFAULT_SNAPSHOT_QUALITY) -> Path:
        """Write the latest frame to disk."""
        if self.latest_frame is None:
            raise ValueError("No frame has been received yet")

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.suffix.lower() in ('.jpg', '.jpeg'):
            self.latest_frame.convert('RGB').save(target, format='JPEG', quality=quality, optimize=True)
        else:
            self.latest_frame.save(target)

        size_kb = target.stat().st_size / 1024
        logger.info(f"[PREVIEW] Snapshot saved to {target} ({size_kb:.1f} KB)")
        return target
