"""
Desktop screen capture provider.

This module grabs monitor contents with mss and hands frames to
preview sinks as Pillow images.
"""

import asyncio
import inspect
import os
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import mss as mss_module
from mss.exception import ScreenShotError
from PIL import Image as PILImage

from screencheck.common.constants import (
    DEFAULT_FRAME_RATE, DEFAULT_MONITOR, FRAME_STATS_INTERVAL,
    MAX_CONSECUTIVE_GRAB_FAILURES, DisplaySurface
)
from screencheck.screen.capture_stream import CaptureProvider, CaptureStream, CaptureTrack
from screencheck.screen.errors import (
    CaptureAbortedError, CaptureNotFoundError, CapturePermissionError, CaptureProviderError
)
from screencheck.utils.logger import logger

# Receives the source about to be shared; True grants, False denies, None dismisses
ConsentCallback = Callable[[Dict[str, Any]], Union[Optional[bool], Awaitable[Optional[bool]]]]

LOCAL_DISPLAY_HOSTS = ('', 'localhost', 'unix', '127.0.0.1', '::1')


def _ideal_value(constraint, default):
    if isinstance(constraint, dict):
        for key in ('exact', 'ideal', 'max'):
            if constraint.get(key):
                return constraint[key]
        return default
    if isinstance(constraint, (int, float)) and constraint > 0:
        return constraint
    return default


def display_is_local(display: Optional[str]) -> bool:
    """Whether an X11 DISPLAY value points at this machine."""
    if not display:
        return True
    host = display.rsplit(':', 1)[0]
    # XQuartz and friends use a socket path as the host part
    return host in LOCAL_DISPLAY_HOSTS or host.startswith('/')


class MssVideoTrack(CaptureTrack):
    """Video track that grabs one monitor at a fixed frame rate."""

    def __init__(self, monitor: int, geometry: Dict[str, int], frame_rate: float):
        super().__init__(kind='video', settings={
            'display_surface': DisplaySurface.MONITOR,
            'width': geometry['width'],
            'height': geometry['height'],
            'frame_rate': frame_rate,
            'device_id': f"monitor:{monitor}",
        })
        self.monitor = monitor
        self.geometry = dict(geometry)
        self.frame_rate = frame_rate
        self.frame_count = 0
        self._task: Optional[asyncio.Task] = None

    def start(self):
        """Start the capture task on the running loop."""
        if self._task is None and self.is_live:
            self._task = asyncio.get_running_loop().create_task(self._capture_loop())

    def _on_stop(self):
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _capture_loop(self):
        """Grab frames until the track stops or the display goes away."""
        frame_interval = 1.0 / self.frame_rate
        failures = 0
        start_time = time.time()
        display_lost = False

        logger.info(f"[CAPTURE] Capturing monitor {self.monitor} at {self.frame_rate} FPS")

        try:
            with mss_module.mss() as sct:
                while self.is_live:
                    loop_start = time.time()

                    try:
                        screenshot = sct.grab(self.geometry)
                        frame = None
                        if self.has_sinks:
                            frame = PILImage.frombytes('RGB', screenshot.size, screenshot.rgb)
                    except Exception as e:
                        failures += 1
                        logger.warning(f"[CAPTURE] Grab failed ({failures}/{MAX_CONSECUTIVE_GRAB_FAILURES}): {e}")
                        if failures >= MAX_CONSECUTIVE_GRAB_FAILURES:
                            display_lost = True
                            break
                    else:
                        failures = 0
                        self.frame_count += 1
                        if frame is not None:
                            self.deliver(frame)

                        if self.frame_count % FRAME_STATS_INTERVAL == 0:
                            elapsed = time.time() - start_time
                            actual_fps = self.frame_count / elapsed if elapsed > 0 else 0
                            logger.debug(f"[CAPTURE] Frames: {self.frame_count}, FPS: {actual_fps:.1f}")

                    elapsed = time.time() - loop_start
                    await asyncio.sleep(max(0, frame_interval - elapsed))

        except asyncio.CancelledError:
            logger.debug("[CAPTURE] Capture cancelled")
            raise
        except Exception as e:
            # Opening the grabber or any other loop fault also ends the track
            logger.log_error("capture loop", e)
            display_lost = True
        finally:
            logger.info(f"[CAPTURE] Stopped. Total frames grabbed: {self.frame_count}")

        if display_lost:
            self.end()


class MssCaptureProvider(CaptureProvider):
    """Capture provider for local monitors."""

    def __init__(self, monitor: int = DEFAULT_MONITOR, consent: Optional[ConsentCallback] = None):
        self.monitor = monitor
        self.consent = consent
        self._available: Optional[bool] = None

    def is_available(self) -> bool:
        if self._available is None:
            try:
                with mss_module.mss() as sct:
                    # Index 0 is the virtual union of all monitors
                    self._available = len(sct.monitors) > 1
            except ScreenShotError as e:
                logger.debug(f"[CAPTURE] No display available: {e}")
                self._available = False
        return self._available

    def is_secure_context(self) -> bool:
        return display_is_local(os.environ.get('DISPLAY'))

    async def _ask_consent(self, source: Dict[str, Any]):
        if self.consent is None:
            return True
        decision = self.consent(source)
        if inspect.isawaitable(decision):
            decision = await decision
        return decision

    async def acquire(self, constraints: Dict[str, Any]) -> CaptureStream:
        if constraints.get('audio'):
            raise CaptureProviderError("Audio capture is not supported")
        video = constraints.get('video') or {}
        frame_rate = _ideal_value(video.get('frame_rate') if isinstance(video, dict) else None,
                                  DEFAULT_FRAME_RATE)

        try:
            with mss_module.mss() as sct:
                monitors = sct.monitors
                if self.monitor >= len(monitors):
                    raise CaptureNotFoundError(
                        f"Monitor {self.monitor} is not available ({len(monitors) - 1} detected)"
                    )
                geometry = dict(monitors[self.monitor])
        except ScreenShotError as e:
            raise CaptureProviderError(f"Unable to open the display: {e}") from e

        source = {
            'display_surface': DisplaySurface.MONITOR,
            'monitor': self.monitor,
            'width': geometry['width'],
            'height': geometry['height'],
        }
        decision = await self._ask_consent(source)
        if decision is None:
            raise CaptureAbortedError("The share prompt was dismissed")
        if not decision:
            raise CapturePermissionError("Permission denied by user")

        # Some platforms only refuse at grab time
        try:
            with mss_module.mss() as sct:
                sct.grab(geometry)
        except ScreenShotError as e:
            raise CaptureProviderError(f"Screen grab failed: {e}") from e

        track = MssVideoTrack(self.monitor, geometry, frame_rate)
        track.start()
        logger.info(f"[CAPTURE] Granted monitor {self.monitor} "
                    f"({geometry['width']}x{geometry['height']})")
        return CaptureStream([track])
