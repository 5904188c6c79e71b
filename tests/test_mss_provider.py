#!/usr/bin/env python3
"""
Unit tests for the mss desktop capture provider.

mss is patched out; grabs return tiny fake screenshots.
"""

import asyncio
import os
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from mss.exception import ScreenShotError

from screencheck.common.constants import SessionStatus
from screencheck.common.protocol_definitions import ScreenMetadata, create_capture_constraints
from screencheck.screen.errors import (
    CaptureAbortedError, CaptureNotFoundError, CapturePermissionError, CaptureProviderError
)
from screencheck.screen.mss_provider import MssCaptureProvider, display_is_local
from screencheck.screen.session_manager import SessionManager

MONITORS = [
    {'left': 0, 'top': 0, 'width': 3840, 'height': 1080},
    {'left': 0, 'top': 0, 'width': 1920, 'height': 1080},
    {'left': 1920, 'top': 0, 'width': 1920, 'height': 1080},
]
FRAME = SimpleNamespace(size=(2, 2), rgb=bytes(range(12)))


class TestDisplayIsLocal(unittest.TestCase):

    def test_local_displays(self):
        for display in (None, '', ':0', ':1.0', 'localhost:10.0', 'unix:0',
                        '/private/tmp/com.apple.launchd.abc/org.xquartz:0'):
            with self.subTest(display=display):
                self.assertTrue(display_is_local(display))

    def test_remote_displays(self):
        for display in ('workstation:0', '10.0.0.5:0.0'):
            with self.subTest(display=display):
                self.assertFalse(display_is_local(display))


class MssProviderTestCase(unittest.IsolatedAsyncioTestCase):
    """Patches mss with a fake screen grabber."""

    def setUp(self):
        patcher = patch('screencheck.screen.mss_provider.mss_module')
        self.mock_mss = patcher.start()
        self.addCleanup(patcher.stop)
        self.sct = MagicMock()
        self.sct.monitors = MONITORS
        self.sct.grab.return_value = FRAME
        self.mock_mss.mss.return_value.__enter__.return_value = self.sct
        self.tracks = []

    async def acquire(self, provider, frame_rate=30):
        stream = await provider.acquire(create_capture_constraints(frame_rate))
        self.tracks.extend(stream.get_tracks())
        return stream

    async def asyncTearDown(self):
        for track in self.tracks:
            track.stop()
        await asyncio.sleep(0)


class TestCapability(MssProviderTestCase):

    def test_available_with_monitors(self):
        provider = MssCaptureProvider()
        self.assertTrue(provider.is_available())
        self.assertTrue(provider.is_available())
        self.assertEqual(self.mock_mss.mss.call_count, 1)

    def test_unavailable_without_display(self):
        self.mock_mss.mss.side_effect = ScreenShotError("Unable to open display")
        self.assertFalse(MssCaptureProvider().is_available())

    def test_unavailable_without_physical_monitor(self):
        self.sct.monitors = MONITORS[:1]
        self.assertFalse(MssCaptureProvider().is_available())

    def test_secure_context_follows_display(self):
        provider = MssCaptureProvider()
        with patch.dict(os.environ, {'DISPLAY': 'workstation:0'}):
            self.assertFalse(provider.is_secure_context())
        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            self.assertTrue(provider.is_secure_context())
        with patch.dict(os.environ, {}, clear=True):
            self.assertTrue(provider.is_secure_context())


class TestAcquire(MssProviderTestCase):

    async def test_grant_returns_monitor_track(self):
        stream = await self.acquire(MssCaptureProvider(monitor=2))

        tracks = stream.get_video_tracks()
        self.assertEqual(len(tracks), 1)
        settings = tracks[0].get_settings()
        self.assertEqual(settings['display_surface'], 'monitor')
        self.assertEqual((settings['width'], settings['height']), (1920, 1080))
        self.assertEqual(settings['frame_rate'], 30)
        self.assertEqual(settings['device_id'], 'monitor:2')
        self.assertTrue(stream.active)

    async def test_audio_is_rejected(self):
        with self.assertRaises(CaptureProviderError):
            await MssCaptureProvider().acquire({'video': {}, 'audio': True})

    async def test_missing_monitor(self):
        with self.assertRaises(CaptureNotFoundError):
            await self.acquire(MssCaptureProvider(monitor=5))

    async def test_display_failure(self):
        self.mock_mss.mss.side_effect = ScreenShotError("Unable to open display")
        with self.assertRaises(CaptureProviderError):
            await self.acquire(MssCaptureProvider())

    async def test_probe_grab_failure(self):
        self.sct.grab.side_effect = ScreenShotError("CoreGraphics.CGWindowListCreateImage() failed")
        with self.assertRaises(CaptureProviderError):
            await self.acquire(MssCaptureProvider())

    async def test_consent_granted(self):
        seen = []

        async def consent(source):
            seen.append(source)
            return True

        stream = await self.acquire(MssCaptureProvider(consent=consent))

        self.assertTrue(stream.active)
        self.assertEqual(seen[0]['monitor'], 1)
        self.assertEqual(seen[0]['width'], 1920)

    async def test_consent_refused(self):
        with self.assertRaises(CapturePermissionError):
            await self.acquire(MssCaptureProvider(consent=lambda source: False))
        self.sct.grab.assert_not_called()

    async def test_consent_dismissed(self):
        with self.assertRaises(CaptureAbortedError):
            await self.acquire(MssCaptureProvider(consent=lambda source: None))


class TestCaptureLoop(MssProviderTestCase):

    async def test_frames_reach_sinks_as_images(self):
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        received = asyncio.Event()
        frames = []

        def sink(frame):
            frames.append(frame)
            received.set()

        track.add_sink(sink)
        await asyncio.wait_for(received.wait(), timeout=2)

        self.assertEqual(frames[0].size, (2, 2))
        self.assertEqual(frames[0].mode, 'RGB')

    async def test_stop_ends_capture_without_ended_notification(self):
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        ended = []
        track.add_ended_listener(lambda: ended.append(True))
        await asyncio.sleep(0.01)

        track.stop()
        await asyncio.sleep(0.01)
        count = track.frame_count
        await asyncio.sleep(0.01)

        self.assertFalse(track.is_live)
        self.assertEqual(track.frame_count, count)
        self.assertEqual(ended, [])

    async def test_lost_display_ends_track(self):
        grabs = {'count': 0}

        def grab(geometry):
            grabs['count'] += 1
            if grabs['count'] == 1:
                return FRAME
            raise ScreenShotError("XGetImage() failed")

        self.sct.grab.side_effect = grab
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        ended = asyncio.Event()
        track.add_ended_listener(ended.set)

        await asyncio.wait_for(ended.wait(), timeout=2)

        self.assertFalse(track.is_live)
        self.assertEqual(grabs['count'], 4)

    async def test_other_grab_errors_end_track(self):
        grabs = {'count': 0}

        def grab(geometry):
            grabs['count'] += 1
            if grabs['count'] == 1:
                return FRAME
            raise OSError("shared memory segment vanished")

        self.sct.grab.side_effect = grab
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        ended = asyncio.Event()
        track.add_ended_listener(ended.set)

        await asyncio.wait_for(ended.wait(), timeout=2)

        self.assertFalse(track.is_live)
        self.assertEqual(grabs['count'], 4)

    async def test_unconvertible_frames_end_track(self):
        self.sct.grab.return_value = SimpleNamespace(size=(2, 2), rgb=b'short')
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        frames = []
        track.add_sink(frames.append)
        ended = asyncio.Event()
        track.add_ended_listener(ended.set)

        await asyncio.wait_for(ended.wait(), timeout=2)

        self.assertFalse(track.is_live)
        self.assertEqual(frames, [])

    async def test_grabber_that_cannot_reopen_ends_track(self):
        opened = {'count': 0}
        context = self.mock_mss.mss.return_value

        def open_grabber():
            opened['count'] += 1
            if opened['count'] > 2:
                raise OSError("display connection refused")
            return context

        self.mock_mss.mss.side_effect = open_grabber
        stream = await self.acquire(MssCaptureProvider(), frame_rate=500)
        track = stream.get_video_tracks()[0]
        ended = asyncio.Event()
        track.add_ended_listener(ended.set)

        await asyncio.wait_for(ended.wait(), timeout=2)

        self.assertFalse(track.is_live)


class TestWithSessionManager(MssProviderTestCase):

    async def test_session_over_mss(self):
        manager = SessionManager(MssCaptureProvider())
        self.addCleanup(manager.dispose)

        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            await manager.start()

        self.assertEqual(manager.status, SessionStatus.ACTIVE)
        self.assertEqual(manager.metadata, ScreenMetadata('monitor', 1920, 1080, 30))
        self.tracks.extend(manager.stream.get_tracks())

        manager.stop()

        self.assertEqual(manager.status, SessionStatus.STOPPED)
        self.assertFalse(self.tracks[0].is_live)

    async def test_refused_consent_is_denied(self):
        manager = SessionManager(MssCaptureProvider(consent=lambda source: False))
        self.addCleanup(manager.dispose)

        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            await manager.start()

        self.assertEqual(manager.status, SessionStatus.DENIED)

    async def test_dismissed_consent_is_cancelled(self):
        manager = SessionManager(MssCaptureProvider(consent=lambda source: None))
        self.addCleanup(manager.dispose)

        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            await manager.start()

        self.assertEqual(manager.status, SessionStatus.CANCELLED)

    async def test_lost_display_stops_session(self):
        grabs = {'count': 0}

        def grab(geometry):
            grabs['count'] += 1
            if grabs['count'] == 1:
                return FRAME
            raise ScreenShotError("XGetImage() failed")

        self.sct.grab.side_effect = grab
        manager = SessionManager(MssCaptureProvider())
        self.addCleanup(manager.dispose)
        stopped = asyncio.Event()
        manager.add_listener(lambda s: s.status == SessionStatus.STOPPED and stopped.set())

        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            await manager.start()
        await asyncio.wait_for(stopped.wait(), timeout=2)

        self.assertEqual(manager.status, SessionStatus.STOPPED)
        self.assertIsNone(manager.stream)
        self.assertIsNone(manager.error)

    async def test_failing_grabs_stop_session(self):
        grabs = {'count': 0}

        def grab(geometry):
            grabs['count'] += 1
            if grabs['count'] == 1:
                return FRAME
            raise OSError("XShmGetImage failed")

        self.sct.grab.side_effect = grab
        manager = SessionManager(MssCaptureProvider())
        self.addCleanup(manager.dispose)
        stopped = asyncio.Event()
        manager.add_listener(lambda s: s.status == SessionStatus.STOPPED and stopped.set())

        with patch.dict(os.environ, {'DISPLAY': ':0'}):
            await manager.start()
        await asyncio.wait_for(stopped.wait(), timeout=2)

        self.assertEqual(manager.status, SessionStatus.STOPPED)
        self.assertIsNone(manager.stream)


if __name__ == '__main__':
    unittest.main()
