#!/usr/bin/env python3
"""
Unit tests for the read-only preview sink.
"""

import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from PIL import Image as PILImage

from screencheck.screen.capture_stream import CaptureTrack
from screencheck.screen.preview import SnapshotSink


class TestSnapshotSink(unittest.TestCase):

    def setUp(self):
        self.track = CaptureTrack(settings={'display_surface': 'monitor', 'width': 4, 'height': 3})
        self.sink = SnapshotSink()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def frame(self, color=(255, 0, 0)):
        return PILImage.new('RGB', (4, 3), color)

    def test_attached_sink_keeps_latest_frame(self):
        self.sink.attach(self.track)

        self.track.deliver(self.frame((255, 0, 0)))
        self.track.deliver(self.frame((0, 255, 0)))

        self.assertEqual(self.sink.frame_count, 2)
        self.assertEqual(self.sink.latest_frame.getpixel((0, 0)), (0, 255, 0))

    def test_detach_stops_delivery_and_leaves_track_running(self):
        self.sink.attach(self.track)
        self.sink.detach()

        self.track.deliver(self.frame())

        self.assertEqual(self.sink.frame_count, 0)
        self.assertFalse(self.track.has_sinks)
        self.assertTrue(self.track.is_live)

    def test_reattach_moves_to_new_track(self):
        other = CaptureTrack()
        self.sink.attach(self.track)
        self.sink.attach(other)

        self.assertFalse(self.track.has_sinks)
        self.assertTrue(other.has_sinks)

    def test_measured_fps(self):
        with patch('screencheck.screen.preview.time.time', side_effect=[10.0, 10.5, 11.0]):
            for _ in range(3):
                self.sink(self.frame())

        self.assertAlmostEqual(self.sink.measured_fps, 2.0)

    def test_measured_fps_needs_two_frames(self):
        self.assertEqual(self.sink.measured_fps, 0.0)
        self.sink(self.frame())
        self.assertEqual(self.sink.measured_fps, 0.0)

    def test_save_png(self):
        self.sink(self.frame((0, 0, 255)))

        path = self.sink.save(Path(self.tmpdir.name) / 'shots' / 'last.png')

        with PILImage.open(path) as saved:
            self.assertEqual(saved.size, (4, 3))
            self.assertEqual(saved.convert('RGB').getpixel((1, 1)), (0, 0, 255))

    def test_save_jpeg(self):
        self.sink(self.frame())

        path = self.sink.save(Path(self.tmpdir.name) / 'last.jpg', quality=50)

        with PILImage.open(path) as saved:
            self.assertEqual(saved.format, 'JPEG')

    def test_save_without_frame(self):
        with self.assertRaises(ValueError):
            self.sink.save(Path(self.tmpdir.name) / 'none.png')


if __name__ == '__main__':
    unittest.main()
