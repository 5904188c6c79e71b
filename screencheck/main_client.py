"""
Screen capture test client.

Runs one capture session end to end: request, preview, report the
negotiated properties, stop.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from screencheck.common.constants import (
    DEFAULT_CANCEL_KEYWORDS, DEFAULT_FRAME_RATE, DEFAULT_MONITOR, DEFAULT_PREVIEW_DURATION,
    SessionStatus
)
from screencheck.common.protocol_definitions import SessionSnapshot
from screencheck.screen.mss_provider import MssCaptureProvider
from screencheck.screen.preview import SnapshotSink
from screencheck.screen.session_manager import SessionManager
from screencheck.utils.config import ClientConfig
from screencheck.utils.logger import logger


class ScreenTestClient:
    """Drives a SessionManager from the command line."""

    def __init__(self, config: Optional[ClientConfig] = None, provider=None):
        self.config = config or ClientConfig()
        if provider is None:
            consent = self.ask_consent if self.config.confirm_share else None
            provider = MssCaptureProvider(monitor=self.config.monitor, consent=consent)
        self.manager = SessionManager(provider, self.config)
        self.preview = SnapshotSink()
        self.reached_active = False
        # Created in run() so it belongs to the running loop
        self._ended: Optional[asyncio.Event] = None
        self.manager.add_listener(self._on_state)

    def _on_state(self, snapshot: SessionSnapshot):
        """Track session end while previewing."""
        if snapshot.status == SessionStatus.ACTIVE:
            self.reached_active = True
        elif snapshot.status == SessionStatus.STOPPED and self._ended is not None:
            self._ended.set()

    async def ask_consent(self, source: dict):
        """Ask on stdin whether the source may be shared."""
        prompt = (f"Share monitor {source.get('monitor')} "
                  f"({source.get('width')}x{source.get('height')})? [y/n] ")
        print(prompt, end='', flush=True)
        answer = await asyncio.get_running_loop().run_in_executor(None, sys.stdin.readline)
        if not answer:
            return None
        answer = answer.strip().lower()
        if answer in ('y', 'yes'):
            return True
        if answer in ('n', 'no'):
            return False
        return None

    def _save_snapshot(self):
        if not self.config.snapshot_path:
            return
        try:
            self.preview.save(self.config.snapshot_path, quality=self.config.snapshot_quality)
        except (ValueError, OSError) as e:
            logger.log_error("snapshot", e)

    async def run(self) -> str:
        """Run one session and return its final status."""
        self._ended = asyncio.Event()
        try:
            if not self.manager.is_supported:
                logger.warning("[INFO] Screen capture is not available here")

            await self.manager.start()
            if self.manager.status != SessionStatus.ACTIVE:
                return self.manager.status

            video_tracks = self.manager.stream.get_video_tracks()
            if video_tracks:
                self.preview.attach(video_tracks[0])

            duration = self.config.preview_duration or None
            logger.info(f"[INFO] Previewing {'until stopped' if duration is None else f'for {duration}s'}"
                        " (Ctrl+C to stop)")
            try:
                await asyncio.wait_for(self._ended.wait(), timeout=duration)
                logger.info("[INFO] Sharing was stopped from outside")
            except asyncio.TimeoutError:
                logger.info("[INFO] Preview duration elapsed")

            if self.preview.frame_count:
                logger.info(f"[PREVIEW] Received {self.preview.frame_count} frames "
                            f"at {self.preview.measured_fps:.1f} FPS")
            self._save_snapshot()
            self.manager.stop()
            return self.manager.status
        finally:
            self.preview.detach()
            self.manager.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Test screen capture on this machine')
    parser.add_argument('--monitor', type=int, default=DEFAULT_MONITOR,
                        help='Monitor index to capture (1 = primary)')
    parser.add_argument('--frame-rate', type=float, default=DEFAULT_FRAME_RATE,
                        help='Target frame rate')
    parser.add_argument('--duration', type=float, default=DEFAULT_PREVIEW_DURATION,
                        help='Preview duration in seconds (0 = until stopped)')
    parser.add_argument('--snapshot', default=None,
                        help='Save the last previewed frame to this path')
    parser.add_argument('--yes', action='store_true',
                        help='Share without asking for confirmation')
    parser.add_argument('--allow-insecure', action='store_true',
                        help='Allow capture over a remote display')
    parser.add_argument('--strict-denial', action='store_true',
                        help='Classify cancel-worded permission refusals as denials')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    return parser


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Build a client configuration from parsed arguments."""
    config = ClientConfig(
        frame_rate=args.frame_rate,
        monitor=args.monitor,
        require_secure_context=not args.allow_insecure,
        cancel_keywords=() if args.strict_denial else DEFAULT_CANCEL_KEYWORDS
    )
    config.preview_duration = args.duration
    config.snapshot_path = args.snapshot
    config.confirm_share = not args.yes
    config.log_level = logging.DEBUG if args.verbose else logging.INFO
    return config


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 2

    logger.set_level(config.log_level)
    client = ScreenTestClient(config)

    try:
        status = asyncio.run(client.run())
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
        status = SessionStatus.STOPPED

    logger.info(f"[INFO] Final status: {status}")
    return 0 if client.reached_active else 1


if __name__ == "__main__":
    sys.exit(main())
