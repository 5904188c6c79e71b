"""
Client configuration module.

This module handles capture session configuration settings.
"""

import logging
from typing import Optional, Sequence

from screencheck.common.constants import (
    DEFAULT_CANCEL_KEYWORDS, DEFAULT_FRAME_RATE, DEFAULT_MONITOR,
    DEFAULT_PREVIEW_DURATION, DEFAULT_SNAPSHOT_QUALITY
)


class ClientConfig:
    """Client configuration class."""

    def __init__(self, frame_rate: float = DEFAULT_FRAME_RATE, monitor: int = DEFAULT_MONITOR,
                 require_secure_context: bool = True,
                 cancel_keywords: Sequence[str] = DEFAULT_CANCEL_KEYWORDS):
        self.frame_rate = frame_rate
        self.monitor = monitor
        self._validate()

        # Capability probe
        self.require_secure_context = require_secure_context

        # Permission refusals whose message contains one of these count as cancellations
        self.cancel_keywords = tuple(k.lower() for k in cancel_keywords)

        # Preview settings
        self.preview_duration = DEFAULT_PREVIEW_DURATION
        self.snapshot_path: Optional[str] = None
        self.snapshot_quality = DEFAULT_SNAPSHOT_QUALITY
        self.confirm_share = True

        self.log_level = logging.INFO

    def _validate(self):
        if self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.monitor < 0:
            raise ValueError(f"monitor index must not be negative, got {self.monitor}")

    def update_capture_settings(self, frame_rate: float = None, monitor: int = None):
        """Update capture settings."""
        if frame_rate is not None:
            self.frame_rate = frame_rate
        if monitor is not None:
            self.monitor = monitor
        self._validate()

    def get_capture_settings(self):
        """Get capture settings."""
        return {
            'frame_rate': self.frame_rate,
            'monitor': self.monitor,
            'require_secure_context': self.require_secure_context
        }

    def get_classification_policy(self):
        """Get the error classification policy."""
        return {
            'cancel_keywords': self.cancel_keywords
        }
