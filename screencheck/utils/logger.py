"""
Client logging module.

This module handles logging for capture sessions.
"""

import logging
import sys

from screencheck.common.constants import LOGGER_NAME


class SessionLogger:
    """Session logging class."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)

        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        self.logger.addHandler(console_handler)

    def set_level(self, log_level: int):
        """Change the level of the logger and its handlers."""
        self.logger.setLevel(log_level)
        for handler in self.logger.handlers:
            handler.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_transition(self, old_status: str, new_status: str):
        """Log a session status change."""
        self.info(f"[SESSION] {old_status} -> {new_status}")

    def log_metadata(self, metadata):
        """Log negotiated stream properties."""
        if metadata is None:
            self.info("[SESSION] No video track metadata available")
            return
        self.info(f"[SESSION] Surface: {metadata.display_surface}, "
                  f"Resolution: {metadata.width}x{metadata.height}, "
                  f"Frame rate: {metadata.frame_rate}")

    def log_session_error(self, error):
        """Log a classified session error."""
        self.warning(f"[SESSION] {error.kind}: {error.message}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = SessionLogger()
