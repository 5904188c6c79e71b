"""
Shared constants for the screen-capture test client.

This module contains all constants used across the session manager,
capture providers and the command-line driver.
"""

# Capture Settings
DEFAULT_FRAME_RATE = 30
DEFAULT_MONITOR = 1  # mss index 0 is the union of all monitors
DEFAULT_PREVIEW_DURATION = 10  # seconds
DEFAULT_SNAPSHOT_QUALITY = 85
MAX_CONSECUTIVE_GRAB_FAILURES = 3
FRAME_STATS_INTERVAL = 30  # log stats every N frames

# Error Classification
DEFAULT_CANCEL_KEYWORDS = ('cancel',)

# Logging
LOGGER_NAME = 'screencheck'


# Session States
class SessionStatus:
    IDLE = 'idle'
    REQUESTING = 'requesting'
    ACTIVE = 'active'
    CANCELLED = 'cancelled'
    DENIED = 'denied'
    ERROR = 'error'
    STOPPED = 'stopped'


# Display Surfaces
class DisplaySurface:
    MONITOR = 'monitor'
    WINDOW = 'window'
    BROWSER = 'browser'
    UNKNOWN = 'unknown'

    KNOWN = (MONITOR, WINDOW, BROWSER)


# Session Error Kinds
class ErrorKind:
    CANCELLED = 'cancelled'
    DENIED = 'denied'
    UNKNOWN = 'unknown'


# Provider failure categories, matched case-insensitively against error names
class ErrorNames:
    ABORT = ('aborterror',)
    PERMISSION = ('notallowederror', 'permissiondeniederror', 'permissionerror')


# Track States
class TrackState:
    LIVE = 'live'
    ENDED = 'ended'


# User-facing Messages
class Messages:
    UNSUPPORTED = 'Screen sharing is not supported in this environment.'
    CANCELLED = 'Screen sharing was cancelled. You can try again when ready.'
    DENIED = 'Screen sharing permission was denied. Please allow access to share your screen.'
    START_FAILED = 'An unexpected error occurred while starting screen share.'
    UNEXPECTED = 'An unexpected error occurred.'
