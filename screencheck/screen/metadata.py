"""
Stream metadata module.

Maps negotiated track settings to a ScreenMetadata snapshot.
"""

from numbers import Real

from screencheck.common.constants import DisplaySurface
from screencheck.common.protocol_definitions import ScreenMetadata, create_metadata


def normalize_display_surface(value) -> str:
    """Map a reported surface kind to monitor/window/browser, or unknown."""
    if not isinstance(value, str):
        return DisplaySurface.UNKNOWN
    surface = value.strip().lower()
    if surface in DisplaySurface.KNOWN:
        return surface
    return DisplaySurface.UNKNOWN


def _reported_number(value):
    # Unreported, garbled or non-positive values read as 0
    if isinstance(value, bool) or not isinstance(value, Real):
        return 0
    if value != value or value <= 0:
        return 0
    return value


def extract_metadata(track) -> ScreenMetadata:
    """Build metadata from a video track's negotiated settings."""
    settings = track.get_settings() or {}
    return create_metadata(
        display_surface=normalize_display_surface(settings.get('display_surface')),
        width=_reported_number(settings.get('width')),
        height=_reported_number(settings.get('height')),
        frame_rate=_reported_number(settings.get('frame_rate'))
    )
