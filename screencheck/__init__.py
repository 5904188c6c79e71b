"""
screencheck package.

This package contains the screen-capture test client:
- Capture session management
- Desktop screen capture provider
- Live preview and snapshots
- Configuration and utilities
"""
