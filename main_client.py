#!/usr/bin/env python3
"""
Screen Capture Test - Main Entry Point

Requests a screen capture session, previews the live stream, reports
its negotiated properties and ends it cleanly.

Usage:
    python main_client.py [--monitor N] [--frame-rate N] [--duration S] [--snapshot PATH]

Options:
    --yes             Share without asking for confirmation
    --allow-insecure  Allow capture over a remote X11 display
    --strict-denial   Treat every permission refusal as a denial
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from screencheck.main_client import main


if __name__ == "__main__":
    sys.exit(main())
