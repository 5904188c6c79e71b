"""
Screen capture module for client-side capture sessions.

Handles:
- Capture session lifecycle (request, grant, deny, cancel, end)
- Desktop screen capture provider
- Read-only preview of the live stream
"""
