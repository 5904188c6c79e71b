"""
Shared definitions for the screen-capture test client.

This package contains the constants and data structures used across
the session manager, capture providers and the command-line driver.
"""
