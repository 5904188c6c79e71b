"""
Utilities for the screen-capture test client: configuration and logging.
"""
