"""Test helper modules for the rsm test suite.

- engines: handler factories, fast backoff and background-thread helpers
"""
