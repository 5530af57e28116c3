"""Test helper modules for content sync testing.

This package provides utilities for unit and integration testing:
- fake_hosting: In-memory hosting API mounted on a requests session
"""

from .fake_hosting import FakeClock, FakeHostingAPI, make_client, make_session

__all__ = [
    'FakeClock',
    'FakeHostingAPI',
    'make_client',
    'make_session',
]
