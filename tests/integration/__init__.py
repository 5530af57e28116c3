"""Integration tests for CMS content sync.

These tests run the hosting client, draft branch manager, storage adapter,
content cache and batch orchestrator together against the in-memory hosting
API. They cover editorial journeys end to end: saving, conflicting edits,
publishing and cache refresh.

Run just these with:
    pytest tests/integration -m integration
"""
