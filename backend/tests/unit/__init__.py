"""
Unit Tests

Model calls are mocked and persistence runs on in-memory SQLite,
so these tests need no running services.
"""
