"""
studyforge Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures (env, sample documents, mock client, sqlite)
    ├── unit/                # Service-level tests, no network or Postgres
    └── integration/         # HTTP API tests through TestClient

Running Tests:
    # Run all tests
    pytest -v

    # Run only unit tests
    pytest backend/tests/unit/ -v

    # Run only the API tests
    pytest -m integration -v
"""
