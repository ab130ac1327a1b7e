"""
Integration Tests

Exercise the FastAPI app end to end with a file-backed SQLite database.
Celery enqueueing is patched out; pipelines are covered in the unit suite.
"""
