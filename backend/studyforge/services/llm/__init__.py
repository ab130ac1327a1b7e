"""
Model service access.

- pool.py: credential pool with round-robin selection and rate-limit failover
- retry.py: bounded retries with exponential backoff around the pool
- client.py: generation client that ties pool, retries, and telemetry together
"""

from studyforge.services.llm.client import GenerationClient, get_generation_client
from studyforge.services.llm.pool import ModelClientPool, ModelCredential, get_model_pool
from studyforge.services.llm.retry import RetryController

__all__ = [
    "GenerationClient",
    "get_generation_client",
    "ModelClientPool",
    "ModelCredential",
    "get_model_pool",
    "RetryController",
]
