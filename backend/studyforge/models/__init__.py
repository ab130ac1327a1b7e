"""Pydantic models and dataclasses shared across the service layer and API."""
