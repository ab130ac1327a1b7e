"""Service layer: model access, generation flows, processing, and background tasks."""
