"""Health check endpoint."""

from fastapi import APIRouter

from studyforge.config import settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", "service": settings.APP_NAME}
