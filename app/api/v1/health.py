"""
Liveness probe for load balancers and the mobile client's connectivity check
"""
from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Process is up; does not touch the database or the heartbeat scheduler."""
    return {
        "status": "ok",
        "service": "geo-attendance-backend",
    }
