"""
Health Check Endpoint
Provides health status for Docker health checks and monitoring
"""
from fastapi import APIRouter, Depends, status
from typing import Dict

from leadpool.api.v1.dependencies import get_config
from leadpool.core.config import ConfigManager
from leadpool.utils.time_utils import to_iso, utc_now

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(config: ConfigManager = Depends(get_config)) -> Dict[str, str]:
    """
    Health check endpoint for Docker and monitoring systems.

    Returns:
        Dict with status, timestamp and the configured storage backend
    """
    return {
        "status": "healthy",
        "timestamp": to_iso(utc_now()),
        "service": "leadpool-backend",
        "storage": str(config.get("storage.backend", "supabase")),
    }
