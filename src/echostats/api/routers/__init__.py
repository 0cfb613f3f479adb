"""API router initialization."""

# Hey future me, this is the router aggregator. main.py mounts api_router WITHOUT a prefix -
# the dashboard calls /auth/callback and /stats/summary directly.

from fastapi import APIRouter

from echostats.api.routers import auth, stats

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(stats.router, prefix="/stats", tags=["Stats"])

__all__ = ["api_router"]
