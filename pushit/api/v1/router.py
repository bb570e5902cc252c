"""Main API router for v1."""
from fastapi import APIRouter

from pushit.api.v1.endpoints import admin, auth, holds, me, polls, pushes, sse, stats, votes

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(holds.router, prefix="/holds", tags=["Holds"])
api_router.include_router(polls.router, tags=["Polls"])
api_router.include_router(votes.router, tags=["Votes"])
api_router.include_router(pushes.router, tags=["Pushes"])
api_router.include_router(me.router, prefix="/me", tags=["Me"])
api_router.include_router(stats.router, tags=["Stats"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(sse.router, tags=["SSE"])
