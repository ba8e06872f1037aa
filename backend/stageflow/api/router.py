"""
Main API Router
"""
from fastapi import APIRouter

from stageflow.api.endpoints import stage_completion

api_router = APIRouter()

api_router.include_router(stage_completion.router, prefix="/stage-completion", tags=["stage-completion"])


# Health check
@api_router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "stageflow-backend"}
