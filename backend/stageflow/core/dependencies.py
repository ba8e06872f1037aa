"""
Dependency injection for request-scoped services
Each request gets its own service graph over the shared store client
"""

from typing import Optional
from fastapi import Request, Depends
import logging
import uuid

from stageflow.abstractions.pipeline_store import PipelineStore, SupabasePipelineStore
from stageflow.core.database import supabase_service
from stageflow.core.exceptions import StoreError
from stageflow.services.stage_completion_service import StageCompletionService
from stageflow.services.task_status_service import TaskStatusService

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating request-scoped service instances"""

    @staticmethod
    def create_store() -> PipelineStore:
        client = supabase_service.get_client()
        if client is None:
            raise StoreError("Supabase client not configured", operation="connect")
        return SupabasePipelineStore(client)

    @staticmethod
    def create_stage_completion_service(
        store: Optional[PipelineStore] = None,
        request_id: Optional[str] = None,
    ) -> StageCompletionService:
        if request_id:
            logger.debug(f"Creating stage completion service for request {request_id}")
        return StageCompletionService(store or ServiceFactory.create_store())

    @staticmethod
    def create_task_status_service(store: Optional[PipelineStore] = None) -> TaskStatusService:
        return TaskStatusService(ServiceFactory.create_stage_completion_service(store))


# Dependency injection functions for FastAPI
def get_request_id(request: Request) -> str:
    """Extract or generate request ID"""
    request_id = request.headers.get("X-Request-ID")
    if not request_id:
        request_id = str(uuid.uuid4())
        logger.debug(f"Generated request ID: {request_id}")
    return request_id


def get_stage_completion_service(request_id: str = Depends(get_request_id)) -> StageCompletionService:
    """Get request-scoped stage completion service"""
    return ServiceFactory.create_stage_completion_service(request_id=request_id)


def get_task_status_service(
    completion_service: StageCompletionService = Depends(get_stage_completion_service),
) -> TaskStatusService:
    """Get request-scoped task status service"""
    return TaskStatusService(completion_service)
