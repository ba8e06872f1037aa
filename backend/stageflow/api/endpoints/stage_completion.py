from fastapi import APIRouter, Depends
from typing import Any, Dict, List
import logging

from stageflow.core.dependencies import get_stage_completion_service, get_task_status_service
from stageflow.schemas.pipeline import (
    CascadeResult,
    DealType,
    StageTaskDetail,
    TaskStatusChange,
    TaskStatusUpdate,
)
from stageflow.services.stage_completion_service import StageCompletionService
from stageflow.services.task_status_service import TaskStatusService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/tasks/{task_id}/complete", response_model=CascadeResult)
async def complete_task_stages(
    task_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    """Run the completion gate for a task's stages and their deals."""
    return service.handle_task_completion(task_id)


@router.post("/tasks/{task_id}/reopen", response_model=CascadeResult)
async def reopen_task_stages(
    task_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    """Revert completed stages and deals of a reopened task."""
    return service.handle_task_reopening(task_id)


@router.post("/tasks/{task_id}/sync", response_model=CascadeResult)
async def sync_task_stages(
    task_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    """Mirror a task's status directly onto its stages."""
    return service.sync_task_status_with_stage(task_id)


@router.patch("/tasks/{task_id}/status", response_model=TaskStatusChange)
async def update_task_status(
    task_id: str,
    body: TaskStatusUpdate,
    service: TaskStatusService = Depends(get_task_status_service),
):
    """Persist a task's status and propagate it to stages and deals."""
    return service.update_task_status(task_id, body.status.value)


@router.delete("/tasks/{task_id}/assignments", response_model=Dict[str, Any])
async def detach_task(
    task_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    removed = service.detach_task(task_id)
    return {"task_id": task_id, "removed": removed}


@router.post("/resync", response_model=Dict[str, Any])
async def resync_completed_tasks(
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    """Re-project every completed, stage-assigned task onto its stages."""
    service.sync_all_completed_tasks_with_stages()
    return {"status": "completed"}


@router.get("/stages/{deal_type}/{stage_id}/completion", response_model=Dict[str, Any])
async def get_stage_completion(
    deal_type: DealType,
    stage_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    return {
        "stage_id": stage_id,
        "deal_type": deal_type.value,
        "complete": service.is_stage_complete(stage_id, deal_type),
    }


@router.get("/stages/{deal_type}/{stage_id}/tasks", response_model=List[StageTaskDetail])
async def get_stage_tasks(
    deal_type: DealType,
    stage_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    """Assigned tasks and members of a stage, for the deal timeline."""
    return service.get_task_details_for_stage(stage_id, deal_type)


@router.get("/deals/{deal_type}/{deal_id}/completion", response_model=Dict[str, Any])
async def get_deal_completion(
    deal_type: DealType,
    deal_id: str,
    service: StageCompletionService = Depends(get_stage_completion_service),
):
    return {
        "deal_id": deal_id,
        "deal_type": deal_type.value,
        "complete": service.is_deal_complete(deal_id, deal_type),
    }
