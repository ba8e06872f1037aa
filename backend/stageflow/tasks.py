"""
Celery background tasks
"""

from celery import Task
from stageflow.core.celery_app import celery_app
from stageflow.core.dependencies import ServiceFactory
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class CallbackTask(Task):
    """Task with callback support"""
    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"Task {task_id} succeeded with result: {retval}")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Task {task_id} failed with exception: {exc}")


@celery_app.task(bind=True, base=CallbackTask, name="stageflow.tasks.pipeline.resync_completed_tasks")
def resync_completed_tasks(self) -> Dict[str, Any]:
    """Run the completed-task stage resync sweep"""
    try:
        if self.request.id:
            self.update_state(state="PROGRESS", meta={"status": "Resyncing stages"})
        service = ServiceFactory.create_stage_completion_service()
        service.sync_all_completed_tasks_with_stages()
        return {"status": "success"}
    except Exception as e:
        logger.error(f"Stage resync failed: {e}")
        return {"status": "error", "error": str(e)}


@celery_app.task(bind=True, base=CallbackTask, name="stageflow.tasks.pipeline.propagate_task_status")
def propagate_task_status(
    self,
    task_id: str,
    previous_status: Optional[str],
    status: str
) -> Dict[str, Any]:
    """Propagate an already persisted task status change to stages and deals"""
    try:
        if self.request.id:
            self.update_state(state="PROGRESS", meta={"status": f"Propagating task {task_id}"})
        service = ServiceFactory.create_task_status_service()
        change = service.propagate(task_id, previous_status, status)
        return {"status": "success", "result": change.model_dump(mode="json")}
    except Exception as e:
        logger.error(f"Propagation for task {task_id} failed: {e}")
        return {"status": "error", "error": str(e)}
