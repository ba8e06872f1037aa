import logging
from typing import Optional

from stageflow.core.exceptions import ResourceNotFoundError, StoreError, ValidationError
from stageflow.schemas.pipeline import TaskStatus, TaskStatusChange
from stageflow.services.stage_completion_service import StageCompletionService

logger = logging.getLogger(__name__)

VALID_TASK_STATUSES = {status.value for status in TaskStatus}


class TaskStatusService:
    """Persists a task's status and propagates it to stages and deals.

    Propagation order: the completion gate (or the reopen cascade) runs first
    because it decides deal completion; the direct projection runs last so the
    stage mirrors the task that just changed.
    """

    def __init__(self, completion_service: StageCompletionService):
        self.completion_service = completion_service
        self.store = completion_service.store

    def update_task_status(self, task_id: str, status: str) -> TaskStatusChange:
        status = status.value if isinstance(status, TaskStatus) else status
        if status not in VALID_TASK_STATUSES:
            raise ValidationError(
                f"Unknown task status '{status}'",
                field="status",
                details={"allowed": sorted(VALID_TASK_STATUSES)},
            )

        task = self.store.get_task(task_id)
        if task is None:
            raise ResourceNotFoundError("Task", task_id)

        updated = self.store.update_task_status(task_id, status)
        if updated is None:
            raise StoreError("Task status was not persisted", operation="update_task_status", table="tasks", record_id=task_id)

        logger.info(f"Task {task_id} status {task.get('status')} -> {status}")
        return self.propagate(task_id, task.get("status"), status)

    def propagate(self, task_id: str, previous_status: Optional[str], status: str) -> TaskStatusChange:
        """Run the cascades for a status change that is already persisted.

        ``previous_status`` None means the prior status is unknown: a task that
        is not completed then goes through the reopen cascade, whose writes only
        apply to stages and deals still marked completed.
        """
        completed = TaskStatus.COMPLETED.value
        completion = None
        reopening = None
        if status == completed and previous_status != completed:
            completion = self.completion_service.handle_task_completion(task_id)
        elif status != completed and previous_status in (completed, None):
            reopening = self.completion_service.handle_task_reopening(task_id)

        projection = self.completion_service.sync_task_status_with_stage(task_id)

        return TaskStatusChange(
            task_id=task_id,
            previous_status=previous_status,
            status=status,
            completion=completion,
            reopening=reopening,
            projection=projection,
        )
