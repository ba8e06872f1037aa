import logging

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import DealType, TaskStatus
from stageflow.services.stage_projector import StageProjector

logger = logging.getLogger(__name__)


class BulkResync:
    """Repair sweep: re-project every completed, stage-assigned task onto its stages.

    Idempotent: a second run with no task changes in between writes nothing,
    because the projector skips stages already at their target.
    """

    def __init__(self, store: PipelineStore, projector: StageProjector):
        self.store = store
        self.projector = projector

    def sync_all_completed_tasks_with_stages(self) -> None:
        logger.info("Syncing all completed tasks with their stages...")

        try:
            completed_tasks = self.store.list_tasks_by_status(TaskStatus.COMPLETED.value)
            completed_ids = [task["id"] for task in completed_tasks if task.get("id")]
            assigned = set()
            if completed_ids:
                for deal_type in DealType:
                    assigned |= self.store.list_assigned_task_ids(deal_type, completed_ids)
        except StoreError as e:
            logger.error(f"Error fetching completed tasks for resync: {e}")
            return

        candidates = [task for task in completed_tasks if task.get("id") in assigned]
        logger.info(f"Found {len(candidates)} completed task(s) with stage assignments")

        failed = 0
        for task in candidates:
            try:
                self.projector.sync_task_status_with_stage(task["id"])
            except Exception as e:
                failed += 1
                logger.error(f"Error syncing task {task['id']} ({task.get('task_name')}): {e}", exc_info=True)

        logger.info(f"Completed syncing {len(candidates) - failed}/{len(candidates)} task(s) with stages")
