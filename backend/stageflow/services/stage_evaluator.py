"""
Aggregate completion gate for a single stage.
A stage is complete when it has no assigned tasks or when every assigned task
has status exactly ``completed``.
"""

import logging

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import DealType, StageStatus, TaskStatus
from stageflow.utils.timestamps import now_iso, today_iso

logger = logging.getLogger(__name__)


class StageEvaluator:

    def __init__(self, store: PipelineStore):
        self.store = store

    def is_stage_complete(self, stage_id: str, deal_type: DealType) -> bool:
        try:
            assignments = self.store.list_assignments_by_stage(stage_id, deal_type)
        except StoreError as e:
            logger.error(f"Error fetching {deal_type.value} assignments for stage {stage_id}: {e}")
            return False

        if not assignments:
            logger.info(f"No assignments for {deal_type.value} stage {stage_id}, considering completed")
            return True

        task_ids = sorted({a["task_id"] for a in assignments if a.get("task_id")})
        if not task_ids:
            logger.info(f"No valid task ids for {deal_type.value} stage {stage_id}, considering completed")
            return True

        try:
            tasks = self.store.get_tasks(task_ids)
        except StoreError as e:
            logger.error(f"Error fetching tasks {task_ids} for stage {stage_id}: {e}")
            return False

        if not tasks:
            # Assigned ids that no longer resolve are not evidence of completion
            logger.warning(f"None of tasks {task_ids} found for {deal_type.value} stage {stage_id}")
            return False

        complete = all(task.get("status") == TaskStatus.COMPLETED.value for task in tasks)
        logger.debug(f"Stage {stage_id} ({deal_type.value}): {len(tasks)} task(s), all completed={complete}")
        return complete

    def update_stage_completion(self, stage_id: str, deal_type: DealType) -> bool:
        """Mark the stage completed if the gate passes. Returns True if the stage was written."""
        if not self.is_stage_complete(stage_id, deal_type):
            logger.info(f"Stage {stage_id} ({deal_type.value}) not ready for completion")
            return False

        try:
            written = self.store.update_stage(
                stage_id,
                deal_type,
                {
                    "status": StageStatus.COMPLETED.value,
                    "actual_end_date": today_iso(),
                    "updated_at": now_iso(),
                },
            )
        except StoreError as e:
            logger.error(f"Error updating completion of {deal_type.value} stage {stage_id}: {e}")
            return False

        if not written:
            logger.warning(f"Stage {stage_id} ({deal_type.value}) not found while marking completed")
            return False

        logger.info(f"Stage {stage_id} ({deal_type.value}) marked as completed")
        return True
