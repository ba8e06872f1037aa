"""
Direct projection of a task's status onto every stage it is assigned to.

Unlike the aggregate gate in StageEvaluator this ignores sibling tasks: a stage
mirrors whichever of its tasks changed last.  It keeps single-task stages (the
common case) responsive in the timeline and runs on every status change.
"""

import logging
from typing import Any, Dict, Optional

from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import CascadeResult, StageStatus, TaskStatus
from stageflow.services.cascade_base import TaskCascade
from stageflow.utils.timestamps import now_iso, today_iso

logger = logging.getLogger(__name__)


def project_status(task_status: Optional[str]) -> str:
    """Stage status mirroring a task status."""
    if task_status == TaskStatus.COMPLETED.value:
        return StageStatus.COMPLETED.value
    if task_status == TaskStatus.IN_PROGRESS.value:
        return StageStatus.IN_PROGRESS.value
    return StageStatus.PENDING.value


def _already_projected(stage: Dict[str, Any], target: str) -> bool:
    if stage.get("status") != target:
        return False
    if target == StageStatus.COMPLETED.value:
        return bool(stage.get("actual_end_date"))
    return stage.get("actual_end_date") is None


class StageProjector(TaskCascade):

    def sync_task_status_with_stage(self, task_id: str) -> CascadeResult:
        result = CascadeResult()

        task = self._load_task(task_id)
        if task is None:
            return result

        target = project_status(task.get("status"))
        completed = target == StageStatus.COMPLETED.value
        logger.info(f"Syncing task {task_id} ({task.get('status')}) onto its stages as '{target}'")

        for deal_type, assignment in self._task_assignments(task_id):
            stage_id = assignment["stage_id"]
            result.stage_id = stage_id
            result.deal_id = assignment["deal_id"]
            result.deal_type = deal_type

            try:
                stage = self.store.get_stage(stage_id, deal_type)
                if stage is None:
                    logger.warning(f"{deal_type.value} stage {stage_id} not found, skipping")
                    continue
                if _already_projected(stage, target):
                    logger.debug(f"{deal_type.value} stage {stage_id} already '{target}'")
                    continue

                written = self.store.update_stage(
                    stage_id,
                    deal_type,
                    {
                        "status": target,
                        "actual_end_date": today_iso() if completed else None,
                        "updated_at": now_iso(),
                    },
                )
            except StoreError as e:
                logger.error(f"Error updating {deal_type.value} stage {stage_id}: {e}")
                continue

            if written:
                result.stage_completed = True
                logger.info(f"{deal_type.value} stage {stage_id} status updated to {target}")

        logger.info(f"Sync result for task {task_id}: stage_updated={result.stage_completed}")
        return result
