"""
Inverse of the completion cascade.
When a task leaves ``completed`` its stages and their deals are walked back to
``in_progress``, but only rows whose stored status is still ``completed``.  The
status guard is part of the write itself so a transition made by a concurrent
request between our read and our write is never overwritten.
"""

import logging

from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import CascadeResult, DealStatus, StageStatus
from stageflow.services.cascade_base import TaskCascade
from stageflow.utils.timestamps import now_iso

logger = logging.getLogger(__name__)


class ReopenCascade(TaskCascade):

    def handle_task_reopening(self, task_id: str) -> CascadeResult:
        result = CascadeResult()

        task = self._load_task(task_id)
        if task is None:
            return result

        logger.info(f"Handling reopening of task {task_id} (status {task.get('status')})")

        for deal_type, assignment in self._task_assignments(task_id):
            stage_id = assignment["stage_id"]
            deal_id = assignment["deal_id"]
            result.stage_id = stage_id
            result.deal_id = deal_id
            result.deal_type = deal_type

            try:
                if self.store.update_stage(
                    stage_id,
                    deal_type,
                    {"status": StageStatus.IN_PROGRESS.value, "actual_end_date": None, "updated_at": now_iso()},
                    expected_status=StageStatus.COMPLETED.value,
                ):
                    result.stage_completed = True
                    logger.info(f"{deal_type.value} stage {stage_id} reopened")
            except StoreError as e:
                logger.error(f"Error reopening {deal_type.value} stage {stage_id}: {e}")

            try:
                if self.store.update_deal(
                    deal_id,
                    deal_type,
                    {"status": DealStatus.IN_PROGRESS.value, "actual_end_date": None, "updated_at": now_iso()},
                    expected_status=DealStatus.COMPLETED.value,
                ):
                    result.deal_completed = True
                    logger.info(f"{deal_type.value} deal {deal_id} reopened")
            except StoreError as e:
                logger.error(f"Error reopening {deal_type.value} deal {deal_id}: {e}")

        return result
