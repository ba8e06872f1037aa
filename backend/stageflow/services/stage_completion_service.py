"""
Stage Completion Service
Single entry point over the completion gate, the direct projection, the
reopen cascade and the repair sweep for one store.

Callers that change a task's status should run the gate (handle_task_completion)
or the reopen cascade first and the direct projection
(sync_task_status_with_stage) last; TaskStatusService does exactly that.
"""

import logging
from typing import List

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import CascadeResult, DealType, StageTaskDetail
from stageflow.services.bulk_resync import BulkResync
from stageflow.services.completion_cascade import CompletionCascade
from stageflow.services.deal_evaluator import DealEvaluator
from stageflow.services.reopen_cascade import ReopenCascade
from stageflow.services.stage_evaluator import StageEvaluator
from stageflow.services.stage_projector import StageProjector

logger = logging.getLogger(__name__)


class StageCompletionService:

    def __init__(self, store: PipelineStore):
        self.store = store
        self.stage_evaluator = StageEvaluator(store)
        self.deal_evaluator = DealEvaluator(store)
        self.projector = StageProjector(store)
        self.completion_cascade = CompletionCascade(store, self.stage_evaluator, self.deal_evaluator)
        self.reopen_cascade = ReopenCascade(store)
        self.bulk_resync = BulkResync(store, self.projector)

    # ---------- cascades ----------

    def handle_task_completion(self, task_id: str) -> CascadeResult:
        return self.completion_cascade.handle_task_completion(task_id)

    def handle_task_reopening(self, task_id: str) -> CascadeResult:
        return self.reopen_cascade.handle_task_reopening(task_id)

    def sync_task_status_with_stage(self, task_id: str) -> CascadeResult:
        return self.projector.sync_task_status_with_stage(task_id)

    def sync_all_completed_tasks_with_stages(self) -> None:
        self.bulk_resync.sync_all_completed_tasks_with_stages()

    # ---------- evaluators ----------

    def is_stage_complete(self, stage_id: str, deal_type: DealType) -> bool:
        return self.stage_evaluator.is_stage_complete(stage_id, deal_type)

    def update_stage_completion(self, stage_id: str, deal_type: DealType) -> bool:
        return self.stage_evaluator.update_stage_completion(stage_id, deal_type)

    def is_deal_complete(self, deal_id: str, deal_type: DealType) -> bool:
        return self.deal_evaluator.is_deal_complete(deal_id, deal_type)

    def update_deal_completion(self, deal_id: str, deal_type: DealType) -> bool:
        return self.deal_evaluator.update_deal_completion(deal_id, deal_type)

    # ---------- timeline support ----------

    def get_task_details_for_stage(self, stage_id: str, deal_type: DealType) -> List[StageTaskDetail]:
        """Assigned tasks and members of a stage, for timeline display."""
        try:
            rows = self.store.get_stage_task_details(stage_id, deal_type)
        except StoreError as e:
            logger.error(f"Error fetching task details for {deal_type.value} stage {stage_id}: {e}")
            return []

        return [
            StageTaskDetail(
                task_id=row.get("task_id"),
                member_id=row.get("member_id"),
                member_name=(row.get("members") or {}).get("name"),
                task=row.get("tasks"),
            )
            for row in rows
        ]

    def detach_task(self, task_id: str) -> int:
        """Remove a task's stage assignments in every taxonomy. Returns rows removed."""
        removed = 0
        for deal_type in DealType:
            try:
                removed += self.store.delete_assignments_for_task(task_id, deal_type)
            except StoreError as e:
                logger.error(f"Error removing {deal_type.value} assignments of task {task_id}: {e}")
        if removed:
            logger.info(f"Removed {removed} stage assignment(s) of task {task_id}")
        return removed
