import logging

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.schemas.pipeline import CascadeResult
from stageflow.services.cascade_base import TaskCascade
from stageflow.services.deal_evaluator import DealEvaluator
from stageflow.services.stage_evaluator import StageEvaluator

logger = logging.getLogger(__name__)


class CompletionCascade(TaskCascade):
    """Task completed -> gate each of its stages -> gate each completed stage's deal."""

    def __init__(self, store: PipelineStore, stage_evaluator: StageEvaluator, deal_evaluator: DealEvaluator):
        super().__init__(store)
        self.stage_evaluator = stage_evaluator
        self.deal_evaluator = deal_evaluator

    def handle_task_completion(self, task_id: str) -> CascadeResult:
        result = CascadeResult()

        task = self._load_task(task_id)
        if task is None:
            return result

        logger.info(f"Handling completion of task {task_id} (status {task.get('status')})")

        for deal_type, assignment in self._task_assignments(task_id):
            stage_id = assignment["stage_id"]
            deal_id = assignment["deal_id"]
            result.stage_id = stage_id
            result.deal_id = deal_id
            result.deal_type = deal_type

            if not self.stage_evaluator.update_stage_completion(stage_id, deal_type):
                continue
            result.stage_completed = True

            if self.deal_evaluator.update_deal_completion(deal_id, deal_type):
                result.deal_completed = True

        return result
