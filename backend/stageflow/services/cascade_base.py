"""
Shared task lookup and assignment traversal for the cascades.
"""

import logging
from typing import Any, Dict, Iterator, Optional, Tuple

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import DealType

logger = logging.getLogger(__name__)


class TaskCascade:
    """Base for operations that walk from a task to its stages in every taxonomy."""

    def __init__(self, store: PipelineStore):
        self.store = store

    def _load_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        try:
            task = self.store.get_task(task_id)
        except StoreError as e:
            logger.error(f"Error fetching task {task_id}: {e}")
            return None
        if task is None:
            logger.warning(f"Task {task_id} not found, nothing to propagate")
        return task

    def _task_assignments(self, task_id: str) -> Iterator[Tuple[DealType, Dict[str, Any]]]:
        """Yield every (taxonomy, assignment) of a task whose stage resolves to a deal.

        A failed listing in one taxonomy is logged and the next taxonomy is
        still walked.
        """
        for deal_type in DealType:
            try:
                assignments = self.store.list_assignments_by_task(task_id, deal_type)
            except StoreError as e:
                logger.error(f"Error fetching {deal_type.value} assignments for task {task_id}: {e}")
                continue

            if assignments:
                logger.info(f"Found {len(assignments)} {deal_type.value} assignment(s) for task {task_id}")

            for assignment in assignments:
                if not assignment.get("stage_id") or not assignment.get("deal_id"):
                    logger.warning(f"Skipping {deal_type.value} assignment of task {task_id} without a stage/deal")
                    continue
                yield deal_type, assignment
