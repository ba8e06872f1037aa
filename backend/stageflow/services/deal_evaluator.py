import logging

from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import DealStatus, DealType, StageStatus
from stageflow.utils.timestamps import now_iso, today_iso

logger = logging.getLogger(__name__)


class DealEvaluator:
    """Completion gate one level up: a deal is complete when all of its stages are."""

    def __init__(self, store: PipelineStore):
        self.store = store

    def is_deal_complete(self, deal_id: str, deal_type: DealType) -> bool:
        try:
            stages = self.store.list_stages_by_deal(deal_id, deal_type)
        except StoreError as e:
            logger.error(f"Error fetching stages of {deal_type.value} deal {deal_id}: {e}")
            return False

        if not stages:
            return True

        return all(stage.get("status") == StageStatus.COMPLETED.value for stage in stages)

    def update_deal_completion(self, deal_id: str, deal_type: DealType) -> bool:
        if not self.is_deal_complete(deal_id, deal_type):
            return False

        try:
            written = self.store.update_deal(
                deal_id,
                deal_type,
                {
                    "status": DealStatus.COMPLETED.value,
                    "actual_end_date": today_iso(),
                    "updated_at": now_iso(),
                },
            )
        except StoreError as e:
            logger.error(f"Error updating completion of {deal_type.value} deal {deal_id}: {e}")
            return False

        if not written:
            logger.warning(f"Deal {deal_id} ({deal_type.value}) not found while marking completed")
            return False

        logger.info(f"Deal {deal_id} ({deal_type.value}) marked as completed")
        return True
