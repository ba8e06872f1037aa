from typing import Optional

from supabase import AsyncClient, Client, acreate_client, create_client
from stageflow.core.config import settings
import logging

logger = logging.getLogger(__name__)


class SupabaseService:
    def __init__(self):
        self.client: Optional[Client] = None
        self.initialize()

    def initialize(self):
        try:
            supabase_url = settings.SUPABASE_URL
            supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_SERVICE_KEY

            if not supabase_url or not supabase_key:
                logger.warning("Supabase URL or key not configured - stage completion store unavailable")
                self.client = None
                return

            self.client = create_client(supabase_url, supabase_key)
            logger.info("Supabase client initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e}")
            self.client = None

    def get_client(self) -> Optional[Client]:
        if not self.client:
            self.initialize()
        return self.client

    async def create_realtime_client(self) -> Optional[AsyncClient]:
        """Async client for Realtime subscriptions; the sync client cannot subscribe."""
        supabase_url = settings.SUPABASE_URL
        supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_SERVICE_KEY
        if not supabase_url or not supabase_key:
            logger.warning("Supabase URL or key not configured - realtime subscriptions unavailable")
            return None
        return await acreate_client(supabase_url, supabase_key)


supabase_service = SupabaseService()
