import json
from typing import Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from src.core.logger import get_logger
from src.domain.models import JobRecord

from shared.constants import RedisKeys

logger = get_logger("analytics.job_repository")


class JobRepository:
    """Read-only view over job records written by the queue workers."""

    def __init__(self, redis: Redis):
        self.r = redis

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        raw = await self.r.get(RedisKeys.job_key(job_id))
        if raw is None:
            return None
        try:
            return JobRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("job_record_unreadable", extra={"job_id": job_id})
            return None
