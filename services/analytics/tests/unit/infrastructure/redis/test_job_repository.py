import json

import pytest
from src.infrastructure.redis.auth import TokenRepository
from src.infrastructure.redis.jobs import JobRepository

from shared.constants import RedisKeys


@pytest.mark.asyncio
async def test_get_job_parses_camel_case_record(redis_client):
    await redis_client.set(
        RedisKeys.job_key("j1"),
        json.dumps(
            {
                "id": "j1",
                "status": "running",
                "type": "classify",
                "userId": "u1",
                "totalItems": 8,
                "processedItems": 3,
            }
        ),
    )
    job = await JobRepository(redis_client).get_job("j1")

    assert job is not None
    assert job.user_id == "u1"
    assert job.progress == 38
    assert job.model_dump(by_alias=True)["processedItems"] == 3


@pytest.mark.asyncio
async def test_missing_and_unreadable_jobs(redis_client):
    repo = JobRepository(redis_client)
    assert await repo.get_job("absent") is None

    await redis_client.set(RedisKeys.job_key("bad"), "{not json")
    assert await repo.get_job("bad") is None

    await redis_client.set(RedisKeys.job_key("partial"), json.dumps({"id": "partial"}))
    assert await repo.get_job("partial") is None


@pytest.mark.asyncio
async def test_token_resolution(redis_client):
    await redis_client.set(RedisKeys.token_key("abc"), "u1")
    tokens = TokenRepository(redis_client)
    assert await tokens.resolve("abc") == "u1"
    assert await tokens.resolve("nope") is None
    assert await tokens.resolve("") is None
