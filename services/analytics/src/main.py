import asyncio
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError
from src.api.router import api_router
from src.core.config import settings
from src.core.logger import configure_logging, get_logger
from src.domain.errors import MalformedRecordError
from src.infrastructure.clickhouse.client import ClickHouseAnalyticsStore
from src.infrastructure.redis.auth import TokenRepository
from src.infrastructure.redis.jobs import JobRepository
from src.infrastructure.redis.realtime import RealtimeRepository

from shared.utils.retry import retry_async

# Configure logging once and get service logger
configure_logging()
logger = get_logger("analytics.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("analytics_service_starting")
    app.state.redis = await _init_redis_with_retry()
    app.state.realtime_repo = RealtimeRepository(
        app.state.redis,
        activity_capacity=settings.recent_activity_capacity,
        activity_ttl=settings.recent_activity_ttl_seconds,
        window_ms=settings.request_window_ms,
        window_ttl=settings.request_window_ttl_seconds,
        ema_weight=settings.response_time_ema_weight,
        alerts_limit=settings.active_alerts_limit,
    )
    app.state.job_repo = JobRepository(app.state.redis)
    app.state.token_repo = TokenRepository(app.state.redis)
    # connects on first query
    app.state.store = ClickHouseAnalyticsStore()
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    try:
        yield
    finally:
        logger.info("analytics_service_stopping")
        app.state.ready_event.clear()
        app.state.store.close()
        await app.state.redis.aclose()


app = FastAPI(title="ContextForge Analytics", version="0.1.0", lifespan=lifespan)
app.include_router(api_router)


@app.exception_handler(MalformedRecordError)
async def malformed_record_handler(request: Request, exc: MalformedRecordError):
    logger.error(
        "malformed_record",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=500, content={"error": "malformed_record", "detail": str(exc)}
    )


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError):
    # only reached by writes; reads degrade per section
    logger.error(
        "counter_store_unavailable",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=503, content={"error": "store_unavailable", "detail": str(exc)}
    )


async def _init_redis_with_retry():
    async def _connect():
        r = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
        )
        await r.ping()
        return r

    async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    r = await retry_async(
        _connect,
        retries=settings.redis_connect_retries,
        base_delay=0.5,
        max_delay=8.0,
        jitter=0.2,
        on_retry=_on_retry,
    )
    logger.info("redis_connected")
    return r


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
