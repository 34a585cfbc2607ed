from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request):
    """Liveness: the counter store answers a ping."""
    try:
        await request.app.state.redis.ping()
    except RedisError as e:
        return JSONResponse(
            status_code=503, content={"status": "unavailable", "redis": str(e)}
        )
    return {"status": "ok", "redis": "ok"}


@router.get("/readyz")
async def readyz(request: Request):
    # ClickHouse is not checked: its payload sections degrade instead
    if not request.app.state.ready_event.is_set():
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {"status": "ready"}
