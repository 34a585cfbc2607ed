from fastapi import APIRouter, Depends
from src.api.dependencies import get_current_user_id, get_realtime_service
from src.core.metrics import PAYLOAD_LATENCY
from src.domain.models import ActivityEvent
from src.services.realtime import RealtimeService

router = APIRouter(prefix="/analytics/realtime")


@router.get("")
async def realtime_snapshot(
    user_id: str = Depends(get_current_user_id),
    svc: RealtimeService = Depends(get_realtime_service),
):
    with PAYLOAD_LATENCY.labels(payload="realtime").time():
        return await svc.snapshot(user_id)


@router.post("")
async def record_activity(
    event: ActivityEvent,
    user_id: str = Depends(get_current_user_id),
    svc: RealtimeService = Depends(get_realtime_service),
):
    activity = await svc.record(user_id, event)
    return {"success": True, "activity": activity}
