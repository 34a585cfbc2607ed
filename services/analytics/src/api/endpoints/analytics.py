from typing import Annotated

from fastapi import APIRouter, Depends, Query
from src.api.dependencies import (
    get_ai_performance_service,
    get_business_insights_service,
    get_content_intelligence_service,
    get_current_user_id,
    get_dashboard_service,
)
from src.core.config import settings
from src.core.metrics import PAYLOAD_LATENCY
from src.services.ai_performance import AIPerformanceService
from src.services.business_insights import BusinessInsightsService
from src.services.content_intelligence import ContentIntelligenceService
from src.services.dashboard import DashboardService

router = APIRouter(prefix="/analytics")

# Malformed ranges are accepted and fall back to 30 days downstream.
TimeRange = Annotated[str, Query(alias="range")]


@router.get("/content-intelligence")
async def content_intelligence(
    time_range: TimeRange = settings.default_time_range,
    user_id: str = Depends(get_current_user_id),
    svc: ContentIntelligenceService = Depends(get_content_intelligence_service),
):
    with PAYLOAD_LATENCY.labels(payload="content_intelligence").time():
        return await svc.build(user_id, time_range)


@router.get("/business-insights")
async def business_insights(
    time_range: TimeRange = settings.default_time_range,
    user_id: str = Depends(get_current_user_id),
    svc: BusinessInsightsService = Depends(get_business_insights_service),
):
    with PAYLOAD_LATENCY.labels(payload="business_insights").time():
        return await svc.build(user_id, time_range)


@router.get("/ai-performance")
async def ai_performance(
    time_range: TimeRange = settings.default_time_range,
    user_id: str = Depends(get_current_user_id),
    svc: AIPerformanceService = Depends(get_ai_performance_service),
):
    with PAYLOAD_LATENCY.labels(payload="ai_performance").time():
        return await svc.build(user_id, time_range)


@router.get("/dashboard")
async def dashboard(
    time_range: TimeRange = settings.default_time_range,
    user_id: str = Depends(get_current_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    with PAYLOAD_LATENCY.labels(payload="dashboard").time():
        return await svc.build(user_id, time_range)
