from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from src.core.config import settings
from src.domain.store import AnalyticsStore
from src.infrastructure.redis.auth import TokenRepository
from src.infrastructure.redis.jobs import JobRepository
from src.infrastructure.redis.realtime import RealtimeRepository
from src.services.ai_performance import AIPerformanceService
from src.services.business_insights import BusinessInsightsService
from src.services.content_intelligence import ContentIntelligenceService
from src.services.dashboard import DashboardService
from src.services.realtime import RealtimeService

bearer = HTTPBearer(auto_error=False)


def get_store(request: Request) -> AnalyticsStore:
    return request.app.state.store  # type: ignore[return-value]


def get_realtime_repo(request: Request) -> RealtimeRepository:
    return request.app.state.realtime_repo  # type: ignore[return-value]


def get_job_repo(request: Request) -> JobRepository:
    return request.app.state.job_repo  # type: ignore[return-value]


def get_token_repo(request: Request) -> TokenRepository:
    return request.app.state.token_repo  # type: ignore[return-value]


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    tokens: TokenRepository = Depends(get_token_repo),
) -> str:
    user_id = await tokens.resolve(credentials.credentials) if credentials else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_content_intelligence_service(
    store: AnalyticsStore = Depends(get_store),
) -> ContentIntelligenceService:
    return ContentIntelligenceService(store)


def get_business_insights_service(
    store: AnalyticsStore = Depends(get_store),
) -> BusinessInsightsService:
    return BusinessInsightsService(store)


def get_ai_performance_service(
    store: AnalyticsStore = Depends(get_store),
) -> AIPerformanceService:
    return AIPerformanceService(store)


def get_dashboard_service(store: AnalyticsStore = Depends(get_store)) -> DashboardService:
    return DashboardService(store, settings.recent_items_limit)


def get_realtime_service(
    repo: RealtimeRepository = Depends(get_realtime_repo),
) -> RealtimeService:
    return RealtimeService(repo)
