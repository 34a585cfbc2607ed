from fastapi import APIRouter

from .endpoints import analytics, health, jobs, realtime

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(analytics.router)
api_router.include_router(realtime.router)
api_router.include_router(jobs.router)
