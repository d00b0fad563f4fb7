from fastapi import APIRouter
from crimewatch.api.routes import health, incidents, analytics, risk, realtime

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(incidents.router)
api_router.include_router(analytics.router)
api_router.include_router(risk.router)
api_router.include_router(realtime.router)
