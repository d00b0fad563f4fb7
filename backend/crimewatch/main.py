import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crimewatch.core.config import get_settings
from crimewatch.api import api_router
from crimewatch.services.realtime.poller import get_incident_poller
from crimewatch.services.realtime.snapshot_update_service import get_snapshot_update_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    poller = get_incident_poller()
    update_service = get_snapshot_update_service()

    if settings.polling_enabled:
        update_service.start()
        poller.start()
    else:
        logger.info("Incident polling disabled; serving the cached snapshot only")
        poller.warm_from_cache()

    yield

    await poller.stop()
    await update_service.stop()
    poller.feed_client.close()


app = FastAPI(
    title="Crimewatch Analytics",
    description="""
    ## Crimewatch Analytics API

    Hotspot clustering, trend analysis and location risk over a polled crime report feed.

    ### Endpoints

    * `/api/v1/health` - Poller and snapshot status
    * `/api/v1/incidents` - Normalized incidents from the current snapshot
    * `/api/v1/analytics` - Hotspot clusters, period trends, dashboard counters
    * `/api/v1/risk` - Location risk assessment, suggestions, route safety
    * `/api/v1/realtime` - Live snapshots and new-incident alerts (WebSocket)
    """,
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Poller and snapshot status"},
        {"name": "Incidents", "description": "Normalized incident listing and manual refresh"},
        {"name": "Analytics", "description": "Hotspot clusters, trends and dashboard counters"},
        {"name": "Risk", "description": "Heuristic location risk and route safety scores"},
        {"name": "Realtime", "description": "Live incident updates over WebSocket"},
    ],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/", tags=["Health"])
def root():
    return {
        "name": "Crimewatch Analytics",
        "version": "1.0.0",
        "status": "running",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "crimewatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
    )
