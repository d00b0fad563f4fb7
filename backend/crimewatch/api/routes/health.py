from fastapi import APIRouter, Depends

from crimewatch.api.deps import get_poller
from crimewatch.services.realtime.poller import IncidentPoller
from crimewatch.services.realtime.snapshot_cache import get_snapshot_cache
from crimewatch.services.realtime.websocket_manager import get_websocket_manager

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "",
    summary="Service health",
    description="Reports poller state, the current snapshot and cache availability",
)
def health_check(poller: IncidentPoller = Depends(get_poller)):
    poller_status = poller.status()
    if poller_status["snapshot_version"] == 0:
        feed_status = "waiting"
    elif poller_status["last_error"]:
        feed_status = "stale"
    else:
        feed_status = "ok"

    return {
        "status": "ok",
        "feed": feed_status,
        "cache": "ok" if get_snapshot_cache().is_enabled() else "disabled",
        "poller": poller_status,
        "websocket_clients": get_websocket_manager().get_connection_count(),
    }
