"""Real-time WebSocket endpoint for incident snapshots and alerts."""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from crimewatch.core.config import get_settings
from crimewatch.services.ingest.incident_store import get_incident_store
from crimewatch.services.realtime.snapshot_update_service import snapshot_payload
from crimewatch.services.realtime.websocket_manager import envelope, get_websocket_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])
settings = get_settings()


@router.websocket("/incidents")
async def websocket_incident_updates(
    websocket: WebSocket,
    crime_types: Optional[List[str]] = Query(None, description="Crime types to alert on"),
    near: Optional[str] = Query(None, description="Only alert on locations containing this"),
):
    """
    WebSocket endpoint for live incident updates.

    When a client connects:
    1. Sends the current snapshot summary (clusters included)
    2. Receives a snapshot message after every successful poll, plus
       new_incidents messages filtered by crime type and location
    3. Gets heartbeat messages periodically
    """
    if not settings.realtime_enabled:
        await websocket.close(code=1003, reason="Real-time updates disabled")
        return

    websocket_manager = get_websocket_manager()
    client_id = await websocket_manager.connect(
        websocket, crime_types=crime_types, near_location=near
    )

    try:
        await websocket_manager.send_personal_message(
            envelope("snapshot", snapshot_payload(get_incident_store().snapshot)),
            client_id,
        )

        heartbeat_task = asyncio.create_task(
            _heartbeat_loop(websocket_manager, client_id, settings.websocket_heartbeat_interval)
        )

        # Listen for messages (client can send ping or other commands)
        try:
            while True:
                try:
                    data = await asyncio.wait_for(websocket.receive_text(), timeout=1.0)
                    logger.debug(f"Received message from client {client_id}: {data}")
                except asyncio.TimeoutError:
                    continue
                except WebSocketDisconnect:
                    break
        finally:
            heartbeat_task.cancel()
            try:
                await heartbeat_task
            except asyncio.CancelledError:
                pass

    except Exception as e:
        logger.error(f"WebSocket error for client {client_id}: {str(e)}", exc_info=True)
        await websocket_manager.send_error(client_id, f"Server error: {str(e)}")
    finally:
        await websocket_manager.disconnect(client_id)


async def _heartbeat_loop(websocket_manager, client_id: str, interval: int):
    """
    Send periodic heartbeat messages to a client.

    Args:
        websocket_manager: WebSocket manager instance
        client_id: Client ID
        interval: Heartbeat interval in seconds
    """
    try:
        while True:
            await asyncio.sleep(interval)
            await websocket_manager.send_heartbeat(client_id)
    except asyncio.CancelledError:
        logger.debug(f"Heartbeat loop cancelled for client {client_id}")
        raise
