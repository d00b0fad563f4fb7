"""Connected map clients and their alert filters."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from fastapi import WebSocket

from crimewatch.schemas.incident import Incident, IncidentRead
from crimewatch.services.analytics.alerts import filter_alerts

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(kind: str, data=None) -> dict:
    """Wrap a payload the way every realtime message is framed."""
    message = {"type": kind, "timestamp": _utcnow()}
    if data is not None:
        message["data"] = data
    return message


@dataclass
class ClientSession:
    websocket: WebSocket
    crime_types: Optional[List[str]] = None
    near_location: Optional[str] = None
    connected_at: str = field(default_factory=_utcnow)
    last_heartbeat: Optional[str] = None

    def wants(self, incidents: Iterable[Incident]) -> List[Incident]:
        return filter_alerts(incidents, self.crime_types, self.near_location)


class WebSocketManager:
    """Tracks open incident sockets and pushes snapshots and alerts to them."""

    def __init__(self):
        self.sessions: Dict[str, ClientSession] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self,
        websocket: WebSocket,
        client_id: Optional[str] = None,
        crime_types: Optional[Iterable[str]] = None,
        near_location: Optional[str] = None,
    ) -> str:
        """
        Accept a socket and register its alert filters.

        Args:
            websocket: WebSocket connection
            client_id: Optional client ID (generated if not provided)
            crime_types: Crime types the client wants alerts for (all if None)
            near_location: Only alert on incidents whose location contains this

        Returns:
            Client ID
        """
        await websocket.accept()
        client_id = client_id or str(uuid.uuid4())

        async with self._lock:
            self.sessions[client_id] = ClientSession(
                websocket=websocket,
                crime_types=list(crime_types) if crime_types else None,
                near_location=near_location,
            )

        logger.info(f"WebSocket client connected: {client_id}")
        return client_id

    async def disconnect(self, client_id: str):
        async with self._lock:
            removed = self.sessions.pop(client_id, None)
        if removed is not None:
            logger.info(f"WebSocket client disconnected: {client_id}")

    async def _send(self, client_id: str, session: ClientSession, message: dict) -> bool:
        try:
            await session.websocket.send_json(message)
            return True
        except Exception as e:
            logger.error(f"Dropping client {client_id} after failed send: {str(e)}")
            await self.disconnect(client_id)
            return False

    async def send_personal_message(self, message: dict, client_id: str):
        session = self.sessions.get(client_id)
        if session is None:
            logger.warning(f"Client {client_id} not found in active connections")
            return
        await self._send(client_id, session, message)

    async def broadcast_snapshot(self, snapshot_data: dict):
        """Send a snapshot summary (version, counts, clusters) to every client."""
        message = envelope("snapshot", snapshot_data)
        async with self._lock:
            targets = list(self.sessions.items())

        delivered = 0
        for client_id, session in targets:
            delivered += await self._send(client_id, session, message)
        logger.info(f"Broadcasted snapshot v{snapshot_data.get('version')} to {delivered} clients")

    async def broadcast_new_incidents(self, incidents: List[Incident]):
        """Send each client the new incidents that pass its alert filters."""
        if not incidents:
            return

        async with self._lock:
            targets = list(self.sessions.items())

        for client_id, session in targets:
            relevant = session.wants(incidents)
            if not relevant:
                continue
            payload = [IncidentRead.from_incident(i).model_dump(mode="json") for i in relevant]
            await self._send(client_id, session, envelope("new_incidents", payload))

    async def send_heartbeat(self, client_id: str):
        session = self.sessions.get(client_id)
        if session is None:
            return
        if await self._send(client_id, session, envelope("heartbeat")):
            session.last_heartbeat = _utcnow()

    async def send_error(self, client_id: str, error_message: str):
        await self.send_personal_message(envelope("error", {"message": error_message}), client_id)

    def get_connection_count(self) -> int:
        return len(self.sessions)


# Singleton instance
_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the singleton WebSocket manager instance.

    Returns:
        WebSocketManager instance
    """
    global _manager
    if _manager is None:
        _manager = WebSocketManager()
    return _manager
