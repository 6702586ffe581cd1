"""
Real-time Channel

WebSocket connection tracking with per-user and per-trip rooms. Services
publish through the `RealtimeChannel` interface; `ConnectionManager` is the
WebSocket-backed implementation.
"""

import logging
from typing import Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RealtimeChannel:
    """Publish-only view of the real-time layer used by services."""

    async def publish_to_user(self, user_id: str, event: str, payload: dict) -> None:
        raise NotImplementedError

    async def publish_to_trip(self, trip_id: str, event: str, payload: dict) -> None:
        raise NotImplementedError

    async def broadcast(self, event: str, payload: dict) -> None:
        raise NotImplementedError


class ConnectionManager(RealtimeChannel):
    """
    Manages WebSocket connections.

    Every socket joins its user room on connect and may join trip rooms
    afterwards. Messages are sent as {"event": ..., "data": ...}.
    """

    def __init__(self):
        # user_id -> set of WebSocket connections
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        # trip_id -> set of WebSocket connections
        self.trip_rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        """Accept and track a new connection."""
        await websocket.accept()
        self.active_connections.setdefault(user_id, set()).add(websocket)

    def disconnect(self, websocket: WebSocket, user_id: str):
        """Remove a connection from its user room and every trip room."""
        if user_id in self.active_connections:
            self.active_connections[user_id].discard(websocket)
            if not self.active_connections[user_id]:
                del self.active_connections[user_id]

        for trip_id in list(self.trip_rooms.keys()):
            self.leave_trip(websocket, trip_id)

    def join_trip(self, websocket: WebSocket, trip_id: str):
        self.trip_rooms.setdefault(trip_id, set()).add(websocket)

    def leave_trip(self, websocket: WebSocket, trip_id: str):
        room = self.trip_rooms.get(trip_id)
        if room is None:
            return
        room.discard(websocket)
        if not room:
            del self.trip_rooms[trip_id]

    async def _send(self, sockets: Set[WebSocket], message: dict):
        disconnected = set()

        for websocket in list(sockets):
            try:
                await websocket.send_json(message)
            except Exception:
                disconnected.add(websocket)

        # Clean up disconnected sockets from every room they were in
        for ws in disconnected:
            self._drop(ws)

    def _drop(self, websocket: WebSocket):
        for user_id in list(self.active_connections.keys()):
            sockets = self.active_connections[user_id]
            sockets.discard(websocket)
            if not sockets:
                del self.active_connections[user_id]

        for trip_id in list(self.trip_rooms.keys()):
            self.leave_trip(websocket, trip_id)

    async def publish_to_user(self, user_id: str, event: str, payload: dict) -> None:
        sockets = self.active_connections.get(user_id)
        if sockets:
            await self._send(sockets, {"event": event, "data": payload})

    async def publish_to_trip(self, trip_id: str, event: str, payload: dict) -> None:
        sockets = self.trip_rooms.get(trip_id)
        if sockets:
            await self._send(sockets, {"event": event, "data": payload})

    async def broadcast(self, event: str, payload: dict) -> None:
        """Send to ALL connected users."""
        for user_id in list(self.active_connections.keys()):
            await self.publish_to_user(user_id, event, payload)


manager = ConnectionManager()
