"""
WebSocket Router

Real-time notifications, trip chat and live location.
"""

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ecoride.dependencies import get_chat_service, get_user_service
from ecoride.models.chat_message import LocationUpdate
from ecoride.realtime import manager
from ecoride.services.chat_service import ChatService
from ecoride.services.exceptions import EcoRideError
from ecoride.services.user_service import UserService
from ecoride.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("")
async def websocket_endpoint(
    websocket: WebSocket,
    user_id: str = Query(...),
    users: UserService = Depends(get_user_service),
    chat: ChatService = Depends(get_chat_service),
):
    """
    WebSocket endpoint for real-time updates.

    Connect with: ws://host/ws?user_id=<id>

    Client messages:
    - ping
    - joinTrip / leaveTrip {trip_id}
    - sendMessage {trip_id, message}
    - updateLocation {trip_id, lat, lng}

    Events sent to client: newNotification, newTripCreated, receiveMessage,
    locationUpdated, error.
    """
    try:
        user = await users.get_user(user_id)
    except EcoRideError:
        await websocket.close(code=4001, reason="Unknown user")
        return

    await manager.connect(websocket, user.user_id)

    try:
        await websocket.send_json({
            "event": "connected",
            "data": {"user_id": user.user_id, "timestamp": utc_now().isoformat()},
        })

        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                continue

            message_type = message.get("type")
            trip_id = message.get("trip_id")

            try:
                if message_type == "ping":
                    await websocket.send_json(
                        {"event": "pong", "data": {"timestamp": utc_now().isoformat()}}
                    )

                elif message_type == "joinTrip" and trip_id:
                    if await chat.can_join(trip_id, user.user_id):
                        manager.join_trip(websocket, trip_id)
                    else:
                        await websocket.send_json(
                            {"event": "error", "data": {"detail": "Not a trip participant"}}
                        )

                elif message_type == "leaveTrip" and trip_id:
                    manager.leave_trip(websocket, trip_id)

                elif message_type == "sendMessage" and trip_id:
                    content = (message.get("message") or "").strip()
                    if content:
                        await chat.send_message(trip_id, user, content)

                elif message_type == "updateLocation" and trip_id:
                    location = LocationUpdate(lat=message.get("lat"), lng=message.get("lng"))
                    await chat.update_location(trip_id, user, location)

            except (EcoRideError, ValidationError) as e:
                await websocket.send_json({"event": "error", "data": {"detail": str(e)}})

    except WebSocketDisconnect:
        manager.disconnect(websocket, user.user_id)
