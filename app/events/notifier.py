"""Real-time push to dashboard clients.

Clients join the room of the restaurant they work for and receive every event
emitted for that tenant. Delivery is best-effort: a socket that fails to
receive is dropped.
"""
import logging
from typing import Any, Dict, Set
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

log = logging.getLogger("app.notifier")

# Event names pushed to clients
ORDER_CREATED = "order:created"
ORDER_UPDATED = "order:updated"
ORDER_CANCELLED = "order:cancelled"
ORDER_PAID = "order:paid"
ORDER_ITEM_UPDATED = "order:item:updated"
TABLE_STATUS_CHANGED = "table:statusChanged"
INVENTORY_LOW_STOCK = "inventory:lowStock"
RESERVATION_CREATED = "reservation:created"
RESERVATION_UPDATED = "reservation:updated"


def room_for(restaurant_id) -> str:
    return f"restaurant:{restaurant_id}"


class ConnectionManager:
    """Manages WebSocket connections grouped into per-tenant rooms."""

    def __init__(self) -> None:
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, restaurant_id: UUID, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        room = room_for(restaurant_id)
        self.rooms.setdefault(room, set()).add(websocket)
        log.info(f"WebSocket joined {room} ({len(self.rooms[room])} connected)")

    def disconnect(self, restaurant_id: UUID, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        room = room_for(restaurant_id)
        sockets = self.rooms.get(room)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.rooms[room]
        log.info(f"WebSocket left {room}")

    async def emit(self, restaurant_id: UUID, event: str, payload: Any) -> None:
        """Broadcast an event to every connection of the tenant."""
        room = room_for(restaurant_id)
        sockets = list(self.rooms.get(room, ()))
        if not sockets:
            return

        message = {"event": event, "data": jsonable_encoder(payload)}
        for websocket in sockets:
            try:
                await websocket.send_json(message)
            except Exception as e:
                log.warning(f"Dropping socket from {room} after failed send: {e}")
                self.disconnect(restaurant_id, websocket)
