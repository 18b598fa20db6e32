import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.core.errors import AppError
from app.core.security import decode_token, resolve_tenant

router = APIRouter()
log = logging.getLogger("app.api.websocket")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = None, restaurant_id: Optional[str] = None):
    """
    Dashboard push channel. The bearer token travels as a query parameter;
    the socket joins the room of the tenant it resolves to.
    """
    try:
        principal = decode_token(token or "")
        restaurant = await resolve_tenant(principal, restaurant_id)
    except AppError as e:
        log.info(f"WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    notifier = websocket.app.state.notifier
    await notifier.connect(restaurant.id, websocket)
    try:
        while True:
            await websocket.receive_text()  # keep alive; clients only listen
    except WebSocketDisconnect:
        pass
    finally:
        notifier.disconnect(restaurant.id, websocket)
