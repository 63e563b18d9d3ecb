# routers/realtime.py
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from services.notifications import ConnectionHub, get_notification_sink

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def work_events(websocket: WebSocket, hub: ConnectionHub = Depends(get_notification_sink)):
    """
    Subscribe to server events (workSubmitted). Inbound messages are
    read only to notice the disconnect.
    """
    try:
        await hub.connect(websocket)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(websocket)
