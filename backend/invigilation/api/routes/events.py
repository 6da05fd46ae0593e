from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from invigilation.api.deps import get_db
from invigilation.models.user import User, UserRole
from invigilation.services.notification_hub import STAFF_CHANNEL, notification_hub, user_channel

router = APIRouter()


@router.websocket("/events/ws")
async def events_websocket(
    websocket: WebSocket,
    db: Session = Depends(get_db),
) -> None:
    user_id = websocket.query_params.get("user_id") or websocket.headers.get("x-user-id")
    if not user_id:
        await websocket.close(code=1008)
        return

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        await websocket.close(code=1008)
        return

    channels = [user_channel(user.id)]
    if user.role in (UserRole.admin, UserRole.hod):
        channels.append(STAFF_CHANNEL)

    await notification_hub.connect(channels, websocket)
    try:
        await websocket.send_json({"event": "connected", "user_id": user.id, "channels": channels})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await notification_hub.disconnect(channels, websocket)
