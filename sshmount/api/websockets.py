import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends

from sshmount.dependencies import get_mount_state_info, get_websocket_manager
from sshmount.services.websocket_manager import WebSocketManager

router = APIRouter(prefix="/api/ws", tags=["websockets"])


@router.websocket("/live")
async def websocket_endpoint(
        websocket: WebSocket, ws_manager: WebSocketManager = Depends(get_websocket_manager)
):
    """Mount events stream. Clients may send "ping" or "state"."""
    await ws_manager.connect(websocket)

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
            elif message == "state":
                state = get_mount_state_info()
                await websocket.send_text(
                    json.dumps({"type": "mount_state", "data": state.model_dump(mode="json", by_alias=True)})
                )

    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
