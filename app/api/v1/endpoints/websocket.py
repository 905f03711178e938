"""WebSocket endpoint: single /ws that uses the connection manager from app.state.

Requires a valid user JWT via query param ?token=... before registering the
connection. The server only pushes; inbound text is answered with a pong.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.constants import WS_POLICY_VIOLATION
from app.infrastructure.security.jwt import verify_token
from app.shared.enums import ActorType

router = APIRouter()


async def _reject_websocket(websocket: WebSocket, reason: str) -> None:
    """Accept then immediately close with code/reason so client gets a proper close frame."""
    await websocket.accept()
    await websocket.close(code=WS_POLICY_VIOLATION, reason=reason)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Register the caller's connection for task notifications."""
    manager = websocket.app.state.ws_manager
    token = websocket.query_params.get("token")
    if not token:
        await _reject_websocket(websocket, "Missing token")
        return
    try:
        claims = verify_token(token)
    except ValueError:
        await _reject_websocket(websocket, "Invalid token")
        return
    if claims.kind != ActorType.USER.value:
        await _reject_websocket(websocket, "User token required")
        return
    await manager.connect(websocket, claims.subject)
    try:
        while True:
            await websocket.receive_text()
            await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
