"""Live change channel."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def live_changes(websocket: WebSocket) -> None:
    """Register the client for change messages until it disconnects.

    There is no replay: clients refetch state after connecting.
    """
    registry = websocket.app.state.registry
    await websocket.accept()
    registry.add(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        registry.discard(websocket)
