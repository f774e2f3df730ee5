import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from libs.event_bus.transport import WebSocketConnection

router = APIRouter()
logger = logging.getLogger(__name__)


async def _serve(ws: WebSocket) -> None:
    await ws.accept()
    rt = ws.app.state.runtime
    conn = WebSocketConnection(ws)
    logger.info("WebSocket client connected: %s", ws.client)
    await rt.registry.add(conn)
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await rt.ingress.handle(raw, conn)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected: %s", ws.client)
    finally:
        rt.registry.remove(conn)


@router.websocket("/ws")
async def ws_battery(ws: WebSocket):
    await _serve(ws)


@router.websocket("/")
async def ws_root(ws: WebSocket):
    # legacy dashboards connect to the bare root path
    await _serve(ws)
