import json

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from libs.log.tracing import now_iso


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the registry's Connection interface.

    Starlette exposes no protocol-level ping, so liveness probes travel as
    ``{"type": "ping"}`` frames and are answered with ``{"type": "pong"}``.
    """

    def __init__(self, ws: WebSocket) -> None:
        self.ws = ws

    @property
    def is_open(self) -> bool:
        return (
            self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.ws.send_text(data)

    async def ping(self) -> None:
        await self.ws.send_text(json.dumps({"type": "ping", "timestamp": now_iso()}))

    async def close(self, code: int = 1000) -> None:
        if self.ws.application_state != WebSocketState.DISCONNECTED:
            await self.ws.close(code=code)
