from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .dispatcher import EventDispatcher
from .hub import AsyncioScheduler, Connection, ConnectionHub
from .identity import origin_fingerprint, resolve_identity
from .registry import RoomRegistry

logger = logging.getLogger(__name__)


class AuctionService:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = RoomRegistry(self.settings)
        self.hub = ConnectionHub()
        self.dispatcher = EventDispatcher(self.registry, self.hub, AsyncioScheduler(), self.settings)

    def health(self) -> dict[str, Any]:
        return {"status": "ok", "rooms": len(self.registry), "connections": len(self.hub)}

    async def serve(self, websocket: WebSocket) -> None:
        await websocket.accept()
        sid = uuid.uuid4().hex
        connection = Connection(
            sid=sid,
            identity=resolve_identity(websocket.query_params.get("playerId"), sid),
            origin=origin_fingerprint(websocket.headers, websocket.client.host if websocket.client else None),
        )
        self.dispatcher.connect(connection)
        writer = asyncio.create_task(self._drain(websocket, connection))
        try:
            while True:
                message = await websocket.receive_json()
                self.dispatcher.handle(connection, message)
        except WebSocketDisconnect:
            pass
        except ValueError:
            logger.warning("Dropping connection %s after a non-JSON frame", sid)
        finally:
            self.dispatcher.disconnect(connection)
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)

    @staticmethod
    async def _drain(websocket: WebSocket, connection: Connection) -> None:
        while True:
            message = await connection.outbox.get()
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                return


service = AuctionService()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    service.registry.shutdown()


app = FastAPI(title="Cricket Auction API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict[str, Any]:
    return service.health()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await service.serve(websocket)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
