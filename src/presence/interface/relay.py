"""Event relay: the set of live WebSocket connections and their rooms.

Delivers the effects produced by the hub and forwards peer-to-peer
negotiation messages between members of a room.  Per-connection send
order is preserved; no ordering is promised across connections.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Iterable

from fastapi import WebSocket
from pydantic import BaseModel

from presence.protocol import Effect, Target, encode

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


@dataclass(eq=False)
class Connection:
    """One accepted client socket."""

    ws: WebSocket
    room: str
    id: int = field(default_factory=lambda: next(_ids))

    async def send(self, message: BaseModel) -> bool:
        try:
            await self.ws.send_text(encode(message))
        except Exception:
            logger.debug("Send to connection %d failed", self.id, exc_info=True)
            return False
        return True


class ConnectionManager:
    """Tracks connections and routes outbound messages."""

    def __init__(self) -> None:
        self._connections: list[Connection] = []

    def __len__(self) -> int:
        return len(self._connections)

    def connect(self, ws: WebSocket, room: str) -> Connection:
        conn = Connection(ws=ws, room=room)
        self._connections.append(conn)
        logger.info("Client connected: %d (room %s)", conn.id, room)
        return conn

    def disconnect(self, conn: Connection) -> None:
        if conn in self._connections:
            self._connections.remove(conn)
            logger.info("Client disconnected: %d", conn.id)

    def recipients(self, origin: Connection, target: Target) -> list[Connection]:
        """Connections that receive a message aimed at ``target``."""
        if target is Target.ORIGIN:
            return [origin]
        if target is Target.ALL:
            return list(self._connections)
        if target is Target.OTHERS:
            return [c for c in self._connections if c is not origin]
        return [
            c for c in self._connections
            if c is not origin and c.room == origin.room
        ]

    async def deliver(self, origin: Connection, effects: Iterable[Effect]) -> None:
        for effect in effects:
            for conn in self.recipients(origin, effect.target):
                await conn.send(effect.message)

    async def relay(self, origin: Connection, message: BaseModel) -> None:
        """Forward a message unchanged to the rest of the origin's room."""
        await self.deliver(origin, [Effect(Target.ROOM, message)])
