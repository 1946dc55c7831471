"""
Bridge connection tracking.

ClientConnection wraps one upgraded browser WebSocket.
ConnectionRegistry is the live set of connections; it is mutated only by the
connection lifecycle (add on upgrade, remove on close or error, clear on stop)
and read by broadcast through a stable snapshot.

Property of Uncompromising Sensors LLC.
"""

import asyncio
from typing import Dict, Iterator, Optional, Tuple
from aiohttp import web

from sdk.logging import getLogger


class ClientConnection:
    """
    Ephemeral browser connection.

    Exists only while the WebSocket is open. Never mutated by the registry;
    terminate() is the only way the server closes it.
    """

    def __init__(self, connId: str, ws: web.WebSocketResponse,
                 transport: Optional[asyncio.BaseTransport] = None, peerAddr: str = "unknown"):
        self.connId = connId
        self.ws = ws
        self.transport = transport
        self.peerAddr = peerAddr
        self.terminated = False

        # Stats
        self.msgsIn = 0
        self.msgsOut = 0

    @property
    def isOpen(self) -> bool:
        """True until the socket closes or the server terminates it"""
        return not self.terminated and not self.ws.closed

    async def sendText(self, data: str):
        """Send one text frame"""
        await self.ws.send_str(data)
        self.msgsOut += 1

    def terminate(self):
        """Drop the connection without a close handshake"""
        self.terminated = True
        if self.transport is not None and not self.transport.is_closing():
            self.transport.abort()

    def __repr__(self) -> str:
        return f"ClientConnection({self.connId}, peer={self.peerAddr}, open={self.isOpen})"


class ConnectionRegistry:
    """
    Live set of browser connections.

    Membership is the only state. Removing an absent connection is a no-op.
    Iteration always goes over a snapshot so the lifecycle hooks can add or
    remove while a broadcast is in flight.
    """

    def __init__(self, logScope: Optional[str] = None):
        self.log = getLogger(scope=logScope)
        self._connections: Dict[str, ClientConnection] = {}

    def add(self, conn: ClientConnection):
        self._connections[conn.connId] = conn
        self.log.info(f"[WebServer] Browser client connected. Total clients: {len(self._connections)}")

    def remove(self, conn: ClientConnection) -> bool:
        """Remove on close. Returns False if it was already gone."""
        if self._connections.pop(conn.connId, None) is None:
            return False
        self.log.info(f"[WebServer] Browser client disconnected. Total clients: {len(self._connections)}")
        return True

    def removeOnError(self, conn: ClientConnection, error: object):
        """Error is treated as close"""
        self.log.error(f"[WebServer] WebSocket error: {error}")
        self.remove(conn)

    def snapshot(self) -> Tuple[ClientConnection, ...]:
        return tuple(self._connections.values())

    def clear(self):
        self._connections.clear()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, conn: object) -> bool:
        return self._connections.get(getattr(conn, 'connId', None)) is conn

    def __iter__(self) -> Iterator[ClientConnection]:
        return iter(self.snapshot())
