"""
BridgeClient: Python side of the bridge WebSocket protocol.

One client owns exactly one socket. Components that need to talk to the
host receive the client instance instead of opening their own connection:

    client = BridgeClient('ws://localhost:30000', password='secret')
    await client.connect()

    panel = TaskPanel(transport=client)      # both send over the same socket
    toolbar = Toolbar(transport=client)

    client.onMessage(lambda payload: print(payload))
    await client.run()                       # receive loop, reconnects on close

Property of Uncompromising Sensors LLC.
"""

# Imports
import asyncio
import inspect
import time
import aiohttp
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from bridge.core.contracts import ExtensionMessage, webviewMessage, toolbarAction
from sdk.logging import getLogger

DEFAULT_RECONNECT_DELAY = 2.0

MessageCallback = Callable[[Any], Union[None, Awaitable[None]]]


class BridgeClient:
    """
    Shared transport handle to a bridge server.

    Lifecycle States:
        - CLOSED: No socket (initial, after close())
        - READY: Socket open, sends are delivered
        - RECONNECTING: Socket dropped, run() will reconnect after reconnectDelay
    """

    def __init__(self, url: str, password: Optional[str] = None, username: str = 'browser',
                 reconnectDelay: float = DEFAULT_RECONNECT_DELAY):
        self.log = getLogger()
        self.url = url
        self.reconnectDelay = reconnectDelay
        self._headers = {'Authorization': aiohttp.BasicAuth(username, password).encode()} if password else None

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._state = 'CLOSED'
        self._closing = False
        self._connectedAt: Optional[float] = None
        self._callbacks: List[MessageCallback] = []

        # Stats
        self.msgsIn = 0
        self.msgsOut = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def isConnected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def getWs(self) -> Optional[aiohttp.ClientWebSocketResponse]:
        return self._ws

    def onMessage(self, callback: MessageCallback):
        """Register a callback for extension-message payloads"""
        self._callbacks.append(callback)

    async def connect(self):
        """Open the socket. Raises aiohttp.ClientError / WSServerHandshakeError on failure."""
        self._closing = False
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self.url, headers=self._headers)
        self._state = 'READY'
        self._connectedAt = time.time()
        self.log.info(f"[BridgeClient] Connected to {self.url}")

    async def close(self):
        """Close the socket and session; run() returns afterwards"""
        self._closing = True
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._state = 'CLOSED'

    async def postMessage(self, payload: Any) -> bool:
        """Send a webview-message. False (dropped) when not connected."""
        return await self._send(webviewMessage(payload))

    async def sendToolbarAction(self, action: str) -> bool:
        """Send a toolbar-action. False (dropped) when not connected."""
        return await self._send(toolbarAction(action))

    async def _send(self, envelope: Dict[str, Any]) -> bool:
        if not self.isConnected:
            return False
        await self._ws.send_json(envelope)
        self.msgsOut += 1
        return True

    async def receive(self, timeout: Optional[float] = None) -> Optional[Any]:
        """
        Wait for the next extension-message payload.

        Returns None when the socket closes. Frames that are not
        extension-messages are skipped.
        """
        while self.isConnected:
            msg = await self._ws.receive(timeout=timeout)
            if msg.type != aiohttp.WSMsgType.TEXT:
                if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING,
                                aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    return None
                continue
            message = ExtensionMessage.fromJson(msg.data)
            if message is not None:
                self.msgsIn += 1
                return message.payload
        return None

    async def run(self):
        """Dispatch incoming payloads to callbacks, reconnecting after reconnectDelay until close()"""
        while not self._closing:
            if not self.isConnected:
                try:
                    await self.connect()
                except (aiohttp.ClientError, OSError) as e:
                    self._state = 'RECONNECTING'
                    self.log.warning(f"[BridgeClient] Connect failed: {e}")
                    await asyncio.sleep(self.reconnectDelay)
                    continue

            payload = await self.receive()
            if payload is None:
                if self._closing:
                    break
                self._state = 'RECONNECTING'
                self._ws = None
                self.log.info(f"[BridgeClient] Disconnected, reconnecting in {self.reconnectDelay}s")
                await asyncio.sleep(self.reconnectDelay)
                continue

            await self._dispatch(payload)

    async def _dispatch(self, payload: Any):
        for callback in list(self._callbacks):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.log.error(f"[BridgeClient] Message callback failed: {e}", exc_info=True)

    def status(self) -> Dict[str, Any]:
        return {'state': self._state, 'endpoint': self.url, 'sinceTs': self._connectedAt,
                'msgsIn': self.msgsIn, 'msgsOut': self.msgsOut}

    # ===== Context Manager Support =====
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
