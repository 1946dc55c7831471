"""
Message relay between browser connections and the host application.

Inbound: each text frame is decoded into an envelope and handed to at most
one of two host callbacks. Nothing a frame contains and nothing a callback
raises can close the connection it arrived on.

Outbound: a host message is wrapped and serialized once, then the same text
is written to every open connection.

Property of Uncompromising Sensors LLC.
"""

from typing import Any, Awaitable, Callable, Optional

from bridge.core.contracts import InboundEnvelope, ExtensionMessage, EnvelopeError
from bridge.server.connections import ClientConnection, ConnectionRegistry
from sdk.logging import getLogger

WebServerMessageHandler = Callable[[Any], Awaitable[None]]
WebServerToolbarActionHandler = Callable[[str], Awaitable[None]]


class MessageRelay:
    """
    Routes envelopes to the host callbacks and fans host messages out.

    Each callback slot holds at most one handler; setting replaces it and
    None clears it. A frame whose slot is empty is dropped silently.
    """

    def __init__(self, registry: ConnectionRegistry, logScope: Optional[str] = None):
        self.registry = registry
        self.log = getLogger(scope=logScope)
        self.messageHandler: Optional[WebServerMessageHandler] = None
        self.toolbarActionHandler: Optional[WebServerToolbarActionHandler] = None

    def setMessageHandler(self, handler: Optional[WebServerMessageHandler]):
        self.messageHandler = handler

    def setToolbarActionHandler(self, handler: Optional[WebServerToolbarActionHandler]):
        self.toolbarActionHandler = handler

    async def handleFrame(self, conn: ClientConnection, data: str):
        """Handle one inbound text frame from conn"""
        conn.msgsIn += 1
        try:
            envelope = InboundEnvelope.fromJson(data)
        except EnvelopeError as e:
            self.log.warning(f"[WebServer] Dropping malformed WebSocket frame: {e}")
            return

        # Independent checks, the protocol never sets both
        payload = envelope.webviewPayload
        if payload is not None and self.messageHandler is not None:
            await self._invoke(self.messageHandler, payload, 'webview-message')

        action = envelope.toolbarAction
        if action is not None and self.toolbarActionHandler is not None:
            await self._invoke(self.toolbarActionHandler, action, 'toolbar-action')

    async def _invoke(self, handler: Callable[[Any], Awaitable[None]], arg: Any, kind: str):
        try:
            await handler(arg)
        except Exception as e:
            self.log.error(f"[WebServer] Error handling WebSocket message: {e}", kind=kind, exc_info=True)

    async def broadcast(self, message: Any) -> int:
        """
        Send message to all open connections.

        Returns the number of connections written to. Closed connections are
        skipped; their close/error hook removes them from the registry.
        """
        if len(self.registry) == 0:
            return 0

        data = ExtensionMessage(payload=message).toText()
        sent = 0
        for conn in self.registry.snapshot():
            if not conn.isOpen:
                continue
            try:
                await conn.sendText(data)
                sent += 1
            except (ConnectionError, RuntimeError) as e:
                self.log.warning(f"[WebServer] Failed to send to client {conn.connId}: {e}")
        return sent
