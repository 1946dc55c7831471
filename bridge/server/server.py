"""
Bridge Server - HTTP + WebSocket edge for browser access to the webview UI.

Serves the built UI on one port and relays messages between browser
clients and the host application over WebSocket on the same port.

Architecture invariants:
- Single process, single listener, one asyncio loop
- Configuration changes apply on the next start(), never to a live listener
- The connection registry is mutated only by the connection lifecycle
- Payloads are opaque; the host callbacks own all message semantics
- Nothing persists across restarts

Property of Uncompromising Sensors LLC.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, Set, Union
from concurrent.futures import Future
from aiohttp import web, WSMsgType

from bridge.core.config import ServerConfig, AssetRoots, normalizePort
from bridge.server.assets import StaticAssetResolver
from bridge.server.auth import BasicAuthGuard
from bridge.server.connections import ClientConnection, ConnectionRegistry
from bridge.server.relay import MessageRelay, WebServerMessageHandler, WebServerToolbarActionHandler
from sdk.logging import getLogger, addLineSink, removeLineSink, setConnectionContext

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}


class BridgeServer:
    """
    Bridge server lifecycle.

    Exposed to the host application: configure, start, stop, isRunning,
    getPort, broadcastToClients, setMessageHandler, setToolbarActionHandler,
    and close() when the host is done with the instance.
    """

    def __init__(self, extensionRoot: Union[str, Path], lineSink: Optional[Callable[[str], None]] = None,
                 config: Optional[ServerConfig] = None):
        # Every logger of this instance carries its scope; the host sink follows only that
        self.logScope = f"server-{uuid.uuid4().hex[:8]}"
        self.log = getLogger(scope=self.logScope)
        self.logSink = addLineSink(lineSink, scope=self.logScope) if lineSink else None

        self.config = config or ServerConfig()
        self.roots = AssetRoots.fromExtensionRoot(extensionRoot)

        # Live browser connections and the relay that reads them
        self.registry = ConnectionRegistry(self.logScope)
        self.relay = MessageRelay(self.registry, self.logScope)

        # Built on start() from the config at that moment
        self.app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._guard: Optional[BasicAuthGuard] = None
        self._resolver = StaticAssetResolver(self.roots, self.logScope)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        # WebSocket handler tasks, awaited on stop()
        self._wsTasks: Set[asyncio.Task] = set()
        self._acceptingUpgrades = False

    # =========================================================================
    # Host API
    # =========================================================================

    def getPort(self) -> int:
        return self.config.port

    def configure(self, port: Any, password: Optional[str]):
        """Set port and password for the next start(). Invalid ports fall back to the default."""
        self.config.port = normalizePort(port)
        self.config.password = password or ""

    def setMessageHandler(self, handler: Optional[WebServerMessageHandler]):
        self.relay.setMessageHandler(handler)

    def setToolbarActionHandler(self, handler: Optional[WebServerToolbarActionHandler]):
        self.relay.setToolbarActionHandler(handler)

    def isRunning(self) -> bool:
        return self._runner is not None and bool(self._runner.addresses)

    @property
    def connectionCount(self) -> int:
        return len(self.registry)

    async def broadcastToClients(self, message: Any) -> int:
        """Send a host message to every connected browser. Returns clients reached."""
        return await self.relay.broadcast(message)

    def broadcastToClientsThreadsafe(self, message: Any) -> Optional[Future]:
        """Schedule a broadcast from another thread; None if not running"""
        if self._loop is None or not self.isRunning():
            return None
        return asyncio.run_coroutine_threadsafe(self.broadcastToClients(message), self._loop)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self):
        """Bind the listener. Returns once the socket is bound; bind errors propagate."""
        if self.isRunning():
            self.log.info("[WebServer] Already running.")
            return

        self._guard = BasicAuthGuard(self.config.password, self.config.realm, self.logScope)
        self.app = self._createApp()

        runner = web.AppRunner(self.app, shutdown_timeout=self.config.shutdownTimeout)
        await runner.setup()

        host = self.config.host
        port = self.config.port
        site = web.TCPSite(runner, host, port)
        try:
            await site.start()
        except OSError as e:
            self.log.error(f"[WebServer] Failed to start server: {e}")
            await runner.cleanup()
            raise

        self._runner = runner
        self._site = site
        self._loop = asyncio.get_running_loop()
        self._acceptingUpgrades = True

        auth = "password protected" if self._guard.enabled else "no auth"
        self.log.info(f"[WebServer] Web server started on http://{host}:{port} ({auth})")

    async def stop(self):
        """
        Tear down in order: connections, WebSocket layer, listener.

        Errors from closing the listener propagate; the server is left
        stopped either way.
        """
        if not self.isRunning():
            return

        self._acceptingUpgrades = False

        for conn in self.registry.snapshot():
            conn.terminate()
        self.registry.clear()

        await self._closeWebSocketLayer()

        try:
            await self._site.stop()
        finally:
            runner = self._runner
            self._site = None
            self._runner = None
            self._loop = None
            await runner.cleanup()

        self.log.info("[WebServer] Server stopped.")

    async def close(self):
        """Stop if running and detach the host line sink. The instance is not reused afterwards."""
        await self.stop()
        if self.logSink is not None:
            removeLineSink(self.logSink)
            self.logSink = None

    async def _closeWebSocketLayer(self):
        """Wait for connection handlers to exit, cancelling any that outlive the timeout"""
        current = asyncio.current_task()
        pending = {task for task in self._wsTasks if task is not current and not task.done()}
        if not pending:
            return

        done, stuck = await asyncio.wait(pending, timeout=self.config.shutdownTimeout)
        for task in stuck:
            task.cancel()
        if stuck:
            self.log.warning(f"[WebServer] Cancelled {len(stuck)} WebSocket handler(s) on shutdown")
            await asyncio.gather(*stuck, return_exceptions=True)

    # =========================================================================
    # aiohttp app
    # =========================================================================

    def _createApp(self) -> web.Application:
        app = web.Application(middlewares=[self._accessMiddleware])
        app.on_response_prepare.append(self._addCorsHeaders)
        app.router.add_route('*', '/{tail:.*}', self.handleRequest)
        return app

    async def _addCorsHeaders(self, request: web.Request, response: web.StreamResponse):
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)

    @web.middleware
    async def _accessMiddleware(self, request: web.Request, handler):
        # Preflight never requires credentials
        if request.method == 'OPTIONS':
            return web.Response(status=204)

        denied = self._guard.check(request)
        if denied is not None:
            return denied

        return await handler(request)

    async def handleRequest(self, request: web.Request) -> web.StreamResponse:
        """Single entry for every path: WebSocket upgrade or static asset"""
        if request.headers.get('Upgrade', '').lower() == 'websocket':
            return await self.handleWebSocket(request)
        return await self._resolver.serve(request)

    # =========================================================================
    # WebSocket Handler
    # =========================================================================

    async def handleWebSocket(self, request: web.Request) -> web.WebSocketResponse:
        """Upgrade, register, then relay frames in arrival order until the socket closes"""
        if not self._acceptingUpgrades:
            raise web.HTTPServiceUnavailable(text='Server is shutting down')

        ws = web.WebSocketResponse(heartbeat=self.config.heartbeatSeconds)
        await ws.prepare(request)

        connId = str(uuid.uuid4())
        peername = request.transport.get_extra_info('peername') if request.transport else None
        peerAddr = f"{peername[0]}:{peername[1]}" if peername else "unknown"

        conn = ClientConnection(connId, ws, request.transport, peerAddr)
        setConnectionContext(connId, peerAddr)

        task = asyncio.current_task()
        self._wsTasks.add(task)
        self.registry.add(conn)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self.relay.handleFrame(conn, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    self.registry.removeOnError(conn, ws.exception())
                    break

        except Exception as e:
            self.registry.removeOnError(conn, e)

        finally:
            self.registry.remove(conn)
            self._wsTasks.discard(task)

        return ws
