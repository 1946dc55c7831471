"""
Web bridge standalone entry point.

Runs the bridge without a host application: webview messages and toolbar
actions are logged, and each toolbar action is echoed back to every browser
as an extension message.

Usage:
    python -m bridge.main [--config path/to/config.json] [--port 30000]
                          [--password secret] [--root path/to/extension]

Property of Uncompromising Sensors LLC.
"""

import asyncio
import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from bridge.core.config import ServerConfig, ConfigError, loadConfig, validatePort
from bridge.server.server import BridgeServer
from sdk.logging import getLogger, configureLogging


def parseArgs(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Web bridge - browser access to the webview UI')
    parser.add_argument('--config', default=None, help='Path to JSON config file')
    parser.add_argument('--port', type=int, default=None, help='Listen port (default 30000)')
    parser.add_argument('--password', default=None, help='Basic auth password (empty disables auth)')
    parser.add_argument('--root', default=None, help='Extension root containing webview-ui/ and assets/')
    parser.add_argument('--log-level', default=None, help='Log level (default INFO)')
    return parser.parse_args(argv)


def buildSettings(args: argparse.Namespace) -> Dict[str, Any]:
    """Config file values overridden by command-line flags"""
    settings: Dict[str, Any] = loadConfig(args.config) if args.config else {}
    if args.port is not None:
        settings['port'] = args.port
    if args.password is not None:
        settings['password'] = args.password
    if args.root is not None:
        settings['extensionRoot'] = args.root
    if args.log_level is not None:
        settings['logLevel'] = args.log_level
    return settings


class EchoHost:
    """Stand-in host application: logs webview traffic and echoes toolbar actions"""

    def __init__(self, server: BridgeServer):
        self.server = server
        self.log = getLogger()

    async def onWebviewMessage(self, payload: Any):
        msgType = payload.get('type') if isinstance(payload, dict) else None
        self.log.info(f"[Host] Webview message: {msgType or type(payload).__name__}")

    async def onToolbarAction(self, action: str):
        self.log.info(f"[Host] Toolbar action: {action}")
        await self.server.broadcastToClients({'type': 'action', 'action': action})


async def runBridge(server: BridgeServer):
    """Start, then serve until cancelled"""
    log = getLogger()
    try:
        await server.start()

        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        log.info("[Main] Shutdown requested")
    finally:
        await server.close()
        log.info("[Main] Bridge stopped")


def main(argv: Optional[List[str]] = None) -> int:
    args = parseArgs(argv)

    try:
        settings = buildSettings(args)
    except ConfigError as e:
        configureLogging()
        getLogger().error(f"[Main] {e}")
        return 1

    configureLogging(logDir=settings.get('logDir'), level=settings.get('logLevel', 'INFO'))
    log = getLogger()

    config = ServerConfig.fromDict(settings)
    validatePort(config.port)

    extensionRoot = Path(settings.get('extensionRoot', '.')).resolve()
    log.info(f"[Main] Extension root: {extensionRoot}")

    server = BridgeServer(extensionRoot, config=config)
    host = EchoHost(server)
    server.setMessageHandler(host.onWebviewMessage)
    server.setToolbarActionHandler(host.onToolbarAction)

    try:
        asyncio.run(runBridge(server))
    except KeyboardInterrupt:
        log.info("[Main] Shutdown signal received")
    except OSError as e:
        log.error(f"[Main] Could not start bridge: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
