"""
Package init for bridge.server
"""

from bridge.server.server import BridgeServer
from bridge.server.auth import BasicAuthGuard
from bridge.server.relay import MessageRelay
from bridge.server.connections import ClientConnection, ConnectionRegistry
from bridge.server.assets import StaticAssetResolver

__all__ = ['BridgeServer', 'BasicAuthGuard', 'MessageRelay', 'ClientConnection', 'ConnectionRegistry',
           'StaticAssetResolver']
