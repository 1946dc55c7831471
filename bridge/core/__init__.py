"""
Package init for bridge.core
"""

from bridge.core.config import ServerConfig, AssetRoots, ConfigError, loadConfig, DEFAULT_WEB_SERVER_PORT
from bridge.core.contracts import EnvelopeType, EnvelopeError, InboundEnvelope, ExtensionMessage

__all__ = [
    'ServerConfig',
    'AssetRoots',
    'ConfigError',
    'loadConfig',
    'DEFAULT_WEB_SERVER_PORT',
    'EnvelopeType',
    'EnvelopeError',
    'InboundEnvelope',
    'ExtensionMessage'
]
