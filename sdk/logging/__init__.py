"""
SDK Logging - Hierarchical logger with automatic name detection.

API:
    from sdk.logging import getLogger

    class MessageRelay:
        def __init__(self):
            self.log = getLogger()  # Auto: 'bridge.server.relay.MessageRelay'

        def dispatch(self):
            self.log.info("Dispatching", kind=kind)

    # Global configuration (optional, once at app startup)
    from sdk.logging import configureLogging, addLineSink
    configureLogging(logDir='./logs', level='DEBUG')
    addLineSink(print)
"""

from .logger import getLogger, configureLogging, addLineSink, removeLineSink, LineSinkHandler
from .context import (
    setConnectionContext,
    getConnectionContext,
    clearConnectionContext,
    ConnectionContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'addLineSink',
    'removeLineSink',
    'LineSinkHandler',
    'setConnectionContext',
    'getConnectionContext',
    'clearConnectionContext',
    'ConnectionContextFilter'
]
