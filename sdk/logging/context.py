"""
Logging Context

Carries per-connection identity (connId, peer) into every log record
emitted while a WebSocket connection's handler is running. Each aiohttp
handler runs in its own task, so the ContextVar is scoped to that
connection automatically.

Property of Uncompromising Sensors LLC.
"""

import logging
from typing import Optional
from contextvars import ContextVar

_conn_id: ContextVar[Optional[str]] = ContextVar('conn_id', default=None)
_peer: ContextVar[Optional[str]] = ContextVar('peer', default=None)


class ConnectionContextFilter(logging.Filter):
    """
    Logging filter that adds connection context to log records
    """

    def filter(self, record):
        connId = _conn_id.get()
        peer = _peer.get()

        if connId and not hasattr(record, 'connId'):
            record.connId = connId
        if peer and not hasattr(record, 'peer'):
            record.peer = peer

        return True


def setConnectionContext(connId: str, peer: Optional[str] = None):
    """
    Bind connection identity for log records in the current task

    Args:
        connId: Connection identifier
        peer: Remote address (optional)
    """
    _conn_id.set(connId)
    if peer:
        _peer.set(peer)


def getConnectionContext() -> dict:
    """Get current connection context"""
    return {
        'connId': _conn_id.get(),
        'peer': _peer.get()
    }


def clearConnectionContext():
    """Clear connection context"""
    _conn_id.set(None)
    _peer.set(None)
