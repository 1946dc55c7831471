"""sdk.transport - Client transports for the bridge.

Public API:
    - BridgeClient: one shared WebSocket to a bridge server

Usage:
    from sdk.transport import BridgeClient

    async with BridgeClient('ws://localhost:30000') as client:
        await client.postMessage({'type': 'newTask', 'text': 'hello'})
        payload = await client.receive(timeout=5.0)

Property of Uncompromising Sensors LLC.
"""

from .bridgeClient import BridgeClient, DEFAULT_RECONNECT_DELAY

__all__ = [
    'BridgeClient',
    'DEFAULT_RECONNECT_DELAY'
]
