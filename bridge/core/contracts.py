"""
WebSocket envelope contracts for Browser <-> Bridge communication.

Every frame on the socket is a JSON object tagged by 'type':
- Browser -> Bridge: {"type": "webview-message", "payload": <opaque>}
                     {"type": "toolbar-action", "action": "<name>"}
- Bridge -> Browser: {"type": "extension-message", "payload": <opaque>}

Payloads are opaque: the bridge never inspects them.
All frames are (de)serialized via orjson.

Property of Uncompromising Sensors LLC.
"""

import orjson
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class EnvelopeType(str, Enum):
    """Envelope tags on the bridge socket"""
    WEBVIEW_MESSAGE = "webview-message"
    TOOLBAR_ACTION = "toolbar-action"
    EXTENSION_MESSAGE = "extension-message"


class EnvelopeError(ValueError):
    """Frame is not valid JSON"""


@dataclass
class InboundEnvelope:
    """
    Decoded browser frame.

    Both accessors are evaluated independently; a frame the protocol does not
    know yields None from both and is ignored by the relay.
    """
    type: Optional[str] = None
    payload: Any = None
    action: Any = None
    hasPayload: bool = False

    @property
    def webviewPayload(self) -> Optional[Any]:
        """Payload of a webview-message frame, None if not one"""
        if self.type == EnvelopeType.WEBVIEW_MESSAGE.value and self.hasPayload and self.payload is not None:
            return self.payload
        return None

    @property
    def toolbarAction(self) -> Optional[str]:
        """Action name of a toolbar-action frame, None if not one"""
        if self.type == EnvelopeType.TOOLBAR_ACTION.value and isinstance(self.action, str) and self.action:
            return self.action
        return None

    @staticmethod
    def fromDict(data: Any) -> 'InboundEnvelope':
        """Create from parsed JSON; non-objects become an untagged envelope"""
        if not isinstance(data, dict):
            return InboundEnvelope()
        msgType = data.get('type')
        return InboundEnvelope(
            type=msgType if isinstance(msgType, str) else None,
            payload=data.get('payload'),
            action=data.get('action'),
            hasPayload='payload' in data
        )

    @staticmethod
    def fromJson(data: Union[str, bytes]) -> 'InboundEnvelope':
        """Create from a raw frame. Raises EnvelopeError on malformed JSON."""
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise EnvelopeError(str(e)) from e
        return InboundEnvelope.fromDict(parsed)


@dataclass
class ExtensionMessage:
    """Outbound envelope wrapping one host message"""
    payload: Any

    def toDict(self) -> Dict[str, Any]:
        return {'type': EnvelopeType.EXTENSION_MESSAGE.value, 'payload': self.payload}

    def toBytes(self) -> bytes:
        """Serialize for transport"""
        return orjson.dumps(self.toDict())

    def toText(self) -> str:
        """Serialize as a WebSocket text frame"""
        return self.toBytes().decode('utf-8')

    @staticmethod
    def fromJson(data: Union[str, bytes]) -> Optional['ExtensionMessage']:
        """Decode a bridge frame on the client side, None if not an extension-message"""
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError:
            return None
        if not isinstance(parsed, dict) or parsed.get('type') != EnvelopeType.EXTENSION_MESSAGE.value:
            return None
        return ExtensionMessage(payload=parsed.get('payload'))


def webviewMessage(payload: Any) -> Dict[str, Any]:
    """Browser -> Bridge webview-message frame"""
    return {'type': EnvelopeType.WEBVIEW_MESSAGE.value, 'payload': payload}


def toolbarAction(action: str) -> Dict[str, Any]:
    """Browser -> Bridge toolbar-action frame"""
    return {'type': EnvelopeType.TOOLBAR_ACTION.value, 'action': action}
