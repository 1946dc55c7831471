"""
Access guard for the bridge.

Optional shared-secret HTTP Basic authentication:
- No password configured: every request passes
- Password configured: any username, password must match exactly
- Failure: 401 with a Basic challenge so the browser shows its login dialog

Single factor, no expiry, no rate limiting. Meant for a convenience server on
a trusted local network, not as a boundary against hostile clients.

Property of Uncompromising Sensors LLC.
"""

import base64
import binascii
import hmac
from typing import Optional
from aiohttp import web

from bridge.core.config import DEFAULT_REALM
from sdk.logging import getLogger

BASIC_PREFIX = 'Basic '


def extractBasicPassword(authHeader: Optional[str]) -> Optional[str]:
    """
    Password part of a Basic Authorization header.

    Text after the first colon of the decoded credentials, or the whole
    decoded string when there is no colon. None if the header is absent,
    not Basic, or not decodable.
    """
    if not authHeader or not authHeader.startswith(BASIC_PREFIX):
        return None

    encoded = authHeader[len(BASIC_PREFIX):].strip()
    try:
        decoded = base64.b64decode(encoded, validate=False).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return None

    _, sep, password = decoded.partition(':')
    return password if sep else decoded


class BasicAuthGuard:
    """
    Shared-secret Basic auth check, applied to every request before routing.
    """

    def __init__(self, password: str = "", realm: str = DEFAULT_REALM, logScope: Optional[str] = None):
        self.log = getLogger(scope=logScope)
        self.password = password or ""
        self.realm = realm

    @property
    def enabled(self) -> bool:
        return bool(self.password)

    def isAuthorized(self, authHeader: Optional[str]) -> bool:
        """True if the request may proceed"""
        if not self.enabled:
            return True

        provided = extractBasicPassword(authHeader)
        if provided is None:
            return False
        return hmac.compare_digest(provided.encode('utf-8'), self.password.encode('utf-8'))

    def check(self, request: web.Request) -> Optional[web.Response]:
        """None if authorized, else the 401 response to send"""
        if self.isAuthorized(request.headers.get('Authorization')):
            return None

        # Expected traffic: the browser's first request never has credentials
        self.log.debug(f"[WebServer] Unauthorized request: {request.method} {request.path}")
        return self.unauthorizedResponse()

    def unauthorizedResponse(self) -> web.Response:
        return web.Response(
            status=401,
            text='Unauthorized',
            content_type='text/plain',
            headers={'WWW-Authenticate': f'Basic realm="{self.realm}"'}
        )
