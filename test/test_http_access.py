"""
HTTP surface tests: access guard, CORS, static assets, SPA fallback.

Runs a real server on a loopback port and talks to it with aiohttp's client.

Properties:
- Password set: requests without a matching Basic password get 401 + challenge
- Any username is accepted; only the password is compared
- OPTIONS preflight always gets 204, with or without credentials
- CORS headers are on every response, including 401 and 404
- Build paths fall back to the bootstrap page; /ext-assets and /audio 404

Run: python -m pytest test/test_http_access.py -v
"""

import shutil
import socket
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import aiohttp
import pytest

from bridge.core.config import ServerConfig
from bridge.server.server import BridgeServer


PASSWORD = 'hunter2'


def unusedPort() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def extensionRoot():
    """Extension root with build output, extension assets and audio"""
    rootDir = Path(tempfile.mkdtemp())
    buildDir = rootDir / 'webview-ui' / 'build'
    (buildDir / 'assets').mkdir(parents=True)
    (buildDir / 'assets' / 'index.js').write_text('console.log("ui")')
    (buildDir / 'assets' / 'index.css').write_text('body{}')
    (buildDir / 'favicon.ico').write_bytes(b'\x00\x00\x01\x00')

    (rootDir / 'assets' / 'images').mkdir(parents=True)
    (rootDir / 'assets' / 'images' / 'logo.svg').write_text('<svg/>')
    (rootDir / 'webview-ui' / 'audio').mkdir(parents=True)
    (rootDir / 'webview-ui' / 'audio' / 'ding.wav').write_bytes(b'RIFF')
    yield rootDir
    shutil.rmtree(rootDir, ignore_errors=True)


async def startServer(extensionRoot: Path, password: str) -> BridgeServer:
    server = BridgeServer(extensionRoot, config=ServerConfig(host='127.0.0.1'))
    server.configure(unusedPort(), password)
    await server.start()
    return server


@pytest.fixture
async def openServer(extensionRoot):
    server = await startServer(extensionRoot, "")
    yield server
    await server.stop()


@pytest.fixture
async def protectedServer(extensionRoot):
    server = await startServer(extensionRoot, PASSWORD)
    yield server
    await server.stop()


def baseUrl(server: BridgeServer) -> str:
    return f"http://127.0.0.1:{server.getPort()}"


class TestAccessGuard:
    """Basic auth over HTTP"""

    @pytest.mark.asyncio
    async def test_no_password_serves_without_credentials(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/assets/index.js") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'].startswith('application/javascript')

    @pytest.mark.asyncio
    async def test_missing_credentials_gets_challenge(self, protectedServer):
        """No Authorization header: 401 with WWW-Authenticate and no body leak"""
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(protectedServer)}/") as resp:
                assert resp.status == 401
                assert resp.headers['WWW-Authenticate'] == 'Basic realm="Roo Code"'
                assert await resp.text() == 'Unauthorized'

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, protectedServer):
        auth = aiohttp.BasicAuth('browser', 'wrong')
        async with aiohttp.ClientSession(auth=auth) as session:
            async with session.get(f"{baseUrl(protectedServer)}/") as resp:
                assert resp.status == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize('username', ['browser', 'admin', ''])
    async def test_any_username_with_right_password(self, protectedServer, username):
        """Username is ignored"""
        auth = aiohttp.BasicAuth(username, PASSWORD)
        async with aiohttp.ClientSession(auth=auth) as session:
            async with session.get(f"{baseUrl(protectedServer)}/assets/index.js") as resp:
                assert resp.status == 200

    @pytest.mark.asyncio
    async def test_non_basic_scheme_rejected(self, protectedServer):
        headers = {'Authorization': f'Bearer {PASSWORD}'}
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(protectedServer)}/", headers=headers) as resp:
                assert resp.status == 401

    @pytest.mark.asyncio
    async def test_preflight_needs_no_credentials(self, protectedServer):
        """OPTIONS short-circuits before the guard"""
        async with aiohttp.ClientSession() as session:
            async with session.options(f"{baseUrl(protectedServer)}/assets/index.js") as resp:
                assert resp.status == 204
                assert resp.headers['Access-Control-Allow-Origin'] == '*'
                assert 'OPTIONS' in resp.headers['Access-Control-Allow-Methods']

    @pytest.mark.asyncio
    async def test_websocket_upgrade_requires_password(self, protectedServer):
        """Upgrade requests pass through the same guard"""
        wsUrl = f"ws://127.0.0.1:{protectedServer.getPort()}/"
        async with aiohttp.ClientSession() as session:
            with pytest.raises(aiohttp.WSServerHandshakeError) as excInfo:
                await session.ws_connect(wsUrl)
            assert excInfo.value.status == 401

            ws = await session.ws_connect(wsUrl, headers={'Authorization': aiohttp.BasicAuth('x', PASSWORD).encode()})
            assert not ws.closed
            await ws.close()


class TestCorsHeaders:
    """CORS headers on every response"""

    @pytest.mark.asyncio
    async def test_cors_on_success(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/") as resp:
                assert resp.headers['Access-Control-Allow-Origin'] == '*'
                assert resp.headers['Access-Control-Allow-Headers'] == 'Content-Type'

    @pytest.mark.asyncio
    async def test_cors_on_unauthorized(self, protectedServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(protectedServer)}/") as resp:
                assert resp.status == 401
                assert resp.headers['Access-Control-Allow-Origin'] == '*'

    @pytest.mark.asyncio
    async def test_cors_on_not_found(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/ext-assets/missing.png") as resp:
                assert resp.status == 404
                assert resp.headers['Access-Control-Allow-Origin'] == '*'


class TestStaticRouting:
    """Request path -> file, bootstrap page or 404"""

    @pytest.mark.asyncio
    async def test_root_serves_bootstrap(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'].startswith('text/html')
                body = await resp.text()
                assert '<div id="root"></div>' in body
                assert 'src="/assets/index.js"' in body
                assert 'href="/assets/index.css"' in body

    @pytest.mark.asyncio
    @pytest.mark.parametrize('path', ['/settings', '/history/123', '/missing.js', '/nested/deep.css'])
    async def test_spa_fallback(self, openServer, path):
        """Extensionless routes and missing build files get the bootstrap page, never 404"""
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}{path}") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'].startswith('text/html')
                assert '<div id="root"></div>' in await resp.text()

    @pytest.mark.asyncio
    async def test_query_string_ignored(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/assets/index.js?v=123") as resp:
                assert resp.status == 200
                assert await resp.text() == 'console.log("ui")'

    @pytest.mark.asyncio
    async def test_build_file_bytes_and_type(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/favicon.ico") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'] == 'image/x-icon'
                assert await resp.read() == b'\x00\x00\x01\x00'

    @pytest.mark.asyncio
    async def test_ext_assets_served(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/ext-assets/images/logo.svg") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'] == 'image/svg+xml'

    @pytest.mark.asyncio
    async def test_ext_assets_missing_is_404(self, openServer):
        """Subtree paths never fall back to the bootstrap page"""
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/ext-assets/images/nope.png") as resp:
                assert resp.status == 404
                assert await resp.text() == 'Not Found'

    @pytest.mark.asyncio
    async def test_audio_served_and_missing(self, openServer):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/audio/ding.wav") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'] == 'audio/wav'
            async with session.get(f"{baseUrl(openServer)}/audio/nope.mp3") as resp:
                assert resp.status == 404

    @pytest.mark.asyncio
    async def test_bootstrap_without_bundle(self, extensionRoot):
        """No built bundle: page still served, without the bundle tags"""
        shutil.rmtree(extensionRoot / 'webview-ui' / 'build')
        server = await startServer(extensionRoot, "")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{baseUrl(server)}/") as resp:
                    assert resp.status == 200
                    body = await resp.text()
                    assert '<div id="root"></div>' in body
                    assert 'type="module"' not in body
                    assert 'rel="stylesheet" type="text/css"' not in body
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_large_audio_streamed_intact(self, openServer, extensionRoot):
        """A multi-chunk file arrives byte for byte with its length and type"""
        content = bytes(range(256)) * 4096 + b'tail'
        (extensionRoot / 'webview-ui' / 'audio' / 'long.mp3').write_bytes(content)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{baseUrl(openServer)}/audio/long.mp3") as resp:
                assert resp.status == 200
                assert resp.headers['Content-Type'] == 'audio/mpeg'
                assert int(resp.headers['Content-Length']) == len(content)
                assert resp.headers['Access-Control-Allow-Origin'] == '*'
                assert await resp.read() == content
