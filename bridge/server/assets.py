"""
Static asset resolution for the bridge.

Maps a request path onto one of three roots:
- /ext-assets/<rest>  -> extension assets (404 when missing)
- /audio/<rest>       -> webview audio (404 when missing)
- / or no extension   -> bootstrap page (SPA route, never 404)
- anything else       -> build output, bootstrap page when missing

File reads run in a worker thread so a slow disk never stalls the loop.

Property of Uncompromising Sensors LLC.
"""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional
from aiohttp import web

from bridge.core.config import AssetRoots
from bridge.server.bootstrapPage import bundleFilesFor, renderBootstrapPage
from sdk.logging import getLogger

EXT_ASSETS_PREFIX = '/ext-assets/'
AUDIO_PREFIX = '/audio/'
DEFAULT_CONTENT_TYPE = 'application/octet-stream'
STREAM_CHUNK_SIZE = 256 * 1024

MIME_TYPES = {
    '.html': 'text/html',
    '.js': 'application/javascript',
    '.mjs': 'application/javascript',
    '.css': 'text/css',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.ttf': 'font/ttf',
    '.eot': 'application/vnd.ms-fontobject',
    '.otf': 'font/otf',
    '.wasm': 'application/wasm',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.ogg': 'audio/ogg',
}


class RouteKind(str, Enum):
    """How a request path is answered"""
    BOOTSTRAP = "bootstrap"   # synthesized index page
    FILE = "file"             # file under a root, 404 if it vanished
    NOT_FOUND = "notFound"    # subtree path with nothing behind it


@dataclass
class AssetRoute:
    kind: RouteKind
    path: Optional[Path] = None


def contentTypeFor(path: Path) -> str:
    """Content-Type from the fixed extension table"""
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def joinUnderRoot(root: Path, relPath: str) -> Optional[Path]:
    """Join relPath under root; None if the result escapes root"""
    rootPath = os.path.normpath(os.path.abspath(root))
    candidate = os.path.normpath(os.path.join(rootPath, relPath.lstrip('/')))
    if candidate != rootPath and not candidate.startswith(rootPath + os.sep):
        return None
    return Path(candidate)


class StaticAssetResolver:
    """
    Decides what a GET path serves and produces the response.

    resolve() only inspects the filesystem for existence; reading happens in
    serveFile() / serveBootstrap().
    """

    def __init__(self, roots: AssetRoots, logScope: Optional[str] = None):
        self.roots = roots
        self.log = getLogger(scope=logScope)

    def resolve(self, urlPath: str) -> AssetRoute:
        urlPath = urlPath.split('?', 1)[0] or '/'

        if urlPath.startswith(EXT_ASSETS_PREFIX):
            return self._resolveSubtree(self.roots.assetsDir, urlPath[len(EXT_ASSETS_PREFIX):])

        if urlPath.startswith(AUDIO_PREFIX):
            return self._resolveSubtree(self.roots.audioDir, urlPath[len(AUDIO_PREFIX):])

        if urlPath == '/' or not PurePosixPath(urlPath).suffix:
            return AssetRoute(RouteKind.BOOTSTRAP)

        filePath = joinUnderRoot(self.roots.buildDir, urlPath)
        if filePath is None or not filePath.is_file():
            return AssetRoute(RouteKind.BOOTSTRAP)
        return AssetRoute(RouteKind.FILE, filePath)

    def _resolveSubtree(self, root: Path, relPath: str) -> AssetRoute:
        filePath = joinUnderRoot(root, relPath)
        if filePath is None or not filePath.is_file():
            return AssetRoute(RouteKind.NOT_FOUND, filePath)
        return AssetRoute(RouteKind.FILE, filePath)

    async def serve(self, request: web.Request) -> web.StreamResponse:
        """Resolve and answer a GET for the request path"""
        route = await asyncio.to_thread(self.resolve, request.path)
        if route.kind == RouteKind.BOOTSTRAP:
            return await self.serveBootstrap()
        if route.kind == RouteKind.NOT_FOUND:
            return notFoundResponse()
        return await self.serveFile(request, route.path)

    async def serveFile(self, request: web.Request, filePath: Path) -> web.StreamResponse:
        """
        Answer with a file: 404 if it disappeared, 500 on any other I/O error.

        Files up to STREAM_CHUNK_SIZE go out in one response; larger ones are
        streamed chunk by chunk.
        """
        try:
            f = await asyncio.to_thread(filePath.open, 'rb')
        except FileNotFoundError:
            return notFoundResponse()
        except OSError as e:
            self.log.error(f"[WebServer] Error serving file {filePath}: {e}")
            return serverErrorResponse()

        try:
            size = os.fstat(f.fileno()).st_size
            if size > STREAM_CHUNK_SIZE:
                return await self._streamFile(request, f, size, filePath)

            try:
                content = await asyncio.to_thread(f.read)
            except OSError as e:
                self.log.error(f"[WebServer] Error serving file {filePath}: {e}")
                return serverErrorResponse()
            return web.Response(body=content, content_type=contentTypeFor(filePath))
        finally:
            f.close()

    async def _streamFile(self, request: web.Request, f: BinaryIO, size: int,
                          filePath: Path) -> web.StreamResponse:
        response = web.StreamResponse()
        response.content_type = contentTypeFor(filePath)
        response.content_length = size
        await response.prepare(request)

        # Headers are sent; a read error can only cut the body short
        try:
            while True:
                chunk = await asyncio.to_thread(f.read, STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                await response.write(chunk)
        except OSError as e:
            self.log.error(f"[WebServer] Error streaming file {filePath}: {e}")
            raise

        await response.write_eof()
        return response

    async def serveBootstrap(self) -> web.Response:
        """Synthesized index page referencing whichever bundle files exist"""
        try:
            jsFile, cssFile = await asyncio.to_thread(bundleFilesFor, self.roots.buildDir)
            html = renderBootstrapPage(jsFile, cssFile)
        except OSError as e:
            self.log.error(f"[WebServer] Error serving index.html: {e}")
            return serverErrorResponse()

        return web.Response(text=html, content_type='text/html')


def notFoundResponse() -> web.Response:
    return web.Response(status=404, text='Not Found', content_type='text/plain')


def serverErrorResponse() -> web.Response:
    return web.Response(status=500, text='Internal Server Error', content_type='text/plain')
