"""
Bridge configuration.

ServerConfig is the only mutable server state besides the connection
registry. It changes through BridgeServer.configure() and takes effect on the
next start(); a running listener is never rebound.

Config file (JSON, all keys optional):
    {
        "port": 30000,
        "password": "",
        "host": "0.0.0.0",
        "extensionRoot": ".",
        "heartbeatSeconds": null,
        "shutdownTimeout": 5.0,
        "logDir": null,
        "logLevel": "INFO"
    }

Property of Uncompromising Sensors LLC.
"""

import orjson
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sdk.logging import getLogger

DEFAULT_WEB_SERVER_PORT = 30000
DEFAULT_HOST = '0.0.0.0'
DEFAULT_REALM = 'Roo Code'
DEFAULT_SHUTDOWN_TIMEOUT = 5.0

# Range the settings UI accepts; lower ports still work with enough privilege
MIN_UNPRIVILEGED_PORT = 1024
MAX_PORT = 65535

log = getLogger()


class ConfigError(ValueError):
    """Config file could not be read or parsed"""


def normalizePort(port: Any) -> int:
    """Return port if it is a positive integer in range, else the default port"""
    if isinstance(port, bool) or not isinstance(port, int):
        return DEFAULT_WEB_SERVER_PORT
    if port <= 0 or port > MAX_PORT:
        return DEFAULT_WEB_SERVER_PORT
    return port


def validatePort(port: int) -> bool:
    """True if port is in the unprivileged range; logs a warning otherwise."""
    if MIN_UNPRIVILEGED_PORT <= port <= MAX_PORT:
        return True
    log.warning(f"[Config] Port {port} is outside {MIN_UNPRIVILEGED_PORT}-{MAX_PORT}, binding may need privileges")
    return False


@dataclass
class ServerConfig:
    """Listener and auth settings, applied at start()"""
    port: int = DEFAULT_WEB_SERVER_PORT
    password: str = ""
    host: str = DEFAULT_HOST
    realm: str = DEFAULT_REALM
    heartbeatSeconds: Optional[float] = None  # None = no WebSocket ping/pong
    shutdownTimeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @property
    def authEnabled(self) -> bool:
        return bool(self.password)

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'ServerConfig':
        """Build from a config-file dict, unknown keys ignored"""
        heartbeat = data.get('heartbeatSeconds')
        return ServerConfig(
            port=normalizePort(data.get('port', DEFAULT_WEB_SERVER_PORT)),
            password=data.get('password') or "",
            host=data.get('host') or DEFAULT_HOST,
            realm=data.get('realm') or DEFAULT_REALM,
            heartbeatSeconds=float(heartbeat) if heartbeat else None,
            shutdownTimeout=float(data.get('shutdownTimeout', DEFAULT_SHUTDOWN_TIMEOUT))
        )


@dataclass(frozen=True)
class AssetRoots:
    """The three filesystem roots the bridge serves from"""
    buildDir: Path
    assetsDir: Path
    audioDir: Path

    @staticmethod
    def fromExtensionRoot(root: Union[str, Path]) -> 'AssetRoots':
        """Standard extension layout: webview-ui/build, assets, webview-ui/audio"""
        root = Path(root)
        return AssetRoots(
            buildDir=root / 'webview-ui' / 'build',
            assetsDir=root / 'assets',
            audioDir=root / 'webview-ui' / 'audio'
        )


def loadConfig(configPath: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration dict from a JSON file"""
    path = Path(configPath)
    try:
        config = orjson.loads(path.read_bytes())
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {path} is not a JSON object")

    log.info(f"[Config] Loaded {path}")
    return config
