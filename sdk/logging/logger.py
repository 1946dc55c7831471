"""
Hierarchical bridge logger with automatic name detection.

Features:
- Auto-detects logger hierarchy from call stack (computed once, cached)
- Console output plus optional rotating log file
- Line sinks: forward every formatted record to a host callable
  (e.g. an editor output channel that only accepts text lines)
- Structured field logging
- Scopes: loggers created with a scope tag their records, so a sink can
  follow one owner (one server instance) and ignore the rest

Usage:
    from sdk.logging import getLogger, addLineSink

    class WebServer:
        def __init__(self):
            self.log = getLogger()  # Auto: 'bridge.server.server.BridgeServer'

        def start(self):
            self.log.info("[WebServer] Listening", port=self.port)

    addLineSink(outputChannel.appendLine)                  # everything
    addLineSink(outputChannel.appendLine, scope="server-1") # one owner only

Property of Uncompromising Sensors LLC.
"""

# Imports
import  inspect, logging, logging.handlers, socket
from pathlib import Path
from typing import Callable, List, Optional
from datetime import datetime, timezone as tz

from .context import ConnectionContextFilter


# Global state
_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}                  # Singleton cache: logPath -> handler
_sinkHandlers: List['LineSinkHandler'] = []
_managedLoggers: List[logging.Logger] = []
_config = {
    'logDir': None,                 # None = console and sinks only
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

LINE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(name)s - %(levelname)s - %(message)s'


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True,
                     level: str = 'INFO', utc: bool = False):
    """
    Configure global logging settings (call once at app startup).

    Loggers created before this call keep their handlers; call it before the
    first getLogger() to take full effect.

    Args:
        logDir: Directory for rotating log files (default: None, no file output)
        maxBytes: Maximum size per log file before rotation (default: 10MB)
        backupCount: Number of backup files to keep (default: 5)
        console: Also log to console (default: True)
        level: Minimum log level (default: 'INFO')
        utc: Use UTC timestamps (default: False, uses local time)
    """
    global _configured

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': getattr(logging, level.upper()), 'utc': utc})

    if logDir:
        Path(logDir).mkdir(parents=True, exist_ok=True)

    for logger in _managedLoggers:
        logger.setLevel(_config['level'])

    _configured = True


def _autoDetectName() -> str:
    """Auto-detect logger name from call stack. Returns hierarchy like: 'bridge.server.relay.MessageRelay'"""

    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__

            # Skip frames inside this package
            if moduleName.startswith('sdk.logging'):
                continue

            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')

            # 'sdk' is only a package wrapper
            if parts and parts[0] == 'sdk':
                parts = parts[1:]

            className = None
            if current.f_locals:
                if 'self' in current.f_locals:
                    className = current.f_locals['self'].__class__.__name__
                elif 'cls' in current.f_locals:
                    className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'unknown'
            if className:
                hierarchy = f"{hierarchy}.{className}"

            return hierarchy if hierarchy else 'unknown'

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Formatter that includes hostname and structured fields.
    Format: timestamp - logger.name - level - message [field1=value1, field2=value2]"""

    _excluded = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName',
        'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName', 'logScope'
    }

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        """Override to support UTC if configured."""
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            s = ct.strftime(datefmt)
        else:
            s = ct.strftime("%Y-%m-%d %H:%M:%S")
            s = f"{s},{int(record.msecs):03d}"
        return s

    def format(self, record):
        record.hostname = _hostname

        structuredFields = []
        for key, value in record.__dict__.items():
            if key not in self._excluded and not key.startswith('_'):
                structuredFields.append(f"{key}={value}")

        # Other handlers share the record, restore msg afterwards
        originalMsg = record.msg
        if structuredFields:
            record.msg = f"{originalMsg} [{', '.join(structuredFields)}]"

        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


class LineSinkHandler(logging.Handler):
    """
    Forwards each formatted record to a callable accepting one text line.

    Multi-line output (tracebacks) is split so the sink only ever sees
    single lines. A failing sink is reported through handleError and never
    breaks the caller.
    """

    def __init__(self, sink: Callable[[str], None], level=logging.NOTSET):
        super().__init__(level)
        self.sink = sink

    def emit(self, record):
        try:
            text = self.format(record)
            for line in text.splitlines():
                self.sink(line)
        except Exception:
            self.handleError(record)


class ScopeTagFilter(logging.Filter):
    """Logger-level filter stamping every record with the logger's scope"""

    def __init__(self, scope: str):
        super().__init__()
        self.scope = scope

    def filter(self, record):
        record.logScope = self.scope
        return True


class ScopeMatchFilter(logging.Filter):
    """Handler-level filter passing only records from one scope"""

    def __init__(self, scope: str):
        super().__init__()
        self.scope = scope

    def filter(self, record):
        return getattr(record, 'logScope', None) == self.scope


def _attachHandler(logger: logging.Logger, handler: logging.Handler):
    if handler not in logger.handlers:
        logger.addHandler(handler)


def addLineSink(sink: Callable[[str], None], level: str = 'INFO',
                scope: Optional[str] = None) -> LineSinkHandler:
    """
    Forward bridge log output to a line-oriented sink.

    Attaches to every logger created by getLogger(), including ones created
    later. With a scope, only records from loggers created with
    getLogger(scope=scope) reach the sink. Returns the handler so it can be
    removed with removeLineSink().
    """
    handler = LineSinkHandler(sink, getattr(logging, level.upper()))
    handler.setFormatter(StructuredFormatter(LINE_FORMAT, utc=_config['utc']))
    handler.addFilter(ConnectionContextFilter())
    if scope is not None:
        handler.addFilter(ScopeMatchFilter(scope))
    _sinkHandlers.append(handler)

    for logger in _managedLoggers:
        _attachHandler(logger, handler)

    return handler


def removeLineSink(handler: LineSinkHandler):
    """Detach a sink previously returned by addLineSink()"""
    if handler in _sinkHandlers:
        _sinkHandlers.remove(handler)
    for logger in _managedLoggers:
        logger.removeHandler(handler)


def getLogger(name: Optional[str] = None, scope: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with automatic hierarchy detection.

    Stack inspection happens once per getLogger() call; keep the returned
    logger on the instance or module.

    Args:
        name: Logger name (auto-detected from call stack if None)
        scope: Owner tag (e.g. one server instance). Scoped loggers are
            distinct per scope and only they reach sinks added with that scope.

    Returns:
        logging.Logger whose level methods accept structured fields as kwargs
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    if scope is not None:
        name = f"{name}@{scope}"

    logger = logging.getLogger(name)

    if scope is not None and not any(isinstance(f, ScopeTagFilter) for f in logger.filters):
        logger.addFilter(ScopeTagFilter(scope))

    # Handlers are attached here, avoid duplicates via the root logger
    logger.propagate = False

    if not hasattr(logger, '_configured_by_sdk'):
        logger.setLevel(_config['level'])
        contextFilter = ConnectionContextFilter()

        if _config['logDir']:
            appName = name.split('.')[0]
            logPath = str(Path(_config['logDir']) / f"{appName}.log")

            if logPath not in _fileHandlers:
                fileHandler = logging.handlers.RotatingFileHandler(
                    logPath,
                    maxBytes=_config['maxBytes'],
                    backupCount=_config['backupCount'],
                    encoding='utf-8'
                )
                fileHandler.setFormatter(StructuredFormatter(FILE_FORMAT, utc=_config['utc']))
                fileHandler.addFilter(contextFilter)
                _fileHandlers[logPath] = fileHandler

            _attachHandler(logger, _fileHandlers[logPath])

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setFormatter(StructuredFormatter(CONSOLE_FORMAT, utc=_config['utc']))
            consoleHandler.addFilter(contextFilter)
            logger.addHandler(consoleHandler)

        for sinkHandler in _sinkHandlers:
            _attachHandler(logger, sinkHandler)

        logger._configured_by_sdk = True
        _managedLoggers.append(logger)

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Add level methods that accept structured fields as **kwargs.

    This allows: log.info("Message", field1=value1)
    Instead of: log.info("Message", extra={'field1': value1})
    """
    if hasattr(logger, '_is_wrapped'):
        return logger

    def _wrap(original):
        def method(msg, *args, **kwargs):
            # exc_info and stack_info are reserved logging params
            exc_info = kwargs.pop('exc_info', False)
            if kwargs:
                original(msg, *args, extra=kwargs, exc_info=exc_info)
            else:
                original(msg, *args, exc_info=exc_info)
        return method

    logger.debug = _wrap(logger.debug)
    logger.info = _wrap(logger.info)
    logger.warning = _wrap(logger.warning)
    logger.error = _wrap(logger.error)
    logger.critical = _wrap(logger.critical)
    logger._is_wrapped = True

    return logger
