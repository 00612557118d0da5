import json
import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone
from typing import Dict, Any, TYPE_CHECKING
from pathlib import Path

if TYPE_CHECKING:
    from ..infrastructure.config.settings import LoggingSettings

# Cache of StructuredLogger instances keyed by name; one set of handlers per logger
_logger_cache: Dict[str, 'StructuredLogger'] = {}
_cache_lock = threading.RLock()
# LoggingSettings installed by configure_logging; None until the composition root runs
_default_config_holder: Dict[str, Any] = {"config": None}


# --- Custom JSON Formatter ---

class CustomJsonEncoder(json.JSONEncoder):
    """JSON encoder for datetime, Enum and class objects found in log payloads."""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, 'name') and hasattr(obj, 'value'):  # Enum-like objects
            return obj.name
        if isinstance(obj, type):
            return obj.__name__
        if isinstance(obj, BaseException):
            return f"{type(obj).__name__}: {obj}"
        return super().default(obj)


class JsonFormatter(logging.Formatter):
    """Formats log records into a JSON string."""

    def _sanitize_dict(self, d: dict) -> dict:
        """Recursively coerce dictionary keys to strings."""
        sanitized = {}
        for k, v in d.items():
            str_key = str(k)
            if isinstance(v, dict):
                sanitized[str_key] = self._sanitize_dict(v)
            elif isinstance(v, (list, tuple)):
                sanitized[str_key] = [self._sanitize_dict(item) if isinstance(item, dict) else item for item in v]
            else:
                sanitized[str_key] = v
        return sanitized

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            message_dict = self._sanitize_dict(record.msg)
        else:
            message_dict = {"message": record.getMessage()}

        log_object = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            **message_dict,
        }
        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, cls=CustomJsonEncoder)


class StructuredLogger:
    """
    Thin wrapper over logging.Logger that emits {event_type, data} payloads.

    Event types are dotted names owned by the emitting component, e.g.
    ``realtime_channel.connected`` or ``orchestrator.session_adopted``.
    """

    def __init__(self, name: str, config: Any, filename: str = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, str(getattr(config.level, 'value', config.level)).upper(), logging.INFO))
        self.logger.propagate = False

        console_enabled = getattr(config, 'console_enabled', True)
        file_enabled = getattr(config, 'file_enabled', False)
        structured_logging = getattr(config, 'structured_logging', True)
        max_file_size_mb = getattr(config, 'max_file_size_mb', 10)
        backup_count = getattr(config, 'backup_count', 3)

        if filename:
            log_dir = getattr(config, 'log_dir', 'logs')
            log_file = str(Path(log_dir) / filename)
        elif file_enabled:
            log_dir = getattr(config, 'log_dir', 'logs')
            log_file = str(Path(log_dir) / f"{name}.jsonl")
        else:
            log_file = None

        self._setup_console_handler(console_enabled, structured_logging)
        self._setup_file_handler(file_enabled or bool(filename), log_file, max_file_size_mb, backup_count, structured_logging)

    def _setup_console_handler(self, enabled: bool, structured: bool):
        """
        Attach a stderr handler unless one is already present.

        The terminal client uses stdout for the conversation itself, so
        log output goes to stderr.
        """
        if not enabled:
            return

        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, logging.StreamHandler) and not isinstance(existing_handler, RotatingFileHandler):
                if getattr(existing_handler, 'stream', None) is sys.stderr:
                    return

        handler = logging.StreamHandler(sys.stderr)
        formatter = JsonFormatter() if structured else logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)

    def _setup_file_handler(self, enabled: bool, log_file: str, max_size_mb: int, backup_count: int, structured: bool):
        """
        Attach a rotating file handler unless one for the same file exists.
        """
        if not enabled or not log_file:
            return

        log_file_normalized = os.path.abspath(log_file)
        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, RotatingFileHandler):
                if os.path.abspath(existing_handler.baseFilename) == log_file_normalized:
                    return

        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        try:
            handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding='utf-8'
            )
        except OSError as e:
            # Logging must not take the widget down; report on stderr and continue
            print(f"ERROR: Failed to create file handler for {log_file}: {e}", file=sys.stderr)
            return

        formatter = JsonFormatter() if structured else logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)

    def _log(self, level: int, event_type: str, data: Dict[str, Any]):
        payload = {"event_type": event_type, "data": data}
        self.logger.log(level, payload)

    def info(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.INFO, event_type, data or {})

    def warning(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.WARNING, event_type, data or {})

    def error(self, event_type: str, data: Dict[str, Any] = None, exc_info=False):
        """
        Log an error event.

        Args:
            event_type: Type of error event
            data: Optional error context data
            exc_info: Include exception info (default: False)
        """
        payload = {"event_type": event_type, "data": data or {}}
        self.logger.error(payload, exc_info=exc_info)

    def debug(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.DEBUG, event_type, data or {})


def configure_logging(config: 'LoggingSettings') -> None:
    """
    Reconfigure every cached logger from explicit settings.

    Called once by the composition root after settings are loaded, so loggers
    created at import time pick up the configured level and handlers.
    """
    with _cache_lock:
        names = list(_logger_cache.keys())
        for name in names:
            logging.getLogger(name).handlers.clear()
            _logger_cache[name] = StructuredLogger(name, config)
        _default_config_holder["config"] = config


def get_logger(name: str) -> StructuredLogger:
    """
    Get a cached structured logger instance for the given name.

    The first call for a name creates the logger from the configured
    LoggingSettings (or settings read from the environment when
    configure_logging has not run yet); later calls return the same
    instance so handlers never accumulate.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Cached StructuredLogger instance (singleton per name)
    """
    if name in _logger_cache:
        return _logger_cache[name]

    with _cache_lock:
        if name in _logger_cache:
            return _logger_cache[name]

        config = _default_config_holder["config"]
        if config is None:
            from ..infrastructure.config.settings import LoggingSettings
            config = LoggingSettings()

        logger = StructuredLogger(name, config)
        _logger_cache[name] = logger
        return logger
