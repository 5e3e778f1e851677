"""Logging setup for the validation core.

Every vision frame is evaluated under its own correlation ID (``frame-<n>``),
so the lines the mapper, comparator and feedback generator emit for one frame
can be grouped afterwards. Handlers are attached to the ``tangram_cv``
package logger only; the host application's root logger is left alone.
"""
import logging
import logging.handlers
import sys
import json
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .constants import APP_NAME

PACKAGE_LOGGER = 'tangram_cv'
NO_CORRELATION_ID = 'no-correlation-id'

correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {
    'message', 'asctime', 'correlation_id', 'taskName',
}


class CorrelationIDFilter(logging.Filter):
    """Stamps each record with the active correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', NO_CORRELATION_ID),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }
        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}
        if extra:
            entry['extra'] = extra
        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """``time - logger - LEVEL - [correlation id -] message``."""

    def __init__(self, include_correlation_id: bool = True):
        self.include_correlation_id = include_correlation_id
        parts = ['%(asctime)s', '%(name)s', '%(levelname)s']
        if include_correlation_id:
            parts.append('%(correlation_id)s')
        parts.append('%(message)s')
        super().__init__(' - '.join(parts))


class LoggingManager:
    """Installs and removes the package's log handlers."""

    def __init__(self):
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}
        self.log_file: Optional[Path] = None

    @property
    def is_configured(self) -> bool:
        return self._configured

    def configure(
        self,
        log_level: str = 'INFO',
        log_dir: Optional[Union[str, Path]] = None,
        enable_file_logging: bool = False,
        enable_console_logging: bool = True,
        structured_logging: bool = False,
        max_file_size: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        application_name: str = APP_NAME,
    ) -> None:
        """Attach console and/or rotating file handlers to the package logger.

        Calling it again before ``shutdown()`` does nothing.

        Args:
            log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for the log file (``logs`` when omitted)
            enable_file_logging: Write to ``<log_dir>/<application_name>.log``
            enable_console_logging: Write to stdout
            structured_logging: JSON lines instead of plain text
            max_file_size: Bytes before the log file rotates
            backup_count: Rotated files kept
            application_name: Base name of the log file
        """
        if self._configured:
            return

        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        formatter = StructuredFormatter() if structured_logging else HumanReadableFormatter()

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(level)

        if enable_console_logging:
            self._install('console', logging.StreamHandler(sys.stdout), level, formatter)

        if enable_file_logging:
            directory = Path(log_dir) if log_dir else Path('logs')
            directory.mkdir(parents=True, exist_ok=True)
            self.log_file = directory / f'{application_name}.log'
            handler = logging.handlers.RotatingFileHandler(
                self.log_file, maxBytes=max_file_size, backupCount=backup_count, encoding='utf-8'
            )
            self._install('file', handler, level, formatter)

        self._configured = True
        package_logger.info(
            "Logging configured - level=%s file=%s console=%s structured=%s",
            logging.getLevelName(level), self.log_file, enable_console_logging, structured_logging,
        )

    def _install(self, key: str, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationIDFilter())
        logging.getLogger(PACKAGE_LOGGER).addHandler(handler)
        self._handlers[key] = handler

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def set_correlation_id(self, corr_id: Optional[str] = None) -> str:
        """Set the correlation ID for the current context, generating one if needed."""
        corr_id = corr_id or uuid.uuid4().hex[:12]
        correlation_id.set(corr_id)
        return corr_id

    def get_correlation_id(self) -> Optional[str]:
        return correlation_id.get()

    def clear_correlation_id(self) -> None:
        correlation_id.set(None)

    def shutdown(self) -> None:
        """Detach and close every handler installed by ``configure``."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self._handlers.values():
            package_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
        self.log_file = None
        self._configured = False


logging_manager = LoggingManager()


def configure_logging(**kwargs) -> None:
    logging_manager.configure(**kwargs)


def get_logger(name: str) -> logging.Logger:
    return logging_manager.get_logger(name)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    return logging_manager.set_correlation_id(corr_id)


def get_correlation_id() -> Optional[str]:
    return logging_manager.get_correlation_id()


class CorrelationContext:
    """Runs a block under a correlation ID and restores the previous one on exit."""

    def __init__(self, corr_id: Optional[str] = None):
        self.corr_id = corr_id
        self._token = None

    def __enter__(self) -> str:
        corr_id = self.corr_id or uuid.uuid4().hex[:12]
        self._token = correlation_id.set(corr_id)
        return corr_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        correlation_id.reset(self._token)
