# netaudit/utils/logging_utils.py
"""
Logging configuration module.
Routes component messages to per-path sinks with JSON output, and classifies
runtime warnings as internal (raised inside netaudit) or external (raised by
third-party code) so that external noise lands in its own sink.
"""

import logging
import json
import sys
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

ORIGIN_INTERNAL = 'internal'
ORIGIN_EXTERNAL = 'external'

EXTERNAL_SUFFIX = '.external'
EXTERNAL_TAG = 'External Warning'

# Installed location of the package's own code
PACKAGE_DIR = Path(__file__).resolve().parent.parent

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def is_internal_source(source: str) -> bool:
    """
    Decide whether a warning originated inside the netaudit package.

    Args:
        source: File the warning was raised from

    Returns:
        True if the file lies under the installed package directory
    """
    if not source:
        return False
    try:
        path = Path(str(source)).resolve()
    except (OSError, RuntimeError, ValueError):
        return False
    return path == PACKAGE_DIR or PACKAGE_DIR in path.parents


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    Converts log records to JSON format for easy parsing and analysis.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted log message
        """
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'component': record.name,
            'origin': getattr(record, 'origin', ORIGIN_INTERNAL),
            'message': record.getMessage(),
        }

        # Add exception information if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Add custom fields if present
        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class _PackageBridgeHandler(logging.Handler):
    """Forwards records of the package's module loggers into an AuditLogger."""

    def __init__(self, audit_logger: 'AuditLogger'):
        super().__init__(logging.DEBUG)
        self.audit_logger = audit_logger

    def emit(self, record: logging.LogRecord) -> None:
        self.audit_logger.log(
            record.name,
            record.getMessage(),
            record.levelno,
            extra_fields=getattr(record, 'extra_fields', None),
        )


class AuditLogger:
    """
    Severity- and destination-aware logger for an audit run.

    Every message names the component it comes from and the sink (log file
    path) it is written to. Messages below the configured threshold are
    dropped, except external warnings which are always recorded in the
    external sink. Module loggers under the ``netaudit`` namespace are
    bridged into the primary sink.

    Logging never raises: a sink that cannot be opened degrades to stderr.
    """

    def __init__(
        self,
        name: str = 'netaudit',
        log_file: Optional[Path] = None,
        log_level: Union[int, str] = "INFO",
        console_output: bool = True
    ):
        """
        Initialize audit logger.

        Args:
            name: Package logger name whose module loggers are bridged
            log_file: Primary sink path (if None, only console output)
            log_level: Verbosity threshold (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console_output: Whether primary-sink messages are echoed to stderr
        """
        self.name = name
        self.level = _coerce_level(log_level)
        self.log_file = Path(log_file) if log_file else None
        self._sinks: Dict[str, logging.Handler] = {}
        self._fallback: Optional[logging.Handler] = None

        self.console_handler: Optional[logging.Handler] = None
        if console_output:
            self.console_handler = logging.StreamHandler(sys.stderr)
            self.console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

        # Bridge module loggers (netaudit.core.*, netaudit.utils.*)
        self.logger = logging.getLogger(name)
        self._saved_state = (self.logger.level, self.logger.propagate)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.logger.handlers = []
        self._bridge = _PackageBridgeHandler(self)
        self.logger.addHandler(self._bridge)

    @property
    def external_log_file(self) -> Optional[Path]:
        """Sink for external warnings: the primary path plus EXTERNAL_SUFFIX."""
        if self.log_file is None:
            return None
        return self.log_file.with_name(self.log_file.name + EXTERNAL_SUFFIX)

    def _fallback_handler(self) -> logging.Handler:
        if self._fallback is None:
            self._fallback = logging.StreamHandler(sys.stderr)
            self._fallback.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        return self._fallback

    def _get_sink(self, sink: Path) -> logging.Handler:
        """
        Return the handler writing to a sink path, opening it on first use.

        Args:
            sink: Log file path

        Returns:
            File handler, or the stderr fallback if the file can't be opened
        """
        key = str(sink)
        handler = self._sinks.get(key)
        if handler is not None:
            return handler

        try:
            sink.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(sink)
            handler.setFormatter(JSONFormatter())
        except OSError as e:
            sys.stderr.write(f"[!] Cannot open log sink {sink}: {e}; using stderr\n")
            handler = self._fallback_handler()

        self._sinks[key] = handler
        return handler

    def log(
        self,
        component: str,
        message: str,
        level: Union[int, str] = logging.INFO,
        sink: Optional[Path] = None,
        origin: str = ORIGIN_INTERNAL,
        extra_fields: Optional[Dict] = None
    ) -> None:
        """
        Log a message from a component.

        Args:
            component: Originating component (e.g., "netaudit.core.instance")
            message: Message text
            level: Severity level
            sink: Target log file; defaults to the primary log file
            origin: ORIGIN_INTERNAL or ORIGIN_EXTERNAL
            extra_fields: Additional JSON fields
        """
        levelno = _coerce_level(level)
        if origin == ORIGIN_INTERNAL and levelno < self.level:
            return
        self._write(component, message, levelno, sink, origin, extra_fields)

    def _write(
        self,
        component: str,
        message: str,
        levelno: int,
        sink: Optional[Path],
        origin: str,
        extra_fields: Optional[Dict]
    ) -> None:
        try:
            record = self.logger.makeRecord(
                component,
                levelno,
                "(unknown file)",
                0,
                message,
                (),
                None,
                func=None
            )
            record.origin = origin
            if extra_fields:
                record.extra_fields = extra_fields

            target = Path(sink) if sink else self.log_file
            if target is not None:
                self._get_sink(target).handle(record)
            elif origin == ORIGIN_EXTERNAL:
                self._fallback_handler().handle(record)
            if self.console_handler and origin == ORIGIN_INTERNAL:
                self.console_handler.handle(record)
        except Exception as e:
            sys.stderr.write(f"[!] Logging failure ({component}): {message} [{e}]\n")

    def log_external(self, message: str, component: str = 'external') -> None:
        """
        Record an external warning in the external sink.

        External warnings bypass the verbosity threshold and are not echoed
        to the console.

        Args:
            message: Warning text
            component: Reporting component
        """
        self._write(
            component,
            f"{EXTERNAL_TAG}: {message}",
            logging.INFO,
            self.external_log_file,
            ORIGIN_EXTERNAL,
            None
        )

    def debug(self, component: str, message: str, **kwargs) -> None:
        """Log debug message with extra fields."""
        self.log(component, message, logging.DEBUG, extra_fields=kwargs or None)

    def info(self, component: str, message: str, **kwargs) -> None:
        """Log info message with extra fields."""
        self.log(component, message, logging.INFO, extra_fields=kwargs or None)

    def warning(self, component: str, message: str, **kwargs) -> None:
        """Log warning message with extra fields."""
        self.log(component, message, logging.WARNING, extra_fields=kwargs or None)

    def error(self, component: str, message: str, **kwargs) -> None:
        """Log error message with extra fields."""
        self.log(component, message, logging.ERROR, extra_fields=kwargs or None)

    def close(self) -> None:
        """Close every sink and detach the module-logger bridge."""
        self.logger.removeHandler(self._bridge)
        self.logger.setLevel(self._saved_state[0])
        self.logger.propagate = self._saved_state[1]
        for handler in self._sinks.values():
            if handler is not self._fallback:
                handler.close()
        self._sinks.clear()


class WarningRouter:
    """
    Captures runtime warnings for the duration of a run and routes them.

    Warnings raised inside netaudit are logged to the primary sink at
    WARNING level; anything else is tagged as an external warning and
    recorded in the external sink. Neither aborts the run.
    """

    def __init__(self, audit_logger: AuditLogger):
        """
        Initialize warning router.

        Args:
            audit_logger: Logger receiving the routed warnings
        """
        self.audit_logger = audit_logger
        self._catcher: Optional[warnings.catch_warnings] = None
        self.internal_count = 0
        self.external_count = 0

    def install(self) -> None:
        """Start intercepting warnings."""
        if self._catcher is not None:
            return
        self._catcher = warnings.catch_warnings()
        self._catcher.__enter__()
        warnings.simplefilter('default')
        warnings.showwarning = self.route

    def uninstall(self) -> None:
        """Restore the previous warning filters and display hook."""
        if self._catcher is None:
            return
        self._catcher.__exit__(None, None, None)
        self._catcher = None

    def route(self, message, category, filename, lineno, file=None, line=None) -> None:
        """
        Classify and log one warning (``warnings.showwarning`` signature).

        Args:
            message: Warning message or instance
            category: Warning class
            filename: File the warning was raised from
            lineno: Line number
        """
        text = f"{filename}:{lineno}: {category.__name__}: {message}"
        if is_internal_source(filename):
            self.internal_count += 1
            self.audit_logger.log('warnings', text, logging.WARNING)
        else:
            self.external_count += 1
            self.audit_logger.log_external(text, component='warnings')

    def __enter__(self) -> 'WarningRouter':
        self.install()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.uninstall()
