# netaudit/core/dispatcher.py
"""
Dispatch module.
Hands the located instance and the selected parsers to the processing stage
in a single blocking call, and provides the default processing stage: a
registry of parser handlers run in order over the raw-log directory.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import time

from netaudit.core.errors import DispatchFailure
from netaudit.core.parsers import ParserSet, is_known_parser
from netaudit.utils.config_loader import INPUT_INSTANCE, RunOptions

logger = logging.getLogger(__name__)

# Directories the report generators and web visualizer expect under json/
SUMMARY_DIRNAME = 'SUMMARY'
VIEW_DIRNAME = 'VIEW1'


class ParserHandler(ABC):
    """
    Abstract base class for parser handlers.
    A handler turns one tool's raw logs into normalized JSON data.
    """

    def __init__(self, enabled: bool = True):
        """
        Initialize parser handler.

        Args:
            enabled: Whether this handler is active
        """
        self.enabled = enabled
        self.runs_ok = 0
        self.runs_failed = 0

    @abstractmethod
    def parse(self, raw_log_dir: Path, json_dir: Path, options: RunOptions) -> bool:
        """
        Parse raw logs into the JSON directory.

        Args:
            raw_log_dir: Directory with the tool's native output
            json_dir: Instance JSON directory
            options: Run options

        Returns:
            True if parsing succeeded, False otherwise
        """
        pass

    def get_stats(self) -> Dict[str, int]:
        """
        Get handler statistics.

        Returns:
            Dictionary with stats
        """
        return {
            'runs_ok': self.runs_ok,
            'runs_failed': self.runs_failed,
        }


class ParserRegistry:
    """
    Maps parser identifiers to their handlers.
    """

    def __init__(self):
        """Initialize parser registry."""
        self.handlers: Dict[str, ParserHandler] = {}

    def register(self, name: str, handler: ParserHandler) -> None:
        """
        Register a parser handler.

        Args:
            name: Parser identifier (e.g., "argusFlow")
            handler: ParserHandler instance

        Raises:
            ValueError: If the identifier is not a known parser
        """
        if not is_known_parser(name):
            raise ValueError(f"Unknown parser identifier: {name}")
        self.handlers[name] = handler
        logger.debug(f"Registered parser handler: {name}")

    def get(self, name: str) -> Optional[ParserHandler]:
        return self.handlers.get(name)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics from all handlers.

        Returns:
            Dictionary with per-handler statistics
        """
        return {
            name: handler.get_stats()
            for name, handler in self.handlers.items()
        }


class ParserRunner:
    """
    Default processing stage.

    Prepares the JSON output layout and runs the registered handler of each
    selected parser in order. Parsers without a handler are skipped; a
    failing handler is logged and counted without stopping the others.
    """

    def __init__(self, registry: Optional[ParserRegistry] = None):
        """
        Initialize parser runner.

        Args:
            registry: Parser handlers (empty registry if None)
        """
        self.registry = registry or ParserRegistry()

    def prepare_layout(self, json_dir: Path) -> None:
        """Create json/SUMMARY and json/VIEW1 under the instance JSON directory."""
        for dirname in (SUMMARY_DIRNAME, VIEW_DIRNAME):
            (json_dir / dirname).mkdir(parents=True, exist_ok=True)

    def process(
        self,
        raw_log_dir: Path,
        parsers: ParserSet,
        json_dir: Path,
        options: RunOptions
    ) -> Any:
        """
        Run the selected parsers.

        Args:
            raw_log_dir: Raw-log directory of the instance
            parsers: Parsers to run, in order
            json_dir: JSON output directory
            options: Run options

        Returns:
            Summary dictionary, or False if the raw-log directory is missing
            for an existing instance
        """
        if options.input_mode == INPUT_INSTANCE and not raw_log_dir.is_dir():
            logger.error(f"Raw log directory not found: {raw_log_dir}")
            return False

        self.prepare_layout(json_dir)

        summary: Dict[str, Any] = {
            'completed': [],
            'failed': [],
            'skipped': [],
        }
        started = time.time()

        for name in parsers:
            handler = self.registry.get(name)
            if handler is None or not handler.enabled:
                logger.warning(f"No handler available for parser {name}; skipping")
                summary['skipped'].append(name)
                continue

            logger.info(f"Running parser {name}")
            try:
                success = handler.parse(raw_log_dir, json_dir, options)
            except Exception as e:
                logger.error(f"Error in parser {name}: {e}")
                success = False

            if success:
                handler.runs_ok += 1
                summary['completed'].append(name)
            else:
                handler.runs_failed += 1
                summary['failed'].append(name)

        summary['elapsed_seconds'] = round(time.time() - started, 3)
        return summary


class Dispatcher:
    """
    Single entry point into the processing stage.
    Each dispatcher makes at most one processing call.
    """

    def __init__(self, backend: Optional[Any] = None):
        """
        Initialize dispatcher.

        Args:
            backend: Processing stage exposing
                process(raw_log_dir, parsers, json_dir, options)
                (default ParserRunner)
        """
        self.backend = backend or ParserRunner()
        self.dispatched = False

    def dispatch(
        self,
        raw_log_dir: Path,
        parsers: ParserSet,
        json_dir: Path,
        options: RunOptions
    ) -> Any:
        """
        Invoke the processing stage once.

        Args:
            raw_log_dir: Raw-log directory of the instance
            parsers: Parsers to run
            json_dir: JSON output directory
            options: Run options

        Returns:
            Whatever the processing stage returned

        Raises:
            DispatchFailure: If called twice, or if the processing stage
                raises or returns False
        """
        if self.dispatched:
            raise DispatchFailure("Dispatcher already invoked for this run")
        self.dispatched = True

        logger.info(
            f"Dispatching {len(parsers)} parser(s) [{parsers.as_string()}] "
            f"over {raw_log_dir} -> {json_dir}"
        )
        try:
            result = self.backend.process(raw_log_dir, parsers, json_dir, options)
        except Exception as e:
            raise DispatchFailure(f"Processing failed: {e}") from e

        if result is False:
            raise DispatchFailure("Processing stage reported failure")
        return result
