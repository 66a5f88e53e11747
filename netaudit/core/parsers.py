# netaudit/core/parsers.py
"""
Parser selection module.
Defines the parser vocabulary and resolves the ordered set of parsers a run
executes, from the --parser option or the default set.
"""

from typing import Iterable, Iterator, List, Tuple
import logging

from netaudit.core.errors import ConfigurationError
from netaudit.utils.config_loader import RunOptions
from netaudit.utils.validators import InputValidator

logger = logging.getLogger(__name__)

# Recognized parser identifiers (case-sensitive)
PARSER_VOCABULARY: Tuple[str, ...] = (
    'argusFlow',
    'p0f',
    'prads',
    'snortAppId',
    'suricataHttp',
    'httpry',
    'tcpdstat',
    'suricataEve',
    'snortIds',
    'bro',
    'tcpflow',
)

# Parsers run when --parser is not given, in execution order
DEFAULT_PARSERS: Tuple[str, ...] = (
    'argusFlow',
    'p0f',
    'prads',
    'snortAppId',
    'suricataHttp',
    'httpry',
    'tcpdstat',
    'suricataEve',
    'snortIds',
    'bro',
)


def is_known_parser(name: str) -> bool:
    return name in PARSER_VOCABULARY


class ParserSet:
    """
    Ordered, duplicate-free set of parser identifiers.
    Iteration follows first-occurrence order.
    """

    def __init__(self, names: Iterable[str]):
        ordered: List[str] = []
        for name in names:
            if name not in ordered:
                ordered.append(name)
        self._names = tuple(ordered)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParserSet):
            return self._names == other._names
        if isinstance(other, (list, tuple)):
            return list(self._names) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParserSet({list(self._names)!r})"

    def to_list(self) -> List[str]:
        return list(self._names)

    def as_string(self) -> str:
        """Comma-separated form, as accepted by --parser."""
        return ','.join(self._names)


class ParserSelector:
    """
    Resolves the operative ParserSet for a run.

    Unknown identifiers are rejected here rather than passed on to the
    processing stage.
    """

    def __init__(self, default_parsers: Iterable[str] = DEFAULT_PARSERS):
        """
        Initialize parser selector.

        Args:
            default_parsers: Parsers used when none are requested
        """
        self.default_parsers = tuple(default_parsers)

    def select(self, options: RunOptions) -> ParserSet:
        """
        Select the parsers for a run.

        Args:
            options: Resolved run options

        Returns:
            Non-empty ParserSet

        Raises:
            ConfigurationError: If a requested parser is unknown, or the
                parser list contains no identifiers
        """
        if options.parsers is None:
            parsers = ParserSet(self.default_parsers)
            logger.debug(f"No parsers requested; using defaults: {parsers.as_string()}")
            return parsers

        requested = InputValidator.split_list(options.parsers)
        unknown = [name for name in requested if not is_known_parser(name)]
        if unknown:
            raise ConfigurationError(
                f"Unknown parser(s): {', '.join(unknown)}. "
                f"Valid parsers: {', '.join(PARSER_VOCABULARY)}"
            )
        if not requested:
            raise ConfigurationError("Parser list is empty")

        parsers = ParserSet(requested)
        logger.debug(f"Selected parsers: {parsers.as_string()}")
        return parsers
