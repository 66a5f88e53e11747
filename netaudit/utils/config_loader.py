# netaudit/utils/config_loader.py
"""
Configuration loader module.
Handles YAML/JSON configuration parsing and merges it with built-in defaults
and command-line overrides into one validated RunOptions value.
Implements environment variable substitution in configuration files.
"""

import os
import re
import json
import yaml
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple
from pathlib import Path
import logging

from netaudit.core.errors import ConfigurationError, NoInputError
from netaudit.utils.validators import InputValidator

logger = logging.getLogger(__name__)

INPUT_CAPTURE = 'capture'
INPUT_INSTANCE = 'instance'

OUT_DATASETS = ('all', 'audit')

DEFAULT_LOG_FILENAME = 'netaudit.log'


class ConfigLoader:
    """
    Loads and parses netaudit configuration files.

    Supports:
    - YAML and JSON configuration files
    - Environment variable substitution (${ENV_VAR})
    - Dot-notation lookups
    """

    DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

    ENV_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses default path.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            ValueError: If configuration file format is invalid.
        """
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """
        Load and parse configuration file.

        Raises:
            FileNotFoundError: If config file not found.
            ValueError: If config file format is invalid.
        """
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                if self.config_path.suffix.lower() in ('.yaml', '.yml'):
                    self.config = yaml.safe_load(f) or {}
                elif self.config_path.suffix.lower() == '.json':
                    self.config = json.load(f)
                else:
                    raise ValueError(f"Unsupported config format: {self.config_path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid configuration file format: {e}")

        if not isinstance(self.config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        # Substitute environment variables
        self._substitute_env_vars()
        logger.info(f"Configuration loaded from {self.config_path}")

    def _substitute_env_vars(self) -> None:
        """
        Recursively substitute environment variables in configuration.
        Looks for ${VAR_NAME} patterns and replaces with environment values.
        """
        def replace_env(match):
            env_var = match.group(1)
            value = os.environ.get(env_var, "")
            if not value:
                logger.warning(f"Environment variable not set: {env_var}")
            return value

        def substitute(obj: Any) -> Any:
            if isinstance(obj, str):
                return self.ENV_PATTERN.sub(replace_env, obj)
            elif isinstance(obj, dict):
                return {k: substitute(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [substitute(item) for item in obj]
            return obj

        self.config = substitute(self.config)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "paths.log_dir")
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("analysis.out_dataset")
            'all'
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def to_dict(self) -> Dict[str, Any]:
        """Return entire configuration as dictionary."""
        return self.config.copy()


@dataclass(frozen=True)
class RunOptions:
    """
    Resolved, validated configuration for one audit run.
    Exactly one of cap_file / instance_dir is set.
    """
    cap_file: Optional[Path] = None
    instance_dir: Optional[str] = None
    log_dir: Path = Path('./logs')
    log_dir_explicit: bool = False
    web_root: Path = Path('./web/instances')
    log_file: Optional[Path] = None
    parsers: Optional[str] = None
    home_net: Tuple[str, ...] = field(default_factory=tuple)
    payload: bool = False
    debug: bool = False
    out_dataset: str = 'all'
    audit_dict: Optional[Path] = None
    conf: Optional[Path] = None

    @property
    def input_mode(self) -> str:
        return INPUT_CAPTURE if self.cap_file is not None else INPUT_INSTANCE

    @property
    def primary_log_file(self) -> Path:
        """Primary log sink: --log_file, else <log_dir>/netaudit.log."""
        if self.log_file is not None:
            return self.log_file
        return self.log_dir / DEFAULT_LOG_FILENAME

    @property
    def log_level(self) -> str:
        return 'DEBUG' if self.debug else 'INFO'

    def to_dict(self) -> Dict[str, Any]:
        """Convert options to a JSON-friendly dictionary."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Path):
                data[key] = str(value)
            elif isinstance(value, tuple):
                data[key] = list(value)
        data['input_mode'] = self.input_mode
        return data


class ConfigResolver:
    """
    Merges built-in defaults, an optional configuration file and
    command-line overrides into RunOptions.

    Precedence: command line, then configuration file, then defaults.
    """

    DEFAULTS: Dict[str, Any] = {
        'cap_file': None,
        'instance_dir': None,
        'log_dir': './logs',
        'web_root': './web/instances',
        'log_file': None,
        'parsers': None,
        'home_net': None,
        'payload': False,
        'debug': False,
        'out_dataset': 'all',
        'audit_dict': None,
    }

    # Option name -> dot-notation key in the configuration file
    FILE_KEYS: Dict[str, str] = {
        'cap_file': 'input.cap_file',
        'instance_dir': 'input.instance_dir',
        'log_dir': 'paths.log_dir',
        'web_root': 'paths.web_root',
        'log_file': 'paths.log_file',
        'audit_dict': 'paths.audit_dict',
        'parsers': 'analysis.parsers',
        'home_net': 'analysis.home_net',
        'payload': 'analysis.payload',
        'out_dataset': 'analysis.out_dataset',
        'debug': 'system.debug',
    }

    # Options that may be written as a YAML list
    LIST_OPTIONS = ('parsers', 'home_net')
    BOOL_OPTIONS = ('payload', 'debug')

    def __init__(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        config_path: Optional[str] = None
    ):
        """
        Initialize the resolver.

        Args:
            overrides: Command-line values; None means "not given"
            config_path: Optional configuration file (--conf)
        """
        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self.config_path = config_path

    def _load_file_layer(self) -> Dict[str, Any]:
        if not self.config_path:
            return {}
        try:
            loader = ConfigLoader(self.config_path)
        except (FileNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Configuration error: {e}")

        layer = {}
        for option, key in self.FILE_KEYS.items():
            value = loader.get(key)
            # Empty strings (e.g. unset ${ENV_VAR}) count as not given
            if value is None or value == '':
                continue
            layer[option] = self._normalize(option, key, value)
        return layer

    def _normalize(self, option: str, key: str, value: Any) -> Any:
        """
        Coerce a configuration file value to the type the option expects.

        YAML reads unquoted numbers as int, so scalar path and string
        options are converted with str().

        Raises:
            ConfigurationError: If a mapping is given, or a list where a
                single value is expected
        """
        if option in self.BOOL_OPTIONS:
            return value
        if option in self.LIST_OPTIONS and isinstance(value, list):
            if any(isinstance(item, (dict, list)) for item in value):
                raise ConfigurationError(f"Invalid value for {key}: expected a list of strings")
            return [str(item) for item in value]
        if isinstance(value, (dict, list)):
            raise ConfigurationError(f"Invalid value for {key}: expected a single value")
        return str(value)

    def merge(self) -> Dict[str, Any]:
        """
        Merge the three layers without validating.

        Returns:
            Merged option dictionary, with 'log_dir_explicit' recording
            whether log_dir came from the file or the command line
        """
        file_layer = self._load_file_layer()
        merged = dict(self.DEFAULTS)
        merged.update(file_layer)
        merged.update(self.overrides)
        merged['log_dir_explicit'] = 'log_dir' in file_layer or 'log_dir' in self.overrides
        return merged

    def resolve(self) -> RunOptions:
        """
        Produce validated RunOptions.

        Returns:
            RunOptions for this run

        Raises:
            NoInputError: If neither capture file nor instance directory is set
            ConfigurationError: If the configuration is otherwise invalid
        """
        merged = self.merge()

        cap_file = merged['cap_file']
        instance_dir = merged['instance_dir']
        if cap_file is None and instance_dir is None:
            raise NoInputError(
                "No input specified: use --cap_file <path> or --instance_dir <path>"
            )
        if cap_file is not None and instance_dir is not None:
            raise ConfigurationError(
                "--cap_file and --instance_dir are mutually exclusive"
            )

        if cap_file is not None and not Path(cap_file).is_file():
            raise ConfigurationError(f"Capture file not found: {cap_file}")
        if instance_dir and not Path(instance_dir).is_dir():
            logger.warning(f"Instance directory does not exist: {instance_dir}")

        out_dataset = str(merged['out_dataset'])
        if out_dataset not in OUT_DATASETS:
            raise ConfigurationError(
                f"Invalid out_dataset '{out_dataset}': expected one of {', '.join(OUT_DATASETS)}"
            )

        home_net, rejected = InputValidator.parse_cidr_list(merged['home_net'])
        for token in rejected:
            logger.warning(f"Ignoring malformed home_net entry: {token}")
        if merged['home_net'] and not home_net:
            logger.warning("No usable home_net entries; home network is unset")

        parsers = merged['parsers']
        if isinstance(parsers, (list, tuple)):
            parsers = ','.join(str(p) for p in parsers)

        options = RunOptions(
            cap_file=Path(cap_file) if cap_file is not None else None,
            instance_dir=str(instance_dir) if instance_dir is not None else None,
            log_dir=Path(merged['log_dir']),
            log_dir_explicit=merged['log_dir_explicit'],
            web_root=Path(merged['web_root']),
            log_file=Path(merged['log_file']) if merged['log_file'] else None,
            parsers=parsers,
            home_net=tuple(home_net),
            payload=_as_bool(merged['payload']),
            debug=_as_bool(merged['debug']),
            out_dataset=out_dataset,
            audit_dict=Path(merged['audit_dict']) if merged['audit_dict'] else None,
            conf=Path(self.config_path) if self.config_path else None,
        )
        logger.debug(f"Resolved run options: {options.to_dict()}")
        return options


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)
