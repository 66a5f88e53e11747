# netaudit/core/instance.py
"""
Instance location module.
Derives the instance name of an audit run and the two directories the
processing stage works with: the raw-log directory and the JSON output
directory. Paths are only computed here, never created.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import logging

try:
    from scapy.error import Scapy_Exception
    from scapy.utils import PcapReader
except ImportError:
    raise ImportError("Scapy not installed. Run: pip install scapy")

from netaudit.core.errors import ConfigurationError, InvalidInstancePath
from netaudit.utils.config_loader import INPUT_CAPTURE, RunOptions
from netaudit.utils.validators import InputValidator

logger = logging.getLogger(__name__)

JSON_DIRNAME = 'json'

# Extensions stripped from a capture file name to form the instance name
CAPTURE_EXTENSIONS = ('.gz', '.pcap', '.pcapng', '.cap', '.dmp')


@dataclass(frozen=True)
class Instance:
    """
    Identity of one audit run.
    name is None when an explicit output directory makes it unnecessary.
    """
    name: Optional[str]
    raw_log_dir: Path
    json_dir: Path

    def to_dict(self) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        return {
            'name': self.name,
            'raw_log_dir': str(self.raw_log_dir),
            'json_dir': str(self.json_dir),
        }


def derive_instance_name(instance_dir: str) -> str:
    """
    Derive an instance name from an instance directory path.

    Trailing separators are ignored, so "/data/logs/case1/" gives "case1".

    Args:
        instance_dir: Instance directory path

    Returns:
        Final path component

    Raises:
        InvalidInstancePath: If the path has no usable final component
            (empty, root, "." or "..")
    """
    stripped = (instance_dir or '').rstrip('/' + os.sep)
    name = os.path.basename(stripped)
    if not name or name in ('.', '..'):
        raise InvalidInstancePath(f"Invalid instance directory: '{instance_dir}'")
    return name


class CaptureLoader:
    """
    Registers a capture file as an audit instance.

    Verifies the file is a readable pcap/pcapng capture and derives the
    instance name from its base name.
    """

    def load(self, cap_file: Path) -> str:
        """
        Load a capture file and return its instance name.

        Args:
            cap_file: Path to the capture file

        Returns:
            Instance name

        Raises:
            ConfigurationError: If the file is not a readable capture
        """
        cap_file = Path(cap_file)
        self._verify_capture(cap_file)

        name = self.instance_name(cap_file)
        logger.info(f"Loaded capture {cap_file} as instance '{name}'")
        return name

    def _verify_capture(self, cap_file: Path) -> None:
        try:
            with PcapReader(str(cap_file)) as reader:
                try:
                    reader.read_packet()
                except EOFError:
                    logger.warning(f"Capture file contains no packets: {cap_file}")
        except (Scapy_Exception, OSError) as e:
            raise ConfigurationError(f"Unreadable capture file {cap_file}: {e}")

    @staticmethod
    def instance_name(cap_file: Path) -> str:
        """
        Derive an instance name from a capture file name.

        Args:
            cap_file: Capture file path (e.g., "/captures/office.pcap.gz")

        Returns:
            Sanitized base name without capture extensions (e.g., "office"),
            or a timestamped name if nothing usable remains
        """
        name = Path(cap_file).name
        stripped = True
        while stripped:
            stripped = False
            for ext in CAPTURE_EXTENSIONS:
                if name.lower().endswith(ext) and len(name) > len(ext):
                    name = name[:-len(ext)]
                    stripped = True

        name = InputValidator.sanitize_name(name)
        if not name:
            name = f"instance-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}"
        return name


class InstanceLocator:
    """
    Computes the Instance for a run from its options.

    Layouts:
    - capture file, explicit log dir:  raw=<log_dir>, json=<log_dir>/json
    - capture file, default log dir:   raw=<log_dir>/<name>, json=<web_root>/<name>/json
    - instance dir, explicit log dir:  raw=<instance_dir>, json=<log_dir>
    - instance dir, default log dir:   raw=<instance_dir>, json=<web_root>/<name>/json
    """

    def __init__(self, loader: Optional[CaptureLoader] = None):
        """
        Initialize instance locator.

        Args:
            loader: Capture loader collaborator (default CaptureLoader)
        """
        self.loader = loader or CaptureLoader()

    def locate(self, options: RunOptions) -> Instance:
        """
        Locate the instance for a run.

        Args:
            options: Resolved run options

        Returns:
            Instance with raw-log and JSON directories

        Raises:
            InvalidInstancePath: If no name can be derived from the
                instance directory
            ConfigurationError: If the capture file cannot be loaded
        """
        if options.input_mode == INPUT_CAPTURE:
            instance = self._locate_capture(options)
        else:
            instance = self._locate_directory(options)

        logger.info(
            f"Instance '{instance.name}': raw logs {instance.raw_log_dir}, "
            f"JSON output {instance.json_dir}"
        )
        return instance

    def _locate_capture(self, options: RunOptions) -> Instance:
        name = self.loader.load(options.cap_file)

        if options.log_dir_explicit:
            return Instance(
                name=name,
                raw_log_dir=options.log_dir,
                json_dir=options.log_dir / JSON_DIRNAME,
            )

        return Instance(
            name=name,
            raw_log_dir=options.log_dir / name,
            json_dir=options.web_root / name / JSON_DIRNAME,
        )

    def _locate_directory(self, options: RunOptions) -> Instance:
        instance_dir = Path(options.instance_dir)

        if options.log_dir_explicit:
            return Instance(
                name=None,
                raw_log_dir=instance_dir,
                json_dir=options.log_dir,
            )

        name = derive_instance_name(options.instance_dir)
        return Instance(
            name=name,
            raw_log_dir=instance_dir,
            json_dir=options.web_root / name / JSON_DIRNAME,
        )
