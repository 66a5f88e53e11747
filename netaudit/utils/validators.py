# netaudit/utils/validators.py
"""
Input validation module.
Provides functions for validating command-line and configuration inputs:
comma-separated lists, CIDR blocks and instance names.
"""

import re
import ipaddress
from typing import Iterable, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)


class InputValidator:
    """
    Validates run inputs.

    Provides validation for:
    - Comma-separated option lists
    - CIDR network blocks (IPv4 and IPv6)
    - Instance names derived from file or directory names
    """

    # Characters allowed in an instance name
    NAME_PATTERN = re.compile(r'[^A-Za-z0-9._-]')

    @staticmethod
    def split_list(value: Optional[Union[str, Iterable[str]]]) -> List[str]:
        """
        Split a comma-separated option into tokens.

        Whitespace around each token is trimmed and empty tokens are dropped.
        A list or tuple (as YAML config files provide) is accepted as well.

        Args:
            value: Comma-separated string, list or tuple of strings, or None;
                   other scalars are converted with str()

        Returns:
            List of non-empty tokens in input order
        """
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            items = []
            for item in value:
                items.extend(str(item).split(','))
        else:
            items = str(value).split(',')
        return [item.strip() for item in items if item.strip()]

    @staticmethod
    def validate_cidr(cidr: str) -> bool:
        """
        Validate a CIDR network block.

        Args:
            cidr: Network block (e.g., "192.168.0.0/16")

        Returns:
            True if valid, False otherwise
        """
        try:
            ipaddress.ip_network(cidr, strict=False)
            return True
        except ValueError:
            return False

    @staticmethod
    def parse_cidr_list(
        value: Optional[Union[str, Iterable[str]]]
    ) -> Tuple[List[str], List[str]]:
        """
        Parse a comma-separated list of CIDR blocks.

        Args:
            value: Comma-separated CIDR blocks (e.g., "10.0.0.0/8,192.168.1.0/24")

        Returns:
            Tuple of (canonical valid networks, rejected tokens)
        """
        valid = []
        invalid = []
        for token in InputValidator.split_list(value):
            try:
                network = ipaddress.ip_network(token, strict=False)
            except ValueError:
                invalid.append(token)
                continue
            canonical = str(network)
            if canonical not in valid:
                valid.append(canonical)
        return valid, invalid

    @staticmethod
    def sanitize_name(text: str, max_length: int = 128) -> str:
        """
        Sanitize an instance name.

        Args:
            text: Raw name
            max_length: Maximum allowed length

        Returns:
            Name restricted to letters, digits, dot, dash and underscore
        """
        if not text:
            return ""

        # Remove null bytes
        text = text.replace('\x00', '')

        text = InputValidator.NAME_PATTERN.sub('_', text)
        return text[:max_length].strip('.')
