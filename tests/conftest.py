"""Shared fixtures for the netaudit test suite."""

import json
from pathlib import Path

import pytest
from scapy.layers.inet import IP, TCP
from scapy.layers.l2 import Ether
from scapy.utils import wrpcap

from netaudit.utils.config_loader import RunOptions
from netaudit.utils.logging_utils import AuditLogger


def _read_records(path: Path) -> list:
    return [json.loads(line) for line in Path(path).read_text().splitlines() if line.strip()]


@pytest.fixture
def read_records():
    """Parse a JSON-lines log file."""
    return _read_records


@pytest.fixture
def capture_file(tmp_path):
    path = tmp_path / "office.pcap"
    packets = [
        Ether() / IP(src="10.0.0.1", dst="10.0.0.2") / TCP(sport=40000 + i, dport=80)
        for i in range(3)
    ]
    wrpcap(str(path), packets)
    return path


@pytest.fixture
def make_options(tmp_path):
    def _make(**kwargs):
        params = {
            'log_dir': tmp_path / "logs",
            'web_root': tmp_path / "web",
        }
        params.update(kwargs)
        return RunOptions(**params)
    return _make


@pytest.fixture
def audit_logger(tmp_path):
    logger = AuditLogger(
        log_file=tmp_path / "logs" / "netaudit.log",
        log_level="DEBUG",
        console_output=False
    )
    yield logger
    logger.close()
