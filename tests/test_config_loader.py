"""Tests for the config_loader module."""

import dataclasses
import json
from pathlib import Path

import pytest

from netaudit.core.errors import ConfigurationError, NoInputError
from netaudit.utils.config_loader import (
    ConfigLoader,
    ConfigResolver,
    RunOptions,
    INPUT_CAPTURE,
    INPUT_INSTANCE,
)


@pytest.fixture
def cap_path(tmp_path):
    path = tmp_path / "trace.pcap"
    path.write_bytes(b"")
    return path


def write_yaml(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestConfigLoader:
    def test_shipped_template_loads(self):
        loader = ConfigLoader()
        assert loader.get("analysis.out_dataset") == "all"
        assert loader.get("paths.log_dir") is None
        assert loader.get("system.debug") is False

    def test_dot_notation_default(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "paths:\n  web_root: /srv/web\n")
        loader = ConfigLoader(str(path))
        assert loader.get("paths.web_root") == "/srv/web"
        assert loader.get("paths.missing", "x") == "x"
        assert loader.get("paths.web_root.deeper", "y") == "y"

    def test_json_file(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"analysis": {"payload": True}}))
        assert ConfigLoader(str(path)).get("analysis.payload") is True

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUDIT_ROOT", "/srv/audit")
        path = write_yaml(tmp_path / "c.yaml", "paths:\n  log_dir: ${AUDIT_ROOT}/logs\n")
        assert ConfigLoader(str(path)).get("paths.log_dir") == "/srv/audit/logs"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(str(tmp_path / "absent.yaml"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "c.txt"
        path.write_text("x")
        with pytest.raises(ValueError):
            ConfigLoader(str(path))

    def test_malformed_yaml(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "paths: [unclosed\n")
        with pytest.raises(ValueError):
            ConfigLoader(str(path))


class TestRequiredInput:
    def test_no_input(self):
        with pytest.raises(NoInputError) as excinfo:
            ConfigResolver({}).resolve()
        assert isinstance(excinfo.value, ConfigurationError)
        assert excinfo.value.exit_code == 3

    def test_both_inputs(self, cap_path, tmp_path):
        with pytest.raises(ConfigurationError) as excinfo:
            ConfigResolver({"cap_file": str(cap_path), "instance_dir": str(tmp_path)}).resolve()
        assert excinfo.value.exit_code == 1

    def test_missing_capture_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigResolver({"cap_file": str(tmp_path / "absent.pcap")}).resolve()

    def test_instance_dir_need_not_exist(self, tmp_path):
        options = ConfigResolver({"instance_dir": str(tmp_path / "later")}).resolve()
        assert options.input_mode == INPUT_INSTANCE

    def test_capture_mode(self, cap_path):
        options = ConfigResolver({"cap_file": str(cap_path)}).resolve()
        assert options.input_mode == INPUT_CAPTURE
        assert options.cap_file == cap_path


class TestPrecedence:
    def test_defaults(self, cap_path):
        options = ConfigResolver({"cap_file": str(cap_path)}).resolve()
        assert options.log_dir == Path("./logs")
        assert options.log_dir_explicit is False
        assert options.web_root == Path("./web/instances")
        assert options.parsers is None
        assert options.home_net == ()
        assert options.payload is False
        assert options.debug is False
        assert options.out_dataset == "all"
        assert options.primary_log_file == Path("./logs/netaudit.log")

    def test_file_over_defaults(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", (
            "paths:\n"
            "  log_dir: /srv/out\n"
            "analysis:\n"
            "  out_dataset: audit\n"
            "  parsers: [bro, snortIds]\n"
            "  payload: true\n"
        ))
        options = ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
        assert options.log_dir == Path("/srv/out")
        assert options.log_dir_explicit is True
        assert options.out_dataset == "audit"
        assert options.parsers == "bro,snortIds"
        assert options.payload is True
        assert options.conf == conf

    def test_cli_over_file(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", (
            "analysis:\n"
            "  out_dataset: audit\n"
            "system:\n"
            "  debug: false\n"
        ))
        options = ConfigResolver(
            {"cap_file": str(cap_path), "out_dataset": "all", "debug": True},
            str(conf)
        ).resolve()
        assert options.out_dataset == "all"
        assert options.debug is True
        assert options.log_level == "DEBUG"

    def test_none_overrides_are_ignored(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "system:\n  debug: true\n")
        options = ConfigResolver(
            {"cap_file": str(cap_path), "debug": None}, str(conf)
        ).resolve()
        assert options.debug is True

    def test_input_from_file(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", f"input:\n  cap_file: {cap_path}\n")
        options = ConfigResolver({}, str(conf)).resolve()
        assert options.cap_file == cap_path

    def test_cli_log_dir_is_explicit(self, cap_path):
        options = ConfigResolver({"cap_file": str(cap_path), "log_dir": "out"}).resolve()
        assert options.log_dir_explicit is True

    def test_missing_config_file(self, cap_path, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigResolver({"cap_file": str(cap_path)}, str(tmp_path / "absent.yaml")).resolve()


class TestValidation:
    def test_invalid_out_dataset(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "analysis:\n  out_dataset: everything\n")
        with pytest.raises(ConfigurationError):
            ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()

    def test_home_net_parsed(self, cap_path):
        options = ConfigResolver(
            {"cap_file": str(cap_path), "home_net": "10.0.0.0/8, 192.168.1.0/24"}
        ).resolve()
        assert options.home_net == ("10.0.0.0/8", "192.168.1.0/24")

    def test_malformed_home_net_entries_dropped(self, cap_path):
        options = ConfigResolver(
            {"cap_file": str(cap_path), "home_net": "10.0.0.0/8,bogus"}
        ).resolve()
        assert options.home_net == ("10.0.0.0/8",)

    def test_home_net_list_in_file(self, cap_path, tmp_path):
        conf = write_yaml(
            tmp_path / "c.yaml",
            "analysis:\n  home_net: [172.16.0.0/12, 10.1.2.3/16]\n"
        )
        options = ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
        assert options.home_net == ("172.16.0.0/12", "10.1.0.0/16")


class TestRunOptions:
    def test_frozen(self):
        options = RunOptions(instance_dir="case1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.debug = True

    def test_explicit_log_file(self):
        options = RunOptions(instance_dir="case1", log_file=Path("/tmp/run.log"))
        assert options.primary_log_file == Path("/tmp/run.log")

    def test_to_dict(self):
        options = RunOptions(instance_dir="case1", home_net=("10.0.0.0/8",))
        data = options.to_dict()
        assert data["input_mode"] == INPUT_INSTANCE
        assert data["log_dir"] == "logs"
        assert data["home_net"] == ["10.0.0.0/8"]
        json.dumps(data)


class TestFileValueTypes:
    def test_integer_log_dir(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "paths:\n  log_dir: 2024\n")
        options = ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
        assert options.log_dir == Path("2024")
        assert options.log_dir_explicit is True

    def test_integer_instance_dir(self, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "input:\n  instance_dir: 2024\n")
        options = ConfigResolver({}, str(conf)).resolve()
        assert options.instance_dir == "2024"

    def test_integer_home_net_is_dropped(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "analysis:\n  home_net: 10\n")
        options = ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
        assert options.home_net == ()

    def test_numeric_list_items(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "analysis:\n  parsers: [bro, 7]\n")
        options = ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
        assert options.parsers == "bro,7"

    def test_mapping_for_path_rejected(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "paths:\n  web_root:\n    nested: x\n")
        with pytest.raises(ConfigurationError):
            ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()

    def test_list_for_path_rejected(self, cap_path, tmp_path):
        conf = write_yaml(tmp_path / "c.yaml", "paths:\n  log_file: [a, b]\n")
        with pytest.raises(ConfigurationError):
            ConfigResolver({"cap_file": str(cap_path)}, str(conf)).resolve()
