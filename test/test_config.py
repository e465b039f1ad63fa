"""Tests for config loading."""

import pytest
from src.config import load_config


@pytest.fixture()
def valid_config_yaml(tmp_path):
    """Write a minimal valid config.yaml and return its path."""
    content = """\
cache_ttl: 15
request_timeout: 4.5
extrapolation_threshold: 45
feed_name: "Port Authority Bus"

stops:
  - "4407"
  - "7117"
  - "8245"
"""
    p = tmp_path / "config.yaml"
    p.write_text(content)
    return str(p)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PRT_API_KEY", "API_HOST", "API_PORT", "CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_loads_valid_config(self, valid_config_yaml):
        config = load_config(valid_config_yaml)
        assert config.cache_ttl == 15
        assert config.request_timeout == 4.5
        assert config.extrapolation_threshold == 45
        assert config.stops == ["4407", "7117", "8245"]

    def test_defaults_applied(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("")
        config = load_config(str(p))
        assert config.stops == ["4407", "7117"]
        assert config.cache_ttl == 20
        assert config.request_timeout == 10.0
        assert config.extrapolation_threshold == 30
        assert config.single_flight is True
        assert config.feed_name == "Port Authority Bus"
        assert config.time_resolution == "s"
        assert config.prt_base_url == "http://truetime.portauthority.org/bustime/api/v3"
        assert config.host == "127.0.0.1"
        assert config.port == 8080

    def test_unquoted_stop_ids_become_strings(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("stops:\n  - 4407\n  - 7117\n")
        config = load_config(str(p))
        assert config.stops == ["4407", "7117"]

    def test_env_provides_secret(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("PRT_API_KEY", "test-key-123")
        config = load_config(valid_config_yaml)
        assert config.prt_api_key == "test-key-123"

    def test_secret_never_read_from_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('prt_api_key: "leaked"\n')
        config = load_config(str(p))
        assert config.prt_api_key is None

    def test_env_overrides_listen_address(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("API_HOST", "0.0.0.0")
        monkeypatch.setenv("API_PORT", "9090")
        config = load_config(valid_config_yaml)
        assert config.host == "0.0.0.0"
        assert config.port == 9090

    def test_invalid_port_raises(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("API_PORT", "not-a-port")
        with pytest.raises(Exception):  # ValidationError
            load_config(valid_config_yaml)

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_empty_stops_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("stops: []\n")
        with pytest.raises(Exception):  # ValidationError
            load_config(str(p))

    def test_duplicate_stops_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('stops: ["4407", "4407"]\n')
        with pytest.raises(Exception, match="Duplicate"):
            load_config(str(p))

    def test_zero_ttl_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("cache_ttl: 0\n")
        with pytest.raises(Exception):
            load_config(str(p))

    def test_config_path_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", valid_config_yaml)
        config = load_config()
        assert len(config.stops) == 3
