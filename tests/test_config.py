"""Tests for configuration loading."""

import tomllib

import pytest

from grouptherapy.core.config import (
    ClientConfig,
    Config,
    _parse_config,
    create_default_config,
    load_config,
)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with an empty config dir and cwd so only XDG config is read."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)
    for name in ("ALLOWED_ORIGINS", "RADIO_STREAM_URL", "GROUPTHERAPY_SERVER_URL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "config" / "grouptherapy"


def test_defaults_without_config_file(isolated_config) -> None:
    config = load_config()

    assert config.server.port == 5000
    assert config.radio.default_stream_url == "https://stream.zeno.fm/yn65fsaurfhvv"
    assert config.radio.keepalive_interval_seconds == 30
    assert config.client.poll_interval_seconds == 10
    assert config.client.reconnect_delay_seconds == 5
    assert config.client.drift_tolerance_seconds == 2


def test_default_template_parses_to_defaults() -> None:
    parsed = _parse_config(tomllib.loads(create_default_config()))
    defaults = Config()

    assert parsed.radio == defaults.radio
    assert parsed.client.volume == defaults.client.volume
    assert parsed.auth.max_login_attempts == defaults.auth.max_login_attempts


def test_toml_values_override_defaults(isolated_config) -> None:
    isolated_config.mkdir(parents=True)
    (isolated_config / "config.toml").write_text(
        '[radio]\ndefault_stream_url = "https://live.example.com"\n'
        "[client]\npoll_interval_seconds = 3\n"
    )

    config = load_config()

    assert config.radio.default_stream_url == "https://live.example.com"
    assert config.client.poll_interval_seconds == 3
    assert config.client.reconnect_delay_seconds == 5


def test_env_overrides_toml(isolated_config, monkeypatch) -> None:
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com")
    monkeypatch.setenv("RADIO_STREAM_URL", "https://env.example.com/live")

    config = load_config()

    assert config.server.allowed_origins == ["https://a.example.com", "https://b.example.com"]
    assert config.radio.default_stream_url == "https://env.example.com/live"


class TestClientConfigValidation:
    def test_volume_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="volume"):
            ClientConfig(volume=1.5).validate()

    def test_non_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="poll_interval_seconds"):
            ClientConfig(poll_interval_seconds=0).validate()

    def test_invalid_client_section_rejected(self) -> None:
        with pytest.raises(ValueError):
            _parse_config({"client": {"volume": 7}})
