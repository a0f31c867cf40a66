"""Tests for CLI argument dispatch."""

from unittest.mock import patch

import pytest

from grouptherapy import cli


@pytest.mark.parametrize(
    "argv, target, expected_args",
    [
        (["serve", "--port", "8080"], "run_serve", (None, 8080)),
        (["init-db"], "run_init_db", ()),
        (["create-admin", "dj"], "run_create_admin", ("dj",)),
        (["listen", "--server", "http://radio.test"], "run_listen", ("http://radio.test",)),
    ],
)
def test_subcommands_dispatch(monkeypatch, argv, target, expected_args):
    monkeypatch.setattr("sys.argv", ["grouptherapy", *argv])

    with patch.object(cli, target, return_value=0) as runner:
        with pytest.raises(SystemExit) as exc:
            cli.main()

    assert exc.value.code == 0
    assert runner.call_args.args == expected_args


def test_no_subcommand_prints_help(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["grouptherapy"])

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 1
    assert "serve" in capsys.readouterr().out


def test_listen_rejects_invalid_client_config(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_loguru", lambda config: tmp_path / "log")

    with patch.object(cli, "load_config") as load:
        load.return_value.client.validate.side_effect = ValueError("bad volume")
        assert cli.run_listen() == 1

    assert "bad volume" in capsys.readouterr().err


def test_init_db_writes_default_config_and_schema(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_loguru", lambda config: tmp_path / "log")

    assert cli.run_init_db() == 0

    config_path = tmp_path / "config" / "grouptherapy" / "config.toml"
    assert config_path.exists()
    assert (tmp_path / "data" / "grouptherapy" / "grouptherapy.db").exists()
    assert str(config_path) in capsys.readouterr().out


def test_init_db_keeps_existing_config(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_loguru", lambda config: tmp_path / "log")
    config_path = tmp_path / "config" / "grouptherapy" / "config.toml"
    config_path.parent.mkdir(parents=True)
    config_path.write_text('[server]\nport = 9000\n')

    assert cli.run_init_db() == 0

    assert config_path.read_text() == '[server]\nport = 9000\n'
