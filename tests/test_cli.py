import json
from pathlib import Path

import pytest

import cli.main as cli_main
from mcs_client.auth import Credentials
from mcs_client.errors import AuthError
from utils.config import ConfigError, ExporterConfig


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)


@pytest.fixture
def fake_credentials(monkeypatch):
    monkeypatch.setenv("MCS_LOGIN", "user@example.com")
    monkeypatch.setenv("MCS_PASSWORD", "hunter2")


def test_load_config_yaml(tmp_path):
    path = tmp_path / "exporter.yml"
    path.write_text("interval: 60\nretry_limit: 3\n", encoding="utf-8")

    assert cli_main.load_config(path) == {"interval": 60, "retry_limit": 3}


def test_load_config_empty_yaml_is_empty_mapping(tmp_path):
    path = tmp_path / "exporter.yaml"
    path.write_text("", encoding="utf-8")

    assert cli_main.load_config(path) == {}


def test_load_config_json(tmp_path):
    path = tmp_path / "exporter.json"
    path.write_text(json.dumps({"listen_address": ":9700"}), encoding="utf-8")

    assert cli_main.load_config(path) == {"listen_address": ":9700"}


def test_load_config_toml(tmp_path):
    path = tmp_path / "exporter.toml"
    path.write_text('listen_address = "127.0.0.1:9700"\ninterval = 30\n', encoding="utf-8")

    assert cli_main.load_config(path) == {
        "listen_address": "127.0.0.1:9700",
        "interval": 30,
    }


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        cli_main.load_config(tmp_path / "missing.yml")


def test_load_config_unsupported_format(tmp_path):
    path = tmp_path / "exporter.ini"
    path.write_text("[exporter]\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unsupported config format"):
        cli_main.load_config(path)


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "exporter.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid JSON"):
        cli_main.load_config(path)


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "exporter.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigError):
        cli_main.load_config(path)


def test_merge_cli_overrides_prefers_flags():
    args = cli_main.build_parser().parse_args(
        ["serve", "--interval", "15", "--retry-limit", "4"]
    )

    merged = cli_main.merge_cli_overrides({"interval": 60, "retry_interval": 9}, args)

    assert merged == {"interval": 15.0, "retry_interval": 9, "retry_limit": 4}


def test_serve_passes_merged_config_and_credentials(tmp_path, monkeypatch, fake_credentials):
    path = tmp_path / "exporter.yml"
    path.write_text("listen_address: 127.0.0.1:9700\ninterval: 60\n", encoding="utf-8")
    captured = {}

    def fake_run_exporter(config, credentials):
        captured["config"] = config
        captured["credentials"] = credentials

    monkeypatch.setattr(cli_main, "run_exporter", fake_run_exporter)

    exit_code = cli_main.main(
        ["serve", "--config", str(path), "--retry-interval", "3", "--reauth-on-unauthorized"]
    )

    assert exit_code == 0
    config = captured["config"]
    assert config.listen_address == "127.0.0.1:9700"
    assert config.interval == 60.0
    assert config.retry_interval == 3.0
    assert config.reauth_on_unauthorized is True
    assert config.require_initial_auth is False
    assert captured["credentials"] == Credentials("user@example.com", "hunter2")


def test_serve_without_credentials_exits_with_config_error(monkeypatch):
    monkeypatch.delenv("MCS_LOGIN", raising=False)
    monkeypatch.delenv("MCS_PASSWORD", raising=False)
    monkeypatch.setattr(
        "utils.credentials.keyring.get_password", lambda service, username: None
    )

    def fail_run_exporter(config, credentials):
        raise AssertionError("exporter must not start")

    monkeypatch.setattr(cli_main, "run_exporter", fail_run_exporter)

    assert cli_main.main(["serve"]) == 2


def test_serve_with_invalid_config_exits_with_config_error(monkeypatch, fake_credentials):
    monkeypatch.setattr(cli_main, "run_exporter", lambda config, credentials: None)

    assert cli_main.main(["serve", "--retry-limit", "0"]) == 2


def test_serve_returns_two_when_initial_auth_fails(monkeypatch, fake_credentials):
    def failing_run_exporter(config, credentials):
        assert config.require_initial_auth is True
        raise AuthError("auth response status code is not 200, but - 401")

    monkeypatch.setattr(cli_main, "run_exporter", failing_run_exporter)

    assert cli_main.main(["serve", "--require-initial-auth"]) == 2


def test_store_credentials_uses_env_and_keyring(monkeypatch, capsys):
    stored = []
    monkeypatch.setenv("MCS_LOGIN", "user@example.com")
    monkeypatch.setenv("MCS_PASSWORD", "hunter2")
    monkeypatch.setattr(
        cli_main,
        "store_credentials",
        lambda service, login, password: stored.append((service, login, password)),
    )

    exit_code = cli_main.main(["store-credentials", "--service-name", "custom"])

    assert exit_code == 0
    assert stored == [("custom", "user@example.com", "hunter2")]
    assert "custom" in capsys.readouterr().out


def test_store_credentials_prompts_when_env_missing(monkeypatch):
    stored = []
    monkeypatch.delenv("MCS_LOGIN", raising=False)
    monkeypatch.delenv("MCS_PASSWORD", raising=False)
    monkeypatch.setattr("builtins.input", lambda prompt: " typed@example.com ")
    monkeypatch.setattr(cli_main.getpass, "getpass", lambda prompt: "typed-pw")
    monkeypatch.setattr(
        cli_main,
        "store_credentials",
        lambda service, login, password: stored.append((service, login, password)),
    )

    assert cli_main.main(["store-credentials"]) == 0
    assert stored == [("mcs-exporter", "typed@example.com", "typed-pw")]


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["--version"])

    assert excinfo.value.code == 0
    assert "mcs-exporter" in capsys.readouterr().out


def test_sample_config_is_valid():
    sample = Path(__file__).resolve().parents[1] / "examples" / "exporter.yml"

    config = ExporterConfig.from_mapping(cli_main.load_config(sample))

    assert config.listen_address == "0.0.0.0:9601"
    assert config.retry_limit == 10
