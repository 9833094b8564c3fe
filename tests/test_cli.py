# tests/test_cli.py

import json

import pytest
from click.testing import CliRunner

from confbind.cli import cli


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "application.yaml").write_text(
        "HTTP:\n  Port: 8080\ndb:\n  url: postgres://from-config\n"
    )
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def test_dump(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "dump"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"http": {"port": 8080}, "db": {"url": "postgres://from-config"}}


def test_get_document_value(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "get", "http.port"])
    assert result.exit_code == 0
    assert result.output.strip() == "8080"


def test_get_with_automatic_env(runner, config_dir):
    result = runner.invoke(
        cli,
        ["-p", str(config_dir), "--auto-env", "--replace", ".=_", "get", "http.port"],
        env={"HTTP_PORT": "9091"},
    )
    assert result.exit_code == 0
    assert json.loads(result.output) == "9091"


def test_get_with_binding(runner, config_dir):
    result = runner.invoke(
        cli,
        ["-p", str(config_dir), "--bind", "db.url=DATABASE_URL", "get", "db.url"],
        env={"DATABASE_URL": "postgres://from-env"},
    )
    assert result.exit_code == 0
    assert json.loads(result.output) == "postgres://from-env"


def test_get_missing_key(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "get", "nope"])
    assert result.exit_code == 1


def test_env_name(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "--auto-env", "--replace", ".=_", "env-name", "http.port"])
    assert result.exit_code == 0
    assert result.output.strip() == "HTTP_PORT"


def test_env_name_without_mapping(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "env-name", "http.port"])
    assert result.exit_code == 1


def test_missing_file(runner, tmp_path):
    result = runner.invoke(cli, ["-p", str(tmp_path), "dump"])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_bad_replace_pair(runner, config_dir):
    result = runner.invoke(cli, ["-p", str(config_dir), "--replace", "nodelimiter", "dump"])
    assert result.exit_code == 2
