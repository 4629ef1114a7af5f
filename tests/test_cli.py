"""Tests for the command-line interface."""

import logging
from unittest.mock import patch

import pytest

from sdkvm import dependencies
from sdkvm.cli.commands import UsageError, parse_sdk_arg
from sdkvm.cli.main import main
from tests.helpers import make_plugin_source, make_sdk_archive, sha256_of


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the CLI at an isolated home and working directory."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    dependencies.reset_services()
    with patch("sdkvm.dependencies.get_home", return_value=home):
        yield home
    dependencies.reset_services()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_sdkvm", False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def plugin_file(tmp_path):
    archive = make_sdk_archive(tmp_path)
    source = tmp_path / "demo.lua"
    source.write_text(make_plugin_source(hooks={
        "Available": 'return { { version = "1.0.0", note = "stable" } }',
        "PreInstall": 'return { version = "1.0.0", path = "%s", sha256 = "%s" }' % (
            archive.as_posix(), sha256_of(archive)),
        "EnvKeys": 'return { { key = "DEMO_HOME", value = ctx.main.path } }',
    }))
    return source


class TestParseSdkArg:
    """Tests for parse_sdk_arg."""

    def test_name_and_version(self):
        assert parse_sdk_arg("NodeJS@20.11.0") == ("nodejs", "20.11.0")

    def test_default_version(self):
        assert parse_sdk_arg("nodejs", default_version="latest") == ("nodejs", "latest")

    def test_missing_version_without_default(self):
        with pytest.raises(UsageError):
            parse_sdk_arg("nodejs")

    def test_too_many_separators(self):
        with pytest.raises(UsageError):
            parse_sdk_arg("nodejs@20@1")

    def test_missing_name(self):
        with pytest.raises(UsageError):
            parse_sdk_arg("@20")


class TestMain:
    """End-to-end command runs."""

    def test_no_command_prints_help(self, home, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out.lower()

    def test_bundled_plugins_are_listed(self, home, capsys):
        assert main(["plugins"]) == 0
        out = capsys.readouterr().out
        assert "nodejs" in out
        assert "bundled" in out

    def test_install_and_use(self, home, plugin_file, capsys):
        assert main(["add", str(plugin_file)]) == 0
        assert main(["search", "demo"]) == 0
        assert "1.0.0" in capsys.readouterr().out

        assert main(["install", "demo@1.0.0"]) == 0
        assert main(["use", "-g", "demo@1.0.0"]) == 0
        out = capsys.readouterr().out
        assert 'export DEMO_HOME="' in out

        assert main(["current", "demo"]) == 0
        assert "demo 1.0.0" in capsys.readouterr().out

        assert main(["env"]) == 0
        assert "export DEMO_HOME=" in capsys.readouterr().out

        assert main(["list"]) == 0
        assert "demo" in capsys.readouterr().out

        assert main(["uninstall", "demo@1.0.0"]) == 0
        assert main(["current", "demo"]) == 0
        assert "(none)" in capsys.readouterr().out

    def test_use_project_writes_tool_versions(self, home, plugin_file, tmp_path):
        main(["add", str(plugin_file)])
        main(["install", "demo"])
        assert main(["use", "--project", "demo@1.0.0"]) == 0
        assert (tmp_path / "work" / ".tool-versions").read_text() == "demo 1.0.0\n"

    def test_usage_error_exit_code(self, home, capsys):
        assert main(["uninstall", "demo"]) == 2
        assert "expected name@version" in capsys.readouterr().err

    def test_sdkvm_error_exit_code(self, home, capsys):
        assert main(["info", "missing"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_log_file_is_written(self, home, plugin_file):
        main(["add", str(plugin_file)])
        assert (home / "log" / "sdkvm.log").is_file()
