"""
Tests for the Skadi CLI.
"""

import json

import pytest
from click.testing import CliRunner

from skadi import __version__
from skadi.cli.common import EXIT_INVALID_ARGS, EXIT_NOT_FOUND, EXIT_PLUGIN_ERROR, parse_args
from skadi.cli.main import cli
from skadi.core.config import SkadiConfig
from skadi.core.errors import InvalidArgumentError


@pytest.fixture
def config(plugins_dir, tmp_path) -> SkadiConfig:
    return SkadiConfig(plugins_dir=plugins_dir, scripts_dir=tmp_path)


def run(args, config=None):
    obj = {"config": config} if config is not None else {}
    return CliRunner().invoke(cli, ["--quiet", *args], obj=obj)


def records(result):
    return [json.loads(line) for line in result.stdout.splitlines() if line.strip()]


class TestPluginsCommands:
    """Tests for the plugins command group."""

    def test_list(self, config):
        result = run(["plugins", "list"], config)

        assert result.exit_code == 0
        assert records(result) == [
            {"name": "broken", "filename": "broken.py"},
            {"name": "clock", "filename": "clock.py"},
            {"name": "typed", "filename": "typed.pyt"},
        ]

    def test_list_missing_directory(self, tmp_path):
        result = run(["plugins", "list"], SkadiConfig(plugins_dir=tmp_path / "nope"))

        assert result.exit_code == EXIT_NOT_FOUND
        assert records(result)[0]["code"] == "DISCOVERY_FAILED"

    def test_check_reports_failures(self, config):
        result = run(["plugins", "check"], config)

        assert result.exit_code == EXIT_PLUGIN_ERROR
        status = {r["name"]: r for r in records(result)}
        assert status["broken"]["stage"] == "compile"
        assert status["clock"]["ok"] is True
        assert status["typed"]["ok"] is True

    def test_check_human_table(self, config):
        result = run(["--format", "human", "plugins", "check"], config)

        assert "Plugin status" in result.stdout
        assert "Total: 3 records" in result.stdout

    def test_render(self, config):
        result = run(["plugins", "render", "clock"], config)

        assert result.exit_code == 0
        rendered = records(result)[0]
        assert rendered["ok"] is True
        assert rendered["markup"] == '<div class="greeting"><span>hello</span></div>'

    def test_render_broken_plugin(self, config):
        result = run(["plugins", "render", "broken"], config)

        assert result.exit_code == EXIT_PLUGIN_ERROR
        assert "Compile Error: broken.py" in records(result)[0]["markup"]

    def test_render_human_prints_markup(self, config):
        result = run(["--format", "human", "plugins", "render", "typed"], config)

        assert result.stdout.strip() == "<p>typed</p>"

    def test_render_unknown_plugin(self, config):
        result = run(["plugins", "render", "nope"], config)

        assert result.exit_code == EXIT_NOT_FOUND
        assert records(result)[0]["code"] == "PLUGIN_NOT_FOUND"


class TestInvokeCommand:
    """Tests for invoke."""

    def test_local_invoke(self, config):
        result = run(["invoke", "get_plugin_files", "--local"], config)

        assert result.exit_code == 0
        assert records(result)[0] == {
            "command": "get_plugin_files",
            "result": ["broken.py", "clock.py", "typed.pyt"],
        }

    def test_local_invoke_with_args(self, config):
        result = run(["invoke", "read_plugin_file", "--local", "--arg", "filename=clock.py"], config)

        assert "def Component" in records(result)[0]["result"]

    def test_bad_argument(self, config):
        result = run(["invoke", "get_plugin_files", "--local", "--arg", "oops"], config)

        assert result.exit_code == EXIT_INVALID_ARGS
        assert records(result)[0]["code"] == "INVALID_ARGUMENT"

    def test_unknown_command(self, config):
        result = run(["invoke", "nope", "--local"], config)

        assert result.exit_code == 1
        assert records(result)[0]["code"] == "HOST_COMMAND_ERROR"


class TestGlobalOptions:
    """Tests for global options."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert __version__ in result.output

    def test_missing_config_file(self, tmp_path):
        result = run(["--config", str(tmp_path / "missing.yaml"), "plugins", "list"])

        assert result.exit_code == EXIT_INVALID_ARGS
        assert records(result)[0]["code"] == "CONFIG_ERROR"

    def test_config_file(self, plugins_dir, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"plugins_dir: {plugins_dir}\n")

        result = run(["--config", str(path), "plugins", "list"])

        assert result.exit_code == 0
        assert len(records(result)) == 3


class TestParseArgs:
    """Tests for key=value argument parsing."""

    def test_json_and_string_values(self):
        assert parse_args(("n=3", "flag=true", "name=clock", "raw=a=b")) == {
            "n": 3,
            "flag": True,
            "name": "clock",
            "raw": "a=b",
        }

    def test_missing_separator(self):
        with pytest.raises(InvalidArgumentError):
            parse_args(("novalue",))
