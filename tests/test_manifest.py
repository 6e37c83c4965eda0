"""Tests for YAML shell manifests."""

import io
import tempfile
from pathlib import Path

import pytest

from cmdshell import Shell
from cmdshell.exceptions import ConfigError
from cmdshell.manifest import load_shell_manifest, parse_shell_manifest
from cmdshell.schemas import PrimitiveType
from tests.helpers import shell_commands

VALID_MANIFEST = """
shell:
  prompt: "ops>"
  argument_delimiter: ":"
  timestamp_enabled: false
  require_login: true
commands:
  - name: sum
    entrypoint: "tests.helpers.shell_commands:add"
    parameter_types: [int, int]
    help: Add two numbers
  - entrypoint: "tests.helpers.shell_commands:shout"
    parameter_types: [string]
"""


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_manifest(directory: Path, content: str) -> Path:
    path = directory / "shell.yaml"
    path.write_text(content)
    return path


class TestLoadManifest:
    def test_load_valid_manifest(self, temp_dir):
        manifest = load_shell_manifest(write_manifest(temp_dir, VALID_MANIFEST))

        assert manifest.config.prompt == "ops>"
        assert manifest.config.argument_delimiter == ":"
        assert manifest.config.require_login is True
        assert len(manifest.commands) == 2
        assert manifest.commands[0].help_text == "Add two numbers"
        assert manifest.commands[1].name is None

    def test_missing_shell_section_uses_defaults(self, temp_dir):
        manifest = load_shell_manifest(write_manifest(temp_dir, "commands: []\n"))
        assert manifest.config.prompt == ">"
        assert manifest.config.argument_delimiter == " "
        assert manifest.commands == []

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError, match="File not found"):
            load_shell_manifest(temp_dir / "absent.yaml")

    def test_empty_file(self, temp_dir):
        with pytest.raises(ConfigError, match="Empty file"):
            load_shell_manifest(write_manifest(temp_dir, ""))

    def test_malformed_yaml(self, temp_dir):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_shell_manifest(write_manifest(temp_dir, "invalid: [yaml: content:"))

    def test_error_names_the_file(self, temp_dir):
        with pytest.raises(ConfigError) as exc_info:
            load_shell_manifest(write_manifest(temp_dir, "- just\n- a list\n"))
        assert exc_info.value.source == "shell.yaml"
        assert str(exc_info.value).startswith("Error loading shell.yaml")


class TestParseManifest:
    def test_empty_delimiter_rejected(self):
        with pytest.raises(ConfigError, match="Invalid shell section"):
            parse_shell_manifest({"shell": {"argument_delimiter": ""}})

    def test_unbalanced_delimiter_rejected(self):
        with pytest.raises(ConfigError):
            parse_shell_manifest({"shell": {"argument_delimiter": "("}})

    def test_commands_must_be_list(self):
        with pytest.raises(ConfigError, match="must be a list"):
            parse_shell_manifest({"commands": {"name": "x"}})

    def test_command_needs_entrypoint(self):
        with pytest.raises(ConfigError, match=r"Invalid commands\[0\]"):
            parse_shell_manifest({"commands": [{"name": "x"}]})

    def test_bad_entrypoint_format(self):
        with pytest.raises(ConfigError):
            parse_shell_manifest({"commands": [{"entrypoint": "no_colon"}]})

    def test_handler_key_not_allowed(self):
        with pytest.raises(ConfigError, match="use 'entrypoint'"):
            parse_shell_manifest({"commands": [{"handler": "x", "entrypoint": "a:b"}]})


class TestShellFromYaml:
    def test_builds_working_shell(self, temp_dir):
        shell_commands.CALLS.clear()
        output = io.StringIO()
        shell = Shell.from_yaml(
            write_manifest(temp_dir, VALID_MANIFEST),
            input_stream=io.StringIO("sum :2 :3\nshout :hey\n"),
            output_stream=output,
        )

        assert shell.requires_login
        descriptor = shell.registry.lookup("sum")
        assert descriptor.parameter_types == (PrimitiveType.INT, PrimitiveType.INT)
        assert descriptor.help_text == "Add two numbers"

        shell.run()
        assert shell_commands.CALLS == [("add", 2, 3), ("shout", "hey")]
        assert output.getvalue() == "ops> ops> ops> "

    def test_unknown_parameter_type_reported_at_dispatch(self, temp_dir):
        content = """
commands:
  - name: weird
    entrypoint: "tests.helpers.shell_commands:shout"
    parameter_types: [complex]
"""
        output = io.StringIO()
        shell = Shell.from_yaml(
            write_manifest(temp_dir, content),
            input_stream=io.StringIO("weird x\n"),
            output_stream=output,
        )
        shell.run()
        assert "Unsupported argument type: complex" in output.getvalue()
