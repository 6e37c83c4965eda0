"""
Shell manifest loading.

A manifest is a YAML file with an optional ``shell`` section (ShellConfig
fields) and a ``commands`` list (CommandSpec fields, using ``entrypoint``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .schemas import CommandSpec, ShellConfig


@dataclass(frozen=True)
class ShellManifest:
    config: ShellConfig = field(default_factory=ShellConfig)
    commands: List[CommandSpec] = field(default_factory=list)


def load_shell_manifest(path: Union[str, Path]) -> ShellManifest:
    """
    Load a shell manifest.

    Args:
        path: Path to the YAML manifest

    Returns:
        ShellManifest with validated configuration and command entries

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or contains
            invalid entries
    """
    path = Path(path)
    source = path.name
    if not path.exists():
        raise ConfigError("File not found", source=source)

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", source=source)
    except OSError as e:
        raise ConfigError(str(e), source=source)

    if data is None:
        raise ConfigError("Empty file", source=source)
    if not isinstance(data, dict):
        raise ConfigError("Top level must be a mapping", source=source)

    return parse_shell_manifest(data, source=source)


def parse_shell_manifest(data: Dict[str, Any], source: str = "<manifest>") -> ShellManifest:
    """Validate an already-parsed manifest mapping."""
    shell_data = data.get("shell") or {}
    if not isinstance(shell_data, dict):
        raise ConfigError("'shell' must be a mapping", source=source)
    try:
        config = ShellConfig.model_validate(shell_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid shell section: {e}", source=source)

    commands_data = data.get("commands") or []
    if not isinstance(commands_data, list):
        raise ConfigError("'commands' must be a list", source=source)

    commands = []
    for index, entry in enumerate(commands_data):
        if not isinstance(entry, dict):
            raise ConfigError(f"commands[{index}] must be a mapping", source=source)
        if "handler" in entry:
            raise ConfigError(f"commands[{index}]: use 'entrypoint' in manifests", source=source)
        try:
            commands.append(CommandSpec.model_validate(entry))
        except ValidationError as e:
            raise ConfigError(f"Invalid commands[{index}]: {e}", source=source)

    return ShellManifest(config=config, commands=commands)
