"""cmdshell package root.

An embeddable interactive command shell. Hosts declare commands with typed
parameters, and the shell reads lines, parses them, converts the arguments
and invokes the matching handler.
"""

__version__ = "0.1.0"

from .coercion import coerce
from .dispatcher import DispatchResult, Dispatcher, FailureKind
from .exceptions import (
    CoercionError,
    ConfigError,
    RegistryFrozenError,
    ShellError,
    UnsupportedTypeError,
)
from .manifest import ShellManifest, load_shell_manifest
from .registry import CommandDescriptor, CommandRegistry, CommandSet, build_registry
from .schemas import CommandSpec, PrimitiveType, ShellConfig
from .shell import Shell
from .tokenizer import EMPTY_INPUT, ParsedInput, tokenize

__all__ = [
    "__version__",
    "Shell",
    "ShellConfig",
    "ShellManifest",
    "load_shell_manifest",
    "CommandSpec",
    "CommandSet",
    "CommandDescriptor",
    "CommandRegistry",
    "build_registry",
    "PrimitiveType",
    "Dispatcher",
    "DispatchResult",
    "FailureKind",
    "ParsedInput",
    "EMPTY_INPUT",
    "tokenize",
    "coerce",
    "ShellError",
    "ConfigError",
    "RegistryFrozenError",
    "CoercionError",
    "UnsupportedTypeError",
]
