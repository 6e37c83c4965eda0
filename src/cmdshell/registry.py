"""
Command registry.

Maps command names to CommandDescriptors. A registry is populated once during
setup, frozen, and then only read by the dispatcher.
"""

from __future__ import annotations

import importlib
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from .exceptions import ConfigError, RegistryFrozenError
from .schemas import CommandSpec, PrimitiveType

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s")

Handler = Callable[..., Any]


@dataclass(frozen=True)
class CommandDescriptor:
    """A registered command: its name, parameter types and handler."""

    name: str
    parameter_types: Tuple[Any, ...]
    handler: Handler
    help_text: str = ""

    @property
    def arity(self) -> int:
        return len(self.parameter_types)


class CommandRegistry:
    """
    Registry for shell commands.

    Later registrations under the same name replace earlier ones.
    """

    def __init__(self):
        """Initialize an empty, writable registry."""
        self._commands: Dict[str, CommandDescriptor] = {}
        self._frozen = False

    def register(
        self,
        name: Optional[str],
        parameter_types: Sequence[Any],
        handler: Handler,
        help_text: Optional[str] = None,
    ) -> CommandDescriptor:
        """
        Register a command, replacing any existing entry with the same name.

        Args:
            name: Command name. Embedded whitespace is removed. When empty or
                None, the handler's ``__name__`` is used as-is. A name made
                only of whitespace is rejected rather than registered as "".
            parameter_types: Ordered parameter types. Each is normalized with
                PrimitiveType.resolve; unrecognized types are kept so that
                dispatch can report them.
            handler: Callable invoked with the coerced arguments.
            help_text: Optional help text (defaults to the handler docstring).

        Returns:
            The stored CommandDescriptor.

        Raises:
            RegistryFrozenError: If the registry has been frozen.
            ConfigError: If no usable name can be derived.
        """
        if not callable(handler):
            raise ConfigError(f"Handler for command '{name}' is not callable")

        key = derive_command_name(name, handler)
        if self._frozen:
            raise RegistryFrozenError(
                message=f"Cannot register '{key}': registry is frozen",
                command_name=key,
            )

        types = []
        for position, declared in enumerate(parameter_types):
            resolved = PrimitiveType.resolve(declared)
            if resolved is None:
                logger.warning(
                    "Command '%s' parameter %d has unsupported type %r", key, position, declared
                )
                types.append(declared)
            else:
                types.append(resolved)

        if help_text is None:
            help_text = (getattr(handler, "__doc__", None) or "").strip()

        descriptor = CommandDescriptor(
            name=key,
            parameter_types=tuple(types),
            handler=handler,
            help_text=help_text,
        )
        if key in self._commands:
            logger.debug("Command '%s' replaced by a later registration", key)
        self._commands[key] = descriptor
        return descriptor

    def lookup(self, name: str) -> Optional[CommandDescriptor]:
        """Return the descriptor registered under ``name`` (case-sensitive)."""
        return self._commands.get(name)

    def freeze(self) -> "CommandRegistry":
        """Make the registry read-only. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return sorted(self._commands)

    def list_commands(self) -> List[Tuple[str, str]]:
        """
        List all registered commands.

        Returns:
            List of (name, help_text) tuples sorted by name
        """
        return [(name, self._commands[name].help_text) for name in self.names()]

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


def derive_command_name(name: Optional[str], handler: Handler) -> str:
    """Registry key for a command.

    Explicit names lose all whitespace; otherwise the handler's own
    ``__name__`` is used unchanged.
    """
    if name:
        key = _WHITESPACE_RE.sub("", name)
    else:
        key = getattr(handler, "__name__", "")
    if not key:
        raise ConfigError(f"Cannot derive a command name for handler {handler!r}")
    return key


class CommandSet:
    """
    Declarative collection of commands.

    Stands in for annotated handler methods: the host declares its commands
    here (directly or with the ``command`` decorator) and hands the set to
    ``build_registry`` or ``Shell``. Nothing is registered globally.

    Usage:
        commands = CommandSet()

        @commands.command(parameter_types=[PrimitiveType.INT, PrimitiveType.INT])
        def add(a, b):
            print(a + b)
    """

    def __init__(self):
        self._specs: List[CommandSpec] = []

    def add(
        self,
        handler: Handler,
        parameter_types: Sequence[Any] = (),
        name: Optional[str] = None,
        help_text: Optional[str] = None,
    ) -> Handler:
        self._specs.append(
            CommandSpec(
                name=name,
                parameter_types=list(parameter_types),
                handler=handler,
                help_text=help_text,
            )
        )
        return handler

    def command(
        self,
        name: Optional[str] = None,
        parameter_types: Sequence[Any] = (),
        help_text: Optional[str] = None,
    ):
        """
        Decorator for declaring a command.

        Args:
            name: Optional command name (defaults to the function name)
            parameter_types: Ordered parameter types
            help_text: Optional help text

        Returns:
            Decorator function
        """

        def decorator(func: Handler) -> Handler:
            return self.add(func, parameter_types, name=name, help_text=help_text)

        return decorator

    def __iter__(self):
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)


CommandSource = Union[CommandSpec, CommandSet, Dict[str, Any], Tuple[Any, ...]]


def build_registry(commands: Iterable[CommandSource]) -> CommandRegistry:
    """
    Build a frozen registry from a declarative command set.

    Entries may be CommandSpecs, CommandSets, mappings accepted by CommandSpec,
    or ``(name, parameter_types, handler)`` tuples. Entries are registered in
    order, so a later entry wins over an earlier one with the same name.

    Raises:
        ConfigError: If an entry is invalid or its entrypoint cannot be imported.
    """
    registry = CommandRegistry()
    for spec in _iter_specs(commands):
        handler = spec.handler if spec.handler is not None else resolve_entrypoint(spec.entrypoint)
        registry.register(spec.name, spec.parameter_types, handler, help_text=spec.help_text)
    return registry.freeze()


def _iter_specs(commands: Iterable[CommandSource]) -> Iterable[CommandSpec]:
    for entry in commands:
        if isinstance(entry, CommandSet):
            yield from entry
        elif isinstance(entry, CommandSpec):
            yield entry
        elif isinstance(entry, tuple):
            if len(entry) != 3:
                raise ConfigError(f"Command tuple must be (name, parameter_types, handler), got {entry!r}")
            name, parameter_types, handler = entry
            yield _validate_spec({"name": name, "parameter_types": list(parameter_types), "handler": handler})
        elif isinstance(entry, dict):
            yield _validate_spec(entry)
        else:
            raise ConfigError(f"Unsupported command entry: {entry!r}")


def _validate_spec(data: Dict[str, Any]) -> CommandSpec:
    try:
        return CommandSpec.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid command entry: {e}")


def resolve_entrypoint(entrypoint: str) -> Handler:
    """
    Import the callable named by ``"module.path:attribute"``.

    Dotted attributes (``"pkg.mod:Class.method"``) are followed.

    Raises:
        ConfigError: If the module or attribute cannot be found or is not callable.
    """
    module_path, _, attr_path = entrypoint.partition(":")
    if not module_path or not attr_path:
        raise ConfigError(f"Invalid entrypoint format: {entrypoint}")
    try:
        target: Any = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import '{module_path}' for entrypoint {entrypoint}: {e}")

    for part in attr_path.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise ConfigError(f"Function not found: {entrypoint}")
    if not callable(target):
        raise ConfigError(f"Entrypoint is not callable: {entrypoint}")
    return target
