"""
Command dispatcher.

Routes one input line to its handler:

    raw line --tokenize--> ParsedInput
             --lookup----> CommandDescriptor       (unknown_command)
             --arity-----> len(args) == arity?     (arity_mismatch)
             --coerce----> typed arguments         (argument_coercion / unsupported_type)
             --invoke----> handler(*typed_args)    (handler_error)

Every argument is converted before the handler is called, so a handler only
ever sees a complete, fully-typed argument list. All failures come back as a
DispatchResult; none of them propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .coercion import coerce
from .exceptions import CoercionError, UnsupportedTypeError, type_label
from .registry import CommandDescriptor, CommandRegistry
from .tokenizer import ParsedInput, tokenize

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    UNKNOWN_COMMAND = "unknown_command"
    ARITY_MISMATCH = "arity_mismatch"
    ARGUMENT_COERCION = "argument_coercion"
    UNSUPPORTED_TYPE = "unsupported_type"
    HANDLER_ERROR = "handler_error"


@dataclass
class DispatchResult:
    """Outcome of dispatching one line.

    Attributes:
        command: Command token from the line ("" for empty input).
        arguments: Raw argument tokens.
        failure: FailureKind, or None on success.
        message: Operator-facing diagnostic ("" on success).
        argument_index: Position of the argument that failed to convert.
        expected_type: Type the failing argument was converted to.
        error: Exception raised by the coercer or the handler.
        value: Handler return value on success.
    """

    command: str
    arguments: Tuple[str, ...] = ()
    failure: Optional[FailureKind] = None
    message: str = ""
    argument_index: Optional[int] = None
    expected_type: Any = None
    error: Optional[BaseException] = field(default=None, repr=False)
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "command": self.command,
            "arguments": list(self.arguments),
            "ok": self.ok,
            "failure": self.failure.value if self.failure else None,
            "message": self.message,
            "argument_index": self.argument_index,
            "expected_type": type_label(self.expected_type) if self.expected_type is not None else None,
            "error": str(self.error) if self.error is not None else None,
        }


class Dispatcher:
    """Resolves parsed lines against a registry and invokes handlers.

    The registry is only read. Dispatch is synchronous: a slow handler holds
    up the caller until it returns.
    """

    def __init__(self, registry: CommandRegistry):
        self.registry = registry

    def dispatch(self, line: str, delimiter: str = " ") -> DispatchResult:
        """
        Tokenize, resolve, coerce and invoke one line.

        Args:
            line: Raw input line
            delimiter: Argument delimiter for the tokenizer

        Returns:
            DispatchResult describing success or the first failure
        """
        parsed = tokenize(line, delimiter)
        if parsed.is_empty:
            return DispatchResult(
                command="",
                failure=FailureKind.EMPTY_INPUT,
                message="No command entered.",
            )
        return self.dispatch_parsed(parsed)

    def dispatch_parsed(self, parsed: ParsedInput) -> DispatchResult:
        """Dispatch an already tokenized line."""
        descriptor = self.registry.lookup(parsed.command)
        if descriptor is None:
            return DispatchResult(
                command=parsed.command,
                arguments=parsed.arguments,
                failure=FailureKind.UNKNOWN_COMMAND,
                message=f"Unsupported Command: {parsed.command}",
            )

        if len(parsed.arguments) != descriptor.arity:
            return DispatchResult(
                command=parsed.command,
                arguments=parsed.arguments,
                failure=FailureKind.ARITY_MISMATCH,
                message=(
                    f"Incorrect number of arguments for '{descriptor.name}': "
                    f"expected {descriptor.arity}, got {len(parsed.arguments)}."
                ),
            )

        converted, failure = self._coerce_arguments(descriptor, parsed)
        if failure is not None:
            return failure

        return self._invoke(descriptor, parsed, converted)

    def _coerce_arguments(
        self, descriptor: CommandDescriptor, parsed: ParsedInput
    ) -> Tuple[List[Any], Optional[DispatchResult]]:
        converted: List[Any] = []
        for index, (target, token) in enumerate(zip(descriptor.parameter_types, parsed.arguments)):
            try:
                converted.append(coerce(target, token))
            except UnsupportedTypeError as e:
                return converted, DispatchResult(
                    command=parsed.command,
                    arguments=parsed.arguments,
                    failure=FailureKind.UNSUPPORTED_TYPE,
                    message=f"Unsupported argument type: {type_label(target)} (argument {index}).",
                    argument_index=index,
                    expected_type=target,
                    error=e,
                )
            except CoercionError as e:
                return converted, DispatchResult(
                    command=parsed.command,
                    arguments=parsed.arguments,
                    failure=FailureKind.ARGUMENT_COERCION,
                    message=f"Invalid argument {index} for '{descriptor.name}': {e}",
                    argument_index=index,
                    expected_type=target,
                    error=e,
                )
        return converted, None

    def _invoke(
        self, descriptor: CommandDescriptor, parsed: ParsedInput, arguments: List[Any]
    ) -> DispatchResult:
        try:
            value = descriptor.handler(*arguments)
        except Exception as e:
            logger.exception("Command '%s' raised an error", descriptor.name)
            return DispatchResult(
                command=parsed.command,
                arguments=parsed.arguments,
                failure=FailureKind.HANDLER_ERROR,
                message=f"Command '{descriptor.name}' failed: {e}",
                error=e,
            )
        return DispatchResult(command=parsed.command, arguments=parsed.arguments, value=value)
