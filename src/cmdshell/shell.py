"""
Embeddable interactive command shell.

Wires the registry, dispatcher and session loop together behind a small
start/stop surface:

    commands = CommandSet()

    @commands.command(parameter_types=[PrimitiveType.INT, PrimitiveType.INT])
    def add(a, b):
        print(a + b)

    shell = Shell(commands, ShellConfig(prompt="dev>"))
    shell.start()      # background loop on stdin/stdout
    ...
    shell.stop()
"""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from .dispatcher import DispatchResult, Dispatcher, FailureKind
from .exceptions import ConfigError, ShellError
from .manifest import load_shell_manifest
from .registry import CommandRegistry, CommandSource, build_registry
from .schemas import ShellConfig
from .session import DEFAULT_POLL_INTERVAL, LineReader, SessionLoop

logger = logging.getLogger(__name__)


class Shell:
    """
    Command shell bound to an input and an output stream.

    A shell built without a configuration is inert: ``start()`` and ``run()``
    do nothing. The registry is frozen on construction and only read
    afterwards.
    """

    def __init__(
        self,
        commands: Union[CommandRegistry, Iterable[CommandSource]] = (),
        config: Union[ShellConfig, Mapping[str, Any], None] = None,
        input_stream: Any = None,
        output_stream: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize a shell.

        Args:
            commands: A CommandRegistry, or a declarative command set accepted
                by build_registry (CommandSet, CommandSpecs, tuples, dicts)
            config: ShellConfig or a mapping of its fields; None leaves the
                shell unconfigured
            input_stream: Line source (defaults to sys.stdin)
            output_stream: Prompt and diagnostic sink (defaults to sys.stdout)
            clock: Returns the current time for timestamped prompts
            poll_interval: Seconds between stop checks while waiting for input

        Raises:
            ConfigError: If the configuration or a command entry is invalid
        """
        self.config = _load_config(config)
        if isinstance(commands, CommandRegistry):
            self.registry = commands.freeze()
        else:
            self.registry = build_registry(commands)
        self.dispatcher = Dispatcher(self.registry)

        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.output_stream = output_stream if output_stream is not None else sys.stdout
        self._clock = clock or datetime.now
        self._poll_interval = poll_interval
        self._reader = LineReader(self.input_stream)

        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

        if self.config is None:
            logger.warning("Shell has no configuration; it will not start.")

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **kwargs: Any) -> "Shell":
        """Build a shell from a YAML manifest (see load_shell_manifest)."""
        manifest = load_shell_manifest(path)
        return cls(manifest.commands, manifest.config, **kwargs)

    @property
    def initialized(self) -> bool:
        return self.config is not None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def requires_login(self) -> bool:
        """Whether the configuration asks for a login (not enforced here)."""
        return bool(self.config and self.config.require_login)

    def prompt_text(self, timestamped: bool = True) -> str:
        """
        Prompt followed by a space, optionally prefixed by the local time.

        Args:
            timestamped: Apply the timestamp prefix when the configuration
                enables it. The loop's first prompt passes False.
        """
        config = self._require_config()
        if timestamped and config.timestamp_enabled:
            return f"{self._clock().isoformat()} {config.prompt} "
        return f"{config.prompt} "

    def write(self, text: str) -> None:
        self.output_stream.write(text)
        self.output_stream.flush()

    def dispatch(self, line: str) -> DispatchResult:
        """
        Dispatch one line and report any failure on the output stream.

        Empty lines are not reported; the shell simply prompts again.

        Raises:
            ShellError: If the shell has no configuration
        """
        config = self._require_config()
        result = self.dispatcher.dispatch(line, config.argument_delimiter)
        if not result.ok and result.failure is not FailureKind.EMPTY_INPUT:
            self.write(result.message + "\n")
        return result

    def start(self) -> bool:
        """
        Start the session loop on a background daemon thread.

        Returns:
            True if a loop was started; False if the shell is unconfigured or
            already running
        """
        if not self.initialized:
            return False
        with self._lock:
            if self.running:
                return False
            stop_event = threading.Event()
            loop = SessionLoop(self, self._reader, self._poll_interval)
            thread = threading.Thread(
                target=loop.run, args=(stop_event,), name="cmdshell-loop", daemon=True
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("Shell started")
        return True

    def stop(self, timeout: Optional[float] = 1.0) -> bool:
        """
        Signal the session loop to exit and wait for it.

        Safe to call repeatedly, before start(), from other threads, and from
        a command handler running on the loop itself.

        The input reader thread is not stopped: it keeps queueing lines from
        the input stream, unbounded, until the next start() consumes them or
        the stream ends.

        Args:
            timeout: Seconds to wait for the loop thread (None waits forever)

        Returns:
            True if a running loop was stopped
        """
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            if thread is None or stop_event is None:
                return False
            self._thread = None
            self._stop_event = None

        was_running = thread.is_alive()
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
        if was_running:
            logger.info("Shell stopped")
        return was_running

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the background loop ends.

        Returns:
            True if no loop is running when the wait ends
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.running

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Run the session loop in the calling thread.

        Returns at end of input, on a stream failure, or once ``stop_event``
        is set. Does nothing when unconfigured or already running in the
        background.
        """
        if not self.initialized:
            return
        if self.running:
            logger.warning("Shell is already running in the background")
            return
        SessionLoop(self, self._reader, self._poll_interval).run(stop_event or threading.Event())

    def _require_config(self) -> ShellConfig:
        if self.config is None:
            raise ShellError("Shell has no configuration")
        return self.config


def _load_config(config: Union[ShellConfig, Mapping[str, Any], None]) -> Optional[ShellConfig]:
    if config is None or isinstance(config, ShellConfig):
        return config
    try:
        return ShellConfig.model_validate(dict(config))
    except ValidationError as e:
        raise ConfigError(f"Invalid shell configuration: {e}")
