"""
Tests for the Shell facade and its session loop.

Covers prompting, diagnostics, loop liveness after failures, and the
start/stop lifecycle of the background loop.
"""

import io
import queue
import threading
from datetime import datetime

import pytest

from cmdshell import CommandSet, PrimitiveType, Shell, ShellConfig
from cmdshell.dispatcher import FailureKind
from cmdshell.exceptions import ConfigError, ShellError
from cmdshell.session import LineReader

POLL = 0.01


class BlockingStream:
    """Input stream whose readline blocks until a line is fed."""

    def __init__(self):
        self.lines = queue.Queue()

    def feed(self, line):
        self.lines.put(line)

    def close(self):
        self.lines.put("")

    def readline(self):
        return self.lines.get()


class FailingStream:
    def readline(self):
        raise OSError("device disconnected")


@pytest.fixture
def calls():
    return []


@pytest.fixture
def commands(calls):
    command_set = CommandSet()

    @command_set.command(parameter_types=[PrimitiveType.INT, PrimitiveType.INT])
    def add(a, b):
        calls.append(("add", a, b))
        return a + b

    @command_set.command()
    def boom():
        raise RuntimeError("kaboom")

    @command_set.command("say", parameter_types=[PrimitiveType.STRING])
    def say(text):
        calls.append(("say", text))

    return command_set


def make_shell(commands, lines="", config=None, **kwargs):
    output = io.StringIO()
    shell = Shell(
        commands,
        config if config is not None else ShellConfig(),
        input_stream=io.StringIO(lines) if isinstance(lines, str) else lines,
        output_stream=output,
        poll_interval=POLL,
        **kwargs,
    )
    return shell, output


# ============================================================================
# FOREGROUND LOOP TESTS
# ============================================================================


class TestRun:
    """Tests for running the loop in the calling thread."""

    def test_processes_lines_until_eof(self, commands, calls):
        shell, output = make_shell(commands, "add 3 4\nsay hello\n")
        shell.run()

        assert calls == [("add", 3, 4), ("say", "hello")]
        assert output.getvalue() == "> > > "

    def test_unknown_command_reported(self, commands):
        shell, output = make_shell(commands, "foo\n")
        shell.run()
        assert output.getvalue() == "> Unsupported Command: foo\n> "

    def test_arity_mismatch_reported_and_handler_not_called(self, commands, calls):
        shell, output = make_shell(commands, "add 3\n")
        shell.run()
        assert calls == []
        assert "Incorrect number of arguments" in output.getvalue()

    def test_coercion_failure_reported(self, commands, calls):
        shell, output = make_shell(commands, "add abc 4\n")
        shell.run()
        assert calls == []
        assert "Invalid argument 0 for 'add'" in output.getvalue()

    def test_handler_error_keeps_loop_alive(self, commands, calls):
        shell, output = make_shell(commands, "boom\nadd 1 2\n")
        shell.run()

        text = output.getvalue()
        assert "Command 'boom' failed: kaboom" in text
        assert calls == [("add", 1, 2)]
        assert text.endswith("> ")
        assert text.count("> ") == 3

    def test_empty_lines_just_prompt_again(self, commands):
        shell, output = make_shell(commands, "\n   \n")
        shell.run()
        assert output.getvalue() == "> > > "

    def test_custom_prompt_and_delimiter(self, commands, calls):
        config = ShellConfig(prompt="dev$", argument_delimiter=":")
        shell, output = make_shell(commands, "add :5 :6\n", config=config)
        shell.run()
        assert calls == [("add", 5, 6)]
        assert output.getvalue() == "dev$ dev$ "

    def test_timestamped_prompt(self, commands):
        fixed = datetime(2024, 1, 2, 3, 4, 5)
        config = ShellConfig(timestamp_enabled=True)
        shell, output = make_shell(commands, "say hi\n", config=config, clock=lambda: fixed)
        shell.run()
        # The first prompt is never timestamped.
        assert output.getvalue() == "> 2024-01-02T03:04:05 > "

    def test_grouped_delimiter_runs_every_line(self, commands, calls):
        config = ShellConfig(argument_delimiter="(-)")
        shell, output = make_shell(commands, "say -a\nsay -b\n", config=config)
        shell.run()
        assert calls == [("say", "-a"), ("say", "-b")]
        assert output.getvalue() == "> > > "

    def test_unexpected_dispatch_error_keeps_loop_alive(self, commands, calls, caplog):
        shell, output = make_shell(commands, "add 1 2\nadd 3 4\n")
        dispatch = shell.dispatcher.dispatch
        failures = []

        def fail_once(line, delimiter):
            if not failures:
                failures.append(line)
                raise ValueError("tokenizer exploded")
            return dispatch(line, delimiter)

        shell.dispatcher.dispatch = fail_once
        shell.run()

        assert failures == ["add 1 2\n"]
        assert calls == [("add", 3, 4)]
        assert output.getvalue() == "> > > "
        assert "Failed to process input line" in caplog.text

    def test_stream_failure_ends_loop_gracefully(self, commands):
        shell, output = make_shell(commands, FailingStream())
        shell.run()
        assert output.getvalue() == "> "

    def test_iterable_input(self, commands, calls):
        shell, _ = make_shell(commands, iter(["add 1 1\n", "add 2 2\n"]))
        shell.run()
        assert calls == [("add", 1, 1), ("add", 2, 2)]

    def test_stop_event_ends_run(self, commands):
        stream = BlockingStream()
        shell, _ = make_shell(commands, stream)
        stop_event = threading.Event()
        runner = threading.Thread(target=shell.run, args=(stop_event,))
        runner.start()
        stop_event.set()
        runner.join(timeout=2)
        assert not runner.is_alive()


# ============================================================================
# DIRECT DISPATCH TESTS
# ============================================================================


class TestDispatch:
    def test_returns_result(self, commands):
        shell, output = make_shell(commands)
        result = shell.dispatch("add 2 2")
        assert result.ok
        assert result.value == 4
        assert output.getvalue() == ""

    def test_failure_written_to_output(self, commands):
        shell, output = make_shell(commands)
        result = shell.dispatch("nope")
        assert result.failure is FailureKind.UNKNOWN_COMMAND
        assert output.getvalue() == "Unsupported Command: nope\n"

    def test_unconfigured_shell_cannot_dispatch(self, commands):
        shell = Shell(commands, input_stream=io.StringIO(), output_stream=io.StringIO())
        with pytest.raises(ShellError):
            shell.dispatch("add 1 2")


# ============================================================================
# LIFECYCLE TESTS
# ============================================================================


class TestLifecycle:
    """Tests for start/stop of the background loop."""

    def test_stop_before_start_is_noop(self, commands):
        shell, _ = make_shell(commands)
        assert shell.stop() is False
        assert shell.stop() is False
        assert not shell.running

    def test_start_without_config_is_noop(self, commands):
        shell = Shell(commands, input_stream=BlockingStream(), output_stream=io.StringIO())
        assert not shell.initialized
        assert shell.start() is False
        assert not shell.running
        shell.run()

    def test_start_processes_lines_in_background(self, commands, calls):
        stream = BlockingStream()
        handled = threading.Event()
        command_set = CommandSet()
        command_set.add(lambda: handled.set(), name="ping")
        shell, _ = make_shell([commands, command_set], stream)

        assert shell.start() is True
        assert shell.running
        stream.feed("add 1 2\n")
        stream.feed("ping\n")
        assert handled.wait(timeout=2)
        assert calls == [("add", 1, 2)]
        assert shell.stop() is True
        assert not shell.running

    def test_second_start_is_noop(self, commands):
        shell, _ = make_shell(commands, BlockingStream())
        try:
            assert shell.start() is True
            assert shell.start() is False
        finally:
            shell.stop()

    def test_stop_interrupts_pending_read(self, commands):
        shell, _ = make_shell(commands, BlockingStream())
        shell.start()
        thread = shell._thread

        assert shell.stop(timeout=2) is True
        assert not thread.is_alive()

    def test_stop_is_idempotent(self, commands):
        shell, _ = make_shell(commands, BlockingStream())
        shell.start()
        assert shell.stop() is True
        assert shell.stop() is False

    def test_restart_keeps_unread_lines(self, commands, calls):
        stream = BlockingStream()
        shell, _ = make_shell(commands, stream)
        shell.start()
        shell.stop()

        stream.feed("add 4 5\n")
        stream.close()
        shell.start()
        assert shell.wait(timeout=2)
        assert calls == [("add", 4, 5)]

    def test_loop_ends_at_eof(self, commands):
        stream = BlockingStream()
        shell, _ = make_shell(commands, stream)
        shell.start()
        stream.close()
        assert shell.wait(timeout=2)
        assert not shell.running
        assert shell.stop() is False

    def test_handler_can_stop_its_own_shell(self, calls):
        stream = BlockingStream()
        holder = {}

        def shutdown():
            calls.append("shutdown")
            holder["shell"].stop()

        shell, _ = make_shell([(None, [], shutdown)], stream)
        holder["shell"] = shell
        shell.start()
        thread = shell._thread
        stream.feed("shutdown\n")
        thread.join(timeout=2)

        assert calls == ["shutdown"]
        assert not thread.is_alive()
        assert not shell.running


class TestConfiguration:
    def test_mapping_config(self, commands):
        shell = Shell(commands, {"prompt": "$", "require_login": True}, input_stream=io.StringIO())
        assert shell.prompt_text() == "$ "
        assert shell.requires_login

    def test_invalid_mapping_config(self, commands):
        with pytest.raises(ConfigError):
            Shell(commands, {"argument_delimiter": ""}, input_stream=io.StringIO())

    def test_registry_is_frozen(self, commands):
        shell, _ = make_shell(commands)
        assert shell.registry.frozen

    def test_unconfigured_shell_logs_warning(self, commands, caplog):
        Shell(commands, input_stream=io.StringIO())
        assert "will not start" in caplog.text


class TestLineReader:
    def test_lines_read_while_stopped_are_queued(self):
        stream = BlockingStream()
        reader = LineReader(stream)
        stopped = threading.Event()
        stopped.set()
        assert reader.read_line(stopped, POLL) is None

        stream.feed("one\n")
        stream.feed("two\n")
        stream.close()
        running = threading.Event()
        assert reader.read_line(running, POLL) == "one\n"
        assert reader.read_line(running, POLL) == "two\n"

    def test_eof_is_sticky(self):
        reader = LineReader(io.StringIO("one\n"))
        event = threading.Event()
        assert reader.read_line(event, POLL) == "one\n"
        with pytest.raises(EOFError):
            reader.read_line(event, POLL)
        with pytest.raises(EOFError):
            reader.read_line(event, POLL)

    def test_returns_none_when_stopped(self):
        reader = LineReader(BlockingStream())
        event = threading.Event()
        event.set()
        assert reader.read_line(event, POLL) is None

    def test_stream_error_raised(self):
        reader = LineReader(FailingStream())
        with pytest.raises(OSError):
            reader.read_line(threading.Event(), POLL)
