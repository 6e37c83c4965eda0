"""
Session loop for the command shell.

Reads lines, dispatches them through the shell and re-prompts. Cancellation is
cooperative: the loop watches a threading.Event between reads and while
waiting for input, so stop() takes effect without another line being typed.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:
    from .shell import Shell

logger = logging.getLogger(__name__)

_EOF = object()

DEFAULT_POLL_INTERVAL = 0.1


class LineReader:
    """
    Pumps lines from an input stream into a queue on a daemon thread.

    Reading from the queue can be abandoned when a stop event is set, which a
    blocking ``readline`` cannot. One reader is kept per shell so that lines
    read while no loop is running are handed to the next one.
    """

    def __init__(self, stream: Any):
        """
        Args:
            stream: Object with ``readline()`` (file, pipe, StringIO) or any
                iterable of lines.
        """
        self.stream = stream
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def _ensure_started(self) -> None:
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._pump, name="cmdshell-reader", daemon=True
                )
                self._thread.start()

    def _lines(self) -> Iterator[str]:
        readline = getattr(self.stream, "readline", None)
        if readline is None:
            return iter(self.stream)
        return iter(readline, "")

    def _pump(self) -> None:
        try:
            for line in self._lines():
                self._queue.put(line)
        except (OSError, ValueError) as e:
            self._queue.put(e)
            return
        self._queue.put(_EOF)

    def read_line(
        self, stop_event: threading.Event, poll_interval: float = DEFAULT_POLL_INTERVAL
    ) -> Optional[str]:
        """
        Wait for the next line.

        Args:
            stop_event: Abandon the wait once this is set
            poll_interval: Seconds between stop_event checks

        Returns:
            The next line, or None if stop_event was set first

        Raises:
            EOFError: If the stream is exhausted
            OSError, ValueError: If reading the stream failed
        """
        self._ensure_started()
        while not stop_event.is_set():
            try:
                item = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            if item is _EOF:
                # Terminal states stay queued for any later loop.
                self._queue.put(item)
                raise EOFError("input stream closed")
            if isinstance(item, Exception):
                self._queue.put(item)
                raise item
            return item
        return None


class SessionLoop:
    """
    Read-dispatch-prompt cycle.

    Prints the prompt, then for each line: dispatch, report, prompt again.
    Ends when the stop event is set, at end of input, or on a stream failure.
    Command failures are reported and never end the loop.
    """

    def __init__(
        self,
        shell: "Shell",
        reader: LineReader,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.shell = shell
        self.reader = reader
        self.poll_interval = poll_interval

    def run(self, stop_event: threading.Event) -> None:
        """Run until stop_event is set or input ends."""
        logger.debug("Shell session loop started")
        self.shell.write(self.shell.prompt_text(timestamped=False))
        while not stop_event.is_set():
            try:
                line = self.reader.read_line(stop_event, self.poll_interval)
            except EOFError:
                logger.info("Input stream closed; ending shell session")
                break
            except (OSError, ValueError) as e:
                logger.error("Input stream failed; ending shell session: %s", e)
                break
            if line is None:
                break

            try:
                self.shell.dispatch(line)
            except Exception:
                logger.exception("Failed to process input line")
            self.shell.write(self.shell.prompt_text())
        logger.debug("Shell session loop stopped")
