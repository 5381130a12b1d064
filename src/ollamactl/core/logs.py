"""
Log tailing and following for ollamactl

`tail` prints the last lines of a log file once. `follow` prints the same
window and then keeps polling the file, printing each line as soon as its
terminating newline has been written. Only complete lines are ever printed.
"""

import os
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, TextIO, Tuple, Union

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 0.1

PathLike = Union[str, Path]


class LogFileError(Exception):
    """A log file could not be opened, read, or copied to the output"""
    pass


class LogFileNotFound(LogFileError):
    """The log file does not exist"""
    pass


def open_log(path: PathLike) -> BinaryIO:
    """Open a log file for binary reading with a descriptive error"""
    try:
        return open(path, "rb")
    except FileNotFoundError as e:
        raise LogFileNotFound(f"failed to open log file {path}: file does not exist") from e
    except OSError as e:
        raise LogFileError(f"failed to open log file {path}: {e.strerror or e}") from e


def split_lines(data: bytes) -> Tuple[List[bytes], bytes]:
    """Complete lines (without newline) and the unterminated remainder"""
    *lines, remainder = data.split(b"\n")
    return lines, remainder


def emit_lines(sink: TextIO, lines: Iterable[bytes]) -> int:
    """Decode and write lines, each with a newline; returns how many"""
    count = 0
    try:
        for line in lines:
            sink.write(line.rstrip(b"\r").decode("utf-8", errors="replace") + "\n")
            count += 1
        if count and hasattr(sink, "flush"):
            sink.flush()
    except (OSError, ValueError) as e:
        raise LogFileError(f"failed to write log output: {e}") from e
    return count


def read_window(handle: BinaryIO, last_n: int) -> Tuple[List[bytes], bytes, int]:
    """Read a file to the end keeping the last `last_n` complete lines

    Returns the kept lines, the unterminated tail fragment and the number of
    bytes consumed. `last_n <= 0` keeps every line.
    """
    window = deque(maxlen=last_n if last_n > 0 else None)
    consumed = 0
    fragment = b""
    for line in handle:
        consumed += len(line)
        if line.endswith(b"\n"):
            window.append(line[:-1])
        else:
            fragment = line
    return list(window), fragment, consumed


def tail(path: PathLike, last_n: int, sink: TextIO) -> int:
    """Write the last `last_n` lines of a file to sink (all when <= 0)

    Returns the byte offset just past the last complete line.
    """
    with open_log(path) as handle:
        try:
            lines, fragment, consumed = read_window(handle, last_n)
        except OSError as e:
            raise LogFileError(f"failed to read log file {path}: {e}") from e
    emit_lines(sink, lines)
    return consumed - len(fragment)


class FollowState(Enum):
    """Lifecycle of a LogFollower"""
    INIT = auto()
    POLLING = auto()
    DONE = auto()


@dataclass
class TailCursor:
    """Where the follower is in the file"""
    offset: int = 0
    size: int = 0
    mtime_ns: int = 0
    pending: bytes = b""


class LogFollower:
    """
    Polls a growing log file and copies its new complete lines to a sink.

    `start()` prints the initial window, `step()` performs one poll and
    `run()` drives both until the stop event is set. A file that shrinks
    below the cursor (truncated or rotated) is read again from the start.
    """

    def __init__(
        self,
        path: PathLike,
        sink: TextIO,
        last_n: int = 0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.path = Path(path)
        self.sink = sink
        self.last_n = last_n
        self.poll_interval = poll_interval
        self.state = FollowState.INIT
        self.cursor = TailCursor()

    def start(self) -> int:
        """Print the initial window and position the cursor at end of file"""
        if self.state is not FollowState.INIT:
            raise RuntimeError(f"follower already started (state {self.state.name})")

        with open_log(self.path) as handle:
            try:
                stat = os.fstat(handle.fileno())
                lines, fragment, consumed = read_window(handle, self.last_n)
            except OSError as e:
                raise LogFileError(f"failed to read log file {self.path}: {e}") from e

        self.cursor = TailCursor(
            offset=consumed,
            size=stat.st_size,
            mtime_ns=stat.st_mtime_ns,
            pending=fragment,
        )
        self.state = FollowState.POLLING
        logger.debug("Following log file", path=str(self.path), offset=consumed)
        return emit_lines(self.sink, lines)

    def _stat(self) -> Optional[os.stat_result]:
        try:
            return os.stat(self.path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LogFileError(f"failed to read log file {self.path}: {e}") from e

    def _reset(self, reason: str):
        logger.warning("Log file shrank, reading from the start", path=str(self.path), reason=reason)
        self.cursor = TailCursor()

    def step(self) -> int:
        """Poll once; returns the number of lines written"""
        if self.state is not FollowState.POLLING:
            return 0

        stat = self._stat()
        if stat is None:
            if self.cursor.offset or self.cursor.pending:
                self._reset("file removed")
            return 0

        if stat.st_size < self.cursor.offset:
            self._reset("file truncated")

        if stat.st_size == self.cursor.size and stat.st_mtime_ns == self.cursor.mtime_ns:
            return 0
        self.cursor.size = stat.st_size
        self.cursor.mtime_ns = stat.st_mtime_ns

        if stat.st_size <= self.cursor.offset:
            return 0

        try:
            with open(self.path, "rb") as handle:
                handle.seek(self.cursor.offset)
                chunk = handle.read()
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise LogFileError(f"failed to read log file {self.path}: {e}") from e

        self.cursor.offset += len(chunk)
        lines, self.cursor.pending = split_lines(self.cursor.pending + chunk)
        return emit_lines(self.sink, lines)

    def stop(self):
        """Finish; an unterminated last line is discarded"""
        if self.cursor.pending:
            logger.debug("Discarding unterminated line", path=str(self.path), size=len(self.cursor.pending))
        self.cursor.pending = b""
        self.state = FollowState.DONE

    def run(self, stop: threading.Event):
        """Follow until `stop` is set; checks it once per poll interval"""
        if stop.is_set():
            self.stop()
            return

        try:
            self.start()
            while not stop.is_set():
                self.step()
                stop.wait(self.poll_interval)
        finally:
            self.stop()


def follow(
    path: PathLike,
    last_n: int,
    sink: TextIO,
    stop: Optional[threading.Event] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
):
    """Print the last `last_n` lines, then new lines until `stop` is set"""
    LogFollower(path, sink, last_n=last_n, poll_interval=poll_interval).run(stop or threading.Event())
