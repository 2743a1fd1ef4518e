from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import selectors
import socket
import struct
import threading
import time
from pathlib import Path
from typing import Callable, Optional, TypeVar

from ..core.errors import ChannelIOError
from ..domain.models import Active, Command, Decrease, Idle, Increase, Opcode

logger = logging.getLogger(__name__)

T = TypeVar("T")


# --- Wire codec ---

def encode_command(command: Command) -> bytes:
    if isinstance(command, Idle):
        return bytes([Opcode.IDLE])
    if isinstance(command, Active):
        return bytes([Opcode.ACTIVE])
    if isinstance(command, (Increase, Decrease)):
        if not -128 <= command.amount <= 127:
            raise ValueError(f"Amount {command.amount} does not fit in a signed byte")
        op = Opcode.INCREASE if isinstance(command, Increase) else Opcode.DECREASE
        return struct.pack("Bb", op, command.amount)
    raise TypeError(f"Not a command: {command!r}")


def decode_command(data: bytes) -> Optional[Command]:
    """Decode one message. Unknown opcodes and truncated messages give None."""
    if not data:
        return None
    op = data[0]
    if op == Opcode.IDLE:
        return Idle()
    if op == Opcode.ACTIVE:
        return Active()
    if op in (Opcode.INCREASE, Opcode.DECREASE):
        if len(data) < 2:
            return None
        (amount,) = struct.unpack_from("b", data, 1)
        return Increase(amount) if op == Opcode.INCREASE else Decrease(amount)
    return None


# --- Hand-off to the scheduler ---

class CommandQueue:
    """Capacity-one hand-off from the control thread to the scheduler loop.

    send() blocks the calling thread until the scheduler has room, so a
    second command waits for the first to be drained instead of being
    dropped.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._queue: asyncio.Queue[Command] = asyncio.Queue(maxsize=1)

    def send(self, command: Command, stop: threading.Event, poll_seconds: float = 0.1) -> bool:
        """Called from a foreign thread. Returns False if shutdown won the race."""
        fut = asyncio.run_coroutine_threadsafe(self._queue.put(command), self._loop)
        while True:
            try:
                fut.result(timeout=poll_seconds)
                return True
            except concurrent.futures.TimeoutError:
                if stop.is_set() and fut.cancel():
                    logger.info("Dropping %s, shutting down", command)
                    return False

    async def receive(self) -> Command:
        return await self._queue.get()

    def full(self) -> bool:
        return self._queue.full()


# --- Transient error handling ---

def retry_interrupted(
    op: Callable[[], T],
    what: str,
    retries: Optional[int],
    delay: float,
) -> T:
    """Run ``op``, retrying interrupted calls with a fixed delay.

    ``retries=None`` retries forever. Any other OSError is fatal.
    """
    attempt = 0
    while True:
        try:
            return op()
        except InterruptedError as e:
            attempt += 1
            if retries is not None and attempt > retries:
                logger.error("%s interrupted %d times, giving up", what, attempt)
                raise ChannelIOError(f"{what} interrupted: {e}") from e
            logger.debug("%s interrupted, retrying in %.2fs", what, delay)
            time.sleep(delay)
        except OSError as e:
            logger.error("%s error: %r", what, e)
            raise ChannelIOError(f"{what} failed: {e}") from e


# --- Server ---

class ControlServer:
    """Local Unix-socket listener; one command per connection."""

    def __init__(
        self,
        listener: socket.socket,
        path: Path,
        poll_seconds: float = 0.1,
        retries: int = 3,
        retry_delay: float = 0.1,
        read_timeout: float = 1.0,
    ) -> None:
        self._listener = listener
        self.path = path
        self._poll = poll_seconds
        self._retries = retries
        self._retry_delay = retry_delay
        self._read_timeout = read_timeout

    @classmethod
    def bind(cls, path: Path, **kwargs) -> "ControlServer":
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ChannelIOError(f"Removing stale socket {path} failed: {e}") from e

        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(str(path))
            listener.listen()
            listener.setblocking(False)
        except OSError as e:
            listener.close()
            raise ChannelIOError(f"Binding {path} failed: {e}") from e

        logger.info("Control socket bound at %s", path)
        return cls(listener, path, **kwargs)

    def close(self) -> None:
        try:
            self._listener.close()
        finally:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass

    def serve(self, commands: CommandQueue, stop: threading.Event) -> None:
        """Poll loop; runs on its own thread until ``stop`` is set."""
        sel = selectors.DefaultSelector()
        sel.register(self._listener, selectors.EVENT_READ)
        logger.info("Control server started")
        try:
            while not stop.is_set():
                events = retry_interrupted(
                    lambda: sel.select(timeout=self._poll), "Poll", None, self._retry_delay
                )
                for _key, _mask in events:
                    command = self._handle_connection(stop)
                    if command is None:
                        continue
                    if not commands.send(command, stop, self._poll):
                        break
        finally:
            sel.close()
            self.close()
            logger.info("Control server shutting down")

    def _accept(self) -> Optional[socket.socket]:
        try:
            conn, _addr = self._listener.accept()
        except BlockingIOError:
            # client went away between readiness and accept
            return None
        return conn

    def _recv(self, conn: socket.socket, stop: threading.Event, what: str) -> bytes:
        """Read one byte. Gives b"" on read timeout or once ``stop`` is set."""
        deadline = time.monotonic() + self._read_timeout

        def read_one() -> Optional[bytes]:
            try:
                return conn.recv(1)
            except BlockingIOError:
                return None

        with selectors.DefaultSelector() as sel:
            sel.register(conn, selectors.EVENT_READ)
            while not stop.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug("%s timed out", what)
                    return b""
                timeout = min(self._poll, remaining)
                events = retry_interrupted(
                    lambda: sel.select(timeout=timeout), what, self._retries, self._retry_delay
                )
                if not events:
                    continue
                data = retry_interrupted(read_one, what, self._retries, self._retry_delay)
                if data is not None:
                    return data

        logger.debug("%s abandoned on shutdown", what)
        return b""

    def _handle_connection(self, stop: threading.Event) -> Optional[Command]:
        conn = retry_interrupted(self._accept, "Accept", self._retries, self._retry_delay)
        if conn is None:
            return None

        with conn:
            conn.setblocking(False)
            data = self._recv(conn, stop, "Read")
            if data and data[0] in (Opcode.INCREASE, Opcode.DECREASE):
                data += self._recv(conn, stop, "Read amount")

        logger.debug("Got message: %s", data.hex())
        command = decode_command(data)
        if command is None:
            logger.debug("Ignoring control message %r", data)
        return command
