from __future__ import annotations

import logging
import socket
from pathlib import Path

from .control_channel import encode_command
from ..domain.models import Active, Command, Decrease, Idle, Increase

logger = logging.getLogger(__name__)


class ControlClient:
    """Sends one command to a running daemon.

    The daemon reads a single command per connection, so each instance is
    good for exactly one send().
    """

    def __init__(self, path: Path) -> None:
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            self._sock.connect(str(path))
        except OSError:
            self._sock.close()
            raise

    def __enter__(self) -> "ControlClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._sock.close()

    def send(self, command: Command) -> None:
        self._sock.sendall(encode_command(command))
        logger.info("Sent %s", command)

    def idle(self) -> None:
        self.send(Idle())

    def active(self) -> None:
        self.send(Active())

    def increase(self, amount: int) -> None:
        self.send(Increase(amount))

    def decrease(self, amount: int) -> None:
        self.send(Decrease(amount))
