from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union


class Opcode(IntEnum):
    IDLE = 0
    ACTIVE = 1
    INCREASE = 2
    DECREASE = 3


@dataclass(frozen=True)
class Idle:
    """Enter dimmed mode: ambient percentage is quartered."""


@dataclass(frozen=True)
class Active:
    """Leave dimmed mode."""


@dataclass(frozen=True)
class Increase:
    amount: int


@dataclass(frozen=True)
class Decrease:
    amount: int


Command = Union[Idle, Active, Increase, Decrease]


@dataclass(frozen=True)
class ControlState:
    idle: bool = False
    screen_offset: int = 0


class SchedulerState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
