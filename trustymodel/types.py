"""Core IPC data types: flags, events, error codes, messages and identifiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Any

INVALID_IPC_HANDLE = None
"""Value that stands for "no handle"."""

INFINITE_TIME = 0xFFFFFFFF
"""Timeout value meaning "wait forever"."""

INVALID_IPC_MSG_ID = 0
"""Message id that marks "no pending message"."""


class PortFlag(IntFlag):
    """Options for creating a port."""

    ALLOW_TA_CONNECT = 0x1
    ALLOW_NS_CONNECT = 0x2


class ConnectFlag(IntFlag):
    """Options for connecting to a port."""

    WAIT_FOR_PORT = 0x1
    ASYNC = 0x2


class PollEvent(IntFlag):
    """Event bits reported for a handle."""

    NONE = 0x0
    READY = 0x1
    ERROR = 0x2
    HUP = 0x4
    MSG = 0x8
    SEND_UNBLOCKED = 0x10


class HandleSetCmd(IntEnum):
    """Commands for handle-set control."""

    ADD = 0x0
    DEL = 0x1
    MOD = 0x2


class ErrorCode(IntEnum):
    """Status codes: zero for success, negative for failures."""

    NO_ERROR = 0
    GENERIC = -1
    NOT_FOUND = -2
    NOT_READY = -3
    NO_MSG = -4
    NO_MEMORY = -5
    NOT_VALID = -7
    INVALID_ARGS = -8
    NOT_ENOUGH_BUFFER = -9
    TIMED_OUT = -13
    CHANNEL_CLOSED = -15
    NOT_ALLOWED = -17
    BAD_PATH = -18
    IO = -20
    NOT_SUPPORTED = -24
    BAD_STATE = -31
    BAD_LEN = -32
    BUSY = -33


class IpcError(Exception):
    """Raised when an IPC operation fails; ``code`` holds the status."""

    def __init__(self, code: int, message: str = "") -> None:
        try:
            code = ErrorCode(code)
        except ValueError:
            pass
        self.code = code
        self.message = message
        name = code.name if isinstance(code, ErrorCode) else "error"
        text = f"{name} ({int(code)})"
        if message:
            text = f"{message}: {text}"
        super().__init__(text)


class HandleType(Enum):
    """Kind of object a handle refers to."""

    PORT = "port"
    CHANNEL = "channel"


@dataclass(frozen=True)
class Uuid:
    """Identity of a connecting peer."""

    time_low: int = 0
    time_mid: int = 0
    time_hi_and_version: int = 0

    def is_zero(self) -> bool:
        """True when every field is zero (a non-secure peer)."""
        return (
            self.time_low == 0
            and self.time_mid == 0
            and self.time_hi_and_version == 0
        )


@dataclass
class Uevent:
    """An event reported by wait or wait_any."""

    handle: Any = INVALID_IPC_HANDLE
    event: PollEvent = PollEvent.NONE
    cookie: Any = None


@dataclass
class MsgInfo:
    """Meta-information about a pending message."""

    length: int
    msg_id: int
    num_handles: int = 0


@dataclass
class IpcMsg:
    """A message described by a list of buffers."""

    iov: list[bytearray] = field(default_factory=list)
    handles: list[Any] = field(default_factory=list)

    @property
    def num_iov(self) -> int:
        return len(self.iov)

    @property
    def num_handles(self) -> int:
        return len(self.handles)

    def total_len(self) -> int:
        """Combined length of all buffers."""
        return sum(len(buf) for buf in self.iov)