"""Sources of arbitrary values, scripted or drawn from a seeded generator."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum, auto

from .types import ErrorCode, PollEvent


class Kind(Enum):
    """The kinds of arbitrary value the model draws."""

    LONG = auto()
    SHORT = auto()
    INT = auto()
    CHAR = auto()
    UNSIGNED = auto()
    SIZE = auto()
    BOOL = auto()
    HANDLE = auto()
    TRUSTY_ERRS = auto()
    PORT_HANDLE = auto()
    MSG_LEN = auto()
    MSG_ID = auto()
    GET_MSG_RET = auto()
    READ_MSG_RET = auto()
    MSG_ELEMENT = auto()
    SEND_MSG_RET = auto()
    PUT_MSG_RET = auto()
    WAIT_HANDLE = auto()
    WAIT_ANY_RET = auto()
    EVENT_FLAG = auto()
    SET_COOKIE_RET = auto()
    CHAN_HANDLE = auto()
    TIME_LOW = auto()
    TIME_MID = auto()
    TIME_HI_N_VER = auto()
    CLOSE_RET = auto()
    WAIT_RET = auto()
    STORE_MEM_SIZE = auto()
    ALLOC_SIZE = auto()
    IPC_ERR = auto()
    IPC_EVENT = auto()


_U8 = (0, 0xFF)
_U16 = (0, 0xFFFF)
_U32 = (0, 0xFFFFFFFF)
_U64 = (0, 0xFFFFFFFFFFFFFFFF)
_I32 = (-(1 << 31), (1 << 31) - 1)
_I64 = (-(1 << 63), (1 << 63) - 1)

_RANGES: dict[Kind, tuple[int, int]] = {
    Kind.LONG: _I64,
    Kind.SHORT: _U16,
    Kind.INT: _I32,
    Kind.CHAR: _U8,
    Kind.UNSIGNED: _U32,
    Kind.SIZE: _U64,
    Kind.BOOL: (0, 1),
    Kind.HANDLE: _I32,
    Kind.PORT_HANDLE: _I32,
    Kind.MSG_LEN: _U64,
    Kind.MSG_ID: _U32,
    Kind.READ_MSG_RET: _I64,
    Kind.MSG_ELEMENT: _U8,
    Kind.SEND_MSG_RET: _I64,
    Kind.WAIT_HANDLE: _I32,
    Kind.EVENT_FLAG: _U32,
    Kind.CHAN_HANDLE: _I32,
    Kind.TIME_LOW: _U32,
    Kind.TIME_MID: _U16,
    Kind.TIME_HI_N_VER: _U16,
    Kind.STORE_MEM_SIZE: _I32,
    Kind.ALLOC_SIZE: _U64,
    Kind.IPC_EVENT: (0, int(
        PollEvent.READY | PollEvent.ERROR | PollEvent.HUP
        | PollEvent.MSG | PollEvent.SEND_UNBLOCKED
    )),
}

# Kinds following the "zero on success, a negative error otherwise" pattern.
_ERROR_KINDS = frozenset({
    Kind.TRUSTY_ERRS,
    Kind.GET_MSG_RET,
    Kind.PUT_MSG_RET,
    Kind.WAIT_ANY_RET,
    Kind.SET_COOKIE_RET,
    Kind.CLOSE_RET,
    Kind.WAIT_RET,
    Kind.IPC_ERR,
})

_ERROR_VALUES = tuple(int(code) for code in ErrorCode)


class Nondet:
    """Supplies arbitrary values: scripted ones first, then seeded random ones."""

    def __init__(
        self,
        seed: int | None = None,
        script: Mapping[Kind, Iterable[int]] | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._script: dict[Kind, Iterator[int]] = {
            kind: iter(values) for kind, values in (script or {}).items()
        }

    def _check(self, kind: Kind, value: int) -> int:
        if kind in _ERROR_KINDS:
            if value > 0:
                raise ValueError(f"{kind.name} value must be zero or negative, got {value}")
            return value
        low, high = _RANGES[kind]
        if not low <= value <= high:
            raise ValueError(f"{kind.name} value {value} outside [{low}, {high}]")
        return value

    def value(self, kind: Kind) -> int:
        """Next value of ``kind``: the next scripted one, else a random one."""
        scripted = self._script.get(kind)
        if scripted is not None:
            try:
                return self._check(kind, int(next(scripted)))
            except StopIteration:
                del self._script[kind]
        if kind in _ERROR_KINDS:
            return self._rng.choice(_ERROR_VALUES)
        low, high = _RANGES[kind]
        return self._rng.randint(low, high)

    def boolean(self) -> bool:
        return bool(self.value(Kind.BOOL))

    def ipc_error(self) -> int:
        """Zero for success or a negative error status."""
        return self.value(Kind.IPC_ERR)

    def ipc_event(self) -> PollEvent:
        return PollEvent(self.value(Kind.IPC_EVENT))

    def gettime(self, clock_id: int) -> int:
        """Arbitrary status for a clock query; the clock is not consulted."""
        return self.value(Kind.INT)