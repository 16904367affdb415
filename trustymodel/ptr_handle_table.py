"""Handle table whose handles are per-handle state objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .nondet import Kind, Nondet
from .types import INVALID_IPC_HANDLE, INVALID_IPC_MSG_ID, HandleType


@dataclass(eq=False)
class HandleState:
    """State of one port or channel; the object itself is the handle."""

    type: HandleType
    active: bool = True
    secure: bool = False
    cookie: Any = None
    path: str | None = None
    msg_id: int = INVALID_IPC_MSG_ID
    msg_len: int = 0


def _state(handle: HandleState | None) -> HandleState:
    if handle is None:
        raise ValueError("invalid handle")
    return handle


class PointerHandleTable:
    """Creates handle objects on demand; wait_any and connect are steered."""

    def __init__(self, nondet: Nondet, can_fail: bool = False) -> None:
        self._nondet = nondet
        self._can_fail = can_fail
        self._on_waitany: HandleState | None = None
        self._on_connect: HandleState | None = None

    def _allocation_fails(self) -> bool:
        return self._can_fail and not self._nondet.boolean()

    def is_port(self, handle: HandleState) -> bool:
        return _state(handle).type is HandleType.PORT

    def is_secure(self, handle: HandleState) -> bool:
        return _state(handle).secure

    def allows_ta_connect(self, handle: HandleState) -> bool:
        return _state(handle).secure is True

    def new_port(self, secure: bool, path: str) -> HandleState | None:
        """A new active port, or None when allocation may fail and does."""
        if self._allocation_fails():
            return INVALID_IPC_HANDLE
        handle = HandleState(type=HandleType.PORT, secure=secure, path=path)
        self.new_nd_msg(handle)
        return handle

    def new_channel(self, parent_port: HandleState | None) -> HandleState | None:
        """A new active channel, or None when allocation may fail and does."""
        if self._allocation_fails():
            return INVALID_IPC_HANDLE
        handle = HandleState(type=HandleType.CHANNEL)
        self.new_nd_msg(handle)
        return handle

    def match_port(self, path: str | None) -> HandleState | None:
        """The port set by on_connect_return; its path must equal ``path``."""
        if self._on_connect is None:
            return INVALID_IPC_HANDLE
        if self._on_connect.path != path:
            raise AssertionError(
                f"connect path {path!r} does not match port path "
                f"{self._on_connect.path!r}"
            )
        return self._on_connect

    def choose_active_handle(self) -> HandleState | None:
        """The handle set by on_waitany_return; it must be active."""
        if self._on_waitany is None:
            return INVALID_IPC_HANDLE
        if not self._on_waitany.active:
            raise AssertionError("handle chosen for wait_any is not active")
        return self._on_waitany

    def is_active_port(self, handle: HandleState) -> bool:
        state = _state(handle)
        return state.type is HandleType.PORT and state.active

    def free(self, handle: HandleState) -> None:
        """Mark inactive; the state stays readable afterwards."""
        _state(handle).active = False

    def set_cookie_port(self, handle: HandleState, cookie: Any) -> None:
        _state(handle).cookie = cookie

    def get_cookie_port(self, handle: HandleState) -> Any:
        return _state(handle).cookie

    def set_cookie_channel(self, handle: HandleState, cookie: Any) -> None:
        _state(handle).cookie = cookie

    def get_cookie_channel(self, handle: HandleState) -> Any:
        return _state(handle).cookie

    def set_cookie(self, handle: HandleState, cookie: Any) -> None:
        _state(handle).cookie = cookie

    def get_cookie(self, handle: HandleState) -> Any:
        return _state(handle).cookie

    def has_msg(self, handle: HandleState) -> bool:
        return _state(handle).msg_id > INVALID_IPC_MSG_ID

    def msg_id(self, handle: HandleState) -> int:
        return _state(handle).msg_id

    def set_msg_id(self, handle: HandleState, msg_id: int) -> None:
        _state(handle).msg_id = msg_id

    def msg_len(self, handle: HandleState) -> int:
        return _state(handle).msg_len

    def set_msg_len(self, handle: HandleState, length: int) -> None:
        _state(handle).msg_len = length

    def new_nd_msg(self, handle: HandleState) -> None:
        """Give the handle a new pending message of arbitrary length and id."""
        state = _state(handle)
        state.msg_len = self._nondet.value(Kind.MSG_LEN)
        msg_id = self._nondet.value(Kind.MSG_ID)
        while msg_id <= INVALID_IPC_MSG_ID:
            msg_id = self._nondet.value(Kind.MSG_ID)
        state.msg_id = msg_id

    def on_waitany_return(self, handle: HandleState | None) -> None:
        """Set the handle wait_any returns until changed again."""
        self._on_waitany = handle

    def on_connect_return(self, handle: HandleState | None) -> None:
        """Set the port connect matches until changed again."""
        self._on_connect = handle