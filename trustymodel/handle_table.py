"""Handle table with a fixed set of small integer handles.

Ports use handles 1 and 2: odd handles are secure, even ones non-secure.
Channels use handles 16 and 17.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .nondet import Kind, Nondet
from .types import INVALID_IPC_HANDLE, INVALID_IPC_MSG_ID, PortFlag

PORT_HANDLE_MIN = 1
PORT_HANDLE_MAX = 2
CHAN_HANDLE_MIN = 16
CHAN_HANDLE_MAX = 17


@dataclass
class _PortSlot:
    active: bool = False
    cookie: Any = None
    path: str = ""


@dataclass
class _ChannelSlot:
    active: bool = False
    cookie: Any = None
    msg_id: int = INVALID_IPC_MSG_ID
    msg_len: int = 0


class FixedHandleTable:
    """Tracks the state of a fixed number of port and channel handles."""

    def __init__(self, nondet: Nondet) -> None:
        self._nondet = nondet
        self._ports = {
            h: _PortSlot() for h in range(PORT_HANDLE_MIN, PORT_HANDLE_MAX + 1)
        }
        self._channels = {
            h: _ChannelSlot() for h in range(CHAN_HANDLE_MIN, CHAN_HANDLE_MAX + 1)
        }

    @property
    def active_ports(self) -> int:
        return sum(slot.active for slot in self._ports.values())

    @property
    def active_channels(self) -> int:
        return sum(slot.active for slot in self._channels.values())

    def is_port(self, handle: int | None) -> bool:
        return handle is not None and PORT_HANDLE_MIN <= handle <= PORT_HANDLE_MAX

    def is_secure(self, handle: int) -> bool:
        return bool(handle & 0x1)

    def allows_ta_connect(self, handle: int) -> bool:
        """True when the handle value carries the trusted-app connect bit."""
        return bool(handle & PortFlag.ALLOW_TA_CONNECT)

    def new_port(self, secure: bool, path: str) -> int | None:
        """Allocate the first free port of the wanted security, or None."""
        for handle, slot in self._ports.items():
            if self.is_secure(handle) == secure and not slot.active:
                slot.active = True
                slot.path = path[:1]
                return handle
        return INVALID_IPC_HANDLE

    def new_channel(self, parent_port: int | None) -> int | None:
        """Allocate the first free channel, or None."""
        for handle, slot in self._channels.items():
            if not slot.active:
                slot.active = True
                return handle
        return INVALID_IPC_HANDLE

    def match_port(self, path: str | None) -> int | None:
        """Port whose path starts with the same character as ``path``."""
        if path is None:
            return INVALID_IPC_HANDLE
        for handle, slot in self._ports.items():
            if path[:1] == slot.path:
                return handle
        return INVALID_IPC_HANDLE

    def choose_active_handle(self) -> int | None:
        """Pick an arbitrary active handle; None if nothing is active."""
        candidates = [h for h, s in self._ports.items() if s.active]
        candidates += [h for h, s in self._channels.items() if s.active]
        if not candidates:
            return INVALID_IPC_HANDLE
        choice = self._nondet.value(Kind.HANDLE)
        if choice in candidates:
            return choice
        return candidates[choice % len(candidates)]

    def is_active_port(self, handle: int | None) -> bool:
        slot = self._ports.get(handle)
        return slot is not None and slot.active

    def free(self, handle: int | None) -> None:
        """Mark a handle inactive so that it can be handed out again."""
        slot = self._ports.get(handle) or self._channels.get(handle)
        if slot is not None:
            slot.active = False

    def set_cookie_port(self, handle: int, cookie: Any) -> None:
        slot = self._ports.get(handle)
        if slot is not None:
            slot.cookie = cookie

    def get_cookie_port(self, handle: int) -> Any:
        slot = self._ports.get(handle)
        return slot.cookie if slot is not None else None

    def set_cookie_channel(self, handle: int, cookie: Any) -> None:
        slot = self._channels.get(handle)
        if slot is not None:
            slot.cookie = cookie

    def get_cookie_channel(self, handle: int) -> Any:
        slot = self._channels.get(handle)
        return slot.cookie if slot is not None else None

    def set_cookie(self, handle: int, cookie: Any) -> None:
        if self.is_port(handle):
            self.set_cookie_port(handle, cookie)
        else:
            self.set_cookie_channel(handle, cookie)

    def get_cookie(self, handle: int) -> Any:
        if self.is_port(handle):
            return self.get_cookie_port(handle)
        return self.get_cookie_channel(handle)

    def has_msg(self, handle: int) -> bool:
        slot = self._channels.get(handle)
        return slot is not None and slot.msg_id > INVALID_IPC_MSG_ID

    def msg_id(self, handle: int) -> int:
        slot = self._channels.get(handle)
        return slot.msg_id if slot is not None else INVALID_IPC_MSG_ID

    def set_msg_id(self, handle: int, msg_id: int) -> None:
        slot = self._channels.get(handle)
        if slot is not None:
            slot.msg_id = msg_id

    def msg_len(self, handle: int) -> int:
        slot = self._channels.get(handle)
        return slot.msg_len if slot is not None else 0

    def set_msg_len(self, handle: int, length: int) -> None:
        slot = self._channels.get(handle)
        if slot is not None:
            slot.msg_len = length

    def new_nd_msg(self, handle: int) -> None:
        """Give a channel a new pending message of arbitrary length and id."""
        slot = self._channels.get(handle)
        if slot is None:
            return
        slot.msg_len = self._nondet.value(Kind.MSG_LEN)
        msg_id = self._nondet.value(Kind.MSG_ID)
        while msg_id <= INVALID_IPC_MSG_ID:
            msg_id = self._nondet.value(Kind.MSG_ID)
        slot.msg_id = msg_id