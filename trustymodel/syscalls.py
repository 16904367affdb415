"""IPC system calls over a handle table, with arbitrary outcomes where the model allows."""

from __future__ import annotations

from typing import Any

from .handle_table import FixedHandleTable
from .nondet import Kind, Nondet
from .ptr_handle_table import PointerHandleTable
from .types import (
    INVALID_IPC_HANDLE,
    INVALID_IPC_MSG_ID,
    ErrorCode,
    IpcError,
    IpcMsg,
    MsgInfo,
    PollEvent,
    PortFlag,
    Uevent,
    Uuid,
)

_MAX_IOV = 2


class TrustySyscalls:
    """Port, channel and message calls backed by a handle table.

    Failures are raised as :class:`IpcError`; calls that only report success
    return nothing. Handle-allocating calls return ``None`` when no handle
    is available.
    """

    def __init__(
        self,
        table: FixedHandleTable | PointerHandleTable,
        nondet: Nondet,
    ) -> None:
        self.table = table
        self._nondet = nondet

    def _check_status(self) -> None:
        err = self._nondet.ipc_error()
        if err < ErrorCode.NO_ERROR:
            raise IpcError(err)

    @staticmethod
    def _check_iov(msg: IpcMsg) -> None:
        if not 1 <= msg.num_iov <= _MAX_IOV:
            raise ValueError(
                f"message must have 1 to {_MAX_IOV} buffers, got {msg.num_iov}"
            )

    def _havoc(self, buf: bytearray, count: int) -> None:
        buf[:count] = bytes(
            self._nondet.value(Kind.MSG_ELEMENT) for _ in range(count)
        )

    def port_create(
        self, path: str | None, num_recv_bufs: int, recv_buf_size: int, flags: int
    ) -> Any:
        """Create a port; it is secure when only non-secure clients may connect."""
        if path is None:
            if isinstance(self.table, PointerHandleTable):
                return INVALID_IPC_HANDLE
            raise IpcError(ErrorCode.BAD_PATH, "port path missing")
        secure = bool(flags & PortFlag.ALLOW_NS_CONNECT) and not (
            flags & PortFlag.ALLOW_TA_CONNECT
        )
        return self.table.new_port(secure, path)

    def connect(self, path: str | None, flags: int) -> Any:
        """A new channel to the port matching ``path``, or None."""
        port = self.table.match_port(path)
        if port is INVALID_IPC_HANDLE:
            return INVALID_IPC_HANDLE
        return self.table.new_channel(port)

    def accept(self, handle: Any) -> tuple[Any, Uuid | None]:
        """Accept a connection; return the channel and the peer's identity.

        The identity is all zeros for peers from the non-secure world and
        None when no channel could be allocated.
        """
        chan = self.table.new_channel(handle)
        if chan is INVALID_IPC_HANDLE:
            return INVALID_IPC_HANDLE, None
        if not self.table.allows_ta_connect(handle):
            return chan, Uuid()
        peer = Uuid(
            time_low=self._nondet.value(Kind.TIME_LOW),
            time_mid=self._nondet.value(Kind.TIME_MID),
            time_hi_and_version=self._nondet.value(Kind.TIME_HI_N_VER),
        )
        return chan, peer

    def close(self, handle: Any) -> None:
        self.table.free(handle)

    def set_cookie(self, handle: Any, cookie: Any) -> None:
        self.table.set_cookie(handle, cookie)

    def handle_set_create(self) -> Any:
        """Handle sets are not supported: always None."""
        return INVALID_IPC_HANDLE

    def handle_set_ctrl(self, handle: Any, cmd: int, event: Uevent) -> None:
        raise IpcError(ErrorCode.GENERIC, "handle sets are not supported")

    def _event_for(self, handle: Any) -> Uevent:
        event = Uevent(
            handle=handle,
            cookie=self.table.get_cookie(handle),
            event=self._nondet.ipc_event(),
        )
        if event.event & PollEvent.MSG:
            self.table.new_nd_msg(handle)
        return event

    def wait(self, handle: Any, timeout_msecs: int) -> Uevent:
        """Wait for an event on ``handle``; a message event brings a new message."""
        self._check_status()
        return self._event_for(handle)

    def wait_any(self, timeout_msecs: int) -> Uevent:
        """Wait for an event on any active handle."""
        self._check_status()
        handle = self.table.choose_active_handle()
        if handle is INVALID_IPC_HANDLE:
            raise IpcError(ErrorCode.NOT_FOUND, "no active handle to wait on")
        return self._event_for(handle)

    def get_msg(self, handle: Any) -> MsgInfo:
        """Information about the pending message on a channel."""
        self._check_status()
        msg_id = self.table.msg_id(handle)
        length = self.table.msg_len(handle)
        if msg_id == INVALID_IPC_MSG_ID:
            raise IpcError(ErrorCode.GENERIC, "no pending message")
        return MsgInfo(length=length, msg_id=msg_id)

    def read_msg(self, handle: Any, msg_id: int, offset: int, msg: IpcMsg) -> int:
        """Fill the message buffers with message content; return bytes read."""
        if self.table.msg_id(handle) != msg_id:
            raise IpcError(ErrorCode.GENERIC, f"message {msg_id} is not pending")
        remaining = self.table.msg_len(handle)
        if remaining == 0:
            raise IpcError(ErrorCode.GENERIC, "message is empty")
        if offset > remaining:
            raise ValueError(f"offset {offset} beyond message length {remaining}")
        remaining -= offset
        self._check_iov(msg)

        read = 0
        for buf in msg.iov:
            if remaining < len(buf):
                self._havoc(buf, remaining)
                return read + remaining
            self._havoc(buf, len(buf))
            read += len(buf)
            remaining -= len(buf)
        return read

    def put_msg(self, handle: Any, msg_id: int) -> None:
        """Retire the pending message on a channel."""
        self._check_status()
        self.table.set_msg_id(handle, INVALID_IPC_MSG_ID)

    def send_msg(self, handle: Any, msg: IpcMsg) -> int:
        """Send a message; return the number of bytes sent."""
        self._check_status()
        self._check_iov(msg)
        return msg.total_len()