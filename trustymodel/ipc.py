"""Event-driven IPC service: ports accept channels, channels handle messages."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Optional

from .syscalls import TrustySyscalls
from .tlog import LogLevel, TLogger
from .types import (
    INFINITE_TIME,
    INVALID_IPC_HANDLE,
    ErrorCode,
    IpcError,
    IpcMsg,
    PollEvent,
    Uevent,
    Uuid,
)

MSG_BUF_MAX_SIZE = 4096

_PORT_ERROR_EVENTS = (
    PollEvent.ERROR | PollEvent.HUP | PollEvent.MSG | PollEvent.SEND_UNBLOCKED
)
_CHANNEL_ERROR_EVENTS = PollEvent.ERROR | PollEvent.READY

EventHandler = Callable[[Any, Uevent], None]


@dataclass(eq=False)
class IpcChannelContext:
    """State of one connected channel.

    ``on_handle_msg(ctx, data)`` receives each message and raises
    :class:`IpcError` to have the peer disconnected. ``on_disconnect(ctx)``
    is called once when the channel goes away.
    """

    on_disconnect: Optional[Callable[[IpcChannelContext], None]]
    on_handle_msg: Optional[Callable[[IpcChannelContext, bytes], Any]] = None
    handle: Any = INVALID_IPC_HANDLE
    evt_handler: Optional[EventHandler] = None
    port: Optional[IpcPortContext] = None


@dataclass(eq=False)
class IpcPortContext:
    """State of one published port and the channels connected to it.

    ``on_connect(ctx, peer, chan_handle)`` returns the new channel's
    context, or None to refuse the connection.
    """

    on_connect: Optional[
        Callable[[IpcPortContext, Uuid, Any], Optional[IpcChannelContext]]
    ]
    handle: Any = INVALID_IPC_HANDLE
    evt_handler: Optional[EventHandler] = None
    channels: list[IpcChannelContext] = field(default_factory=list)


def _check_port_ops(ctx: IpcPortContext) -> None:
    if ctx.on_connect is None:
        raise ValueError("port context has no on_connect callback")


def _check_channel_ops(ctx: IpcChannelContext) -> None:
    if ctx.on_disconnect is None:
        raise ValueError("channel context has no on_disconnect callback")


class IpcService:
    """Dispatches IPC events to port and channel contexts."""

    def __init__(
        self, syscalls: TrustySyscalls, logger: TLogger | None = None
    ) -> None:
        self.syscalls = syscalls
        self.logger = logger if logger is not None else TLogger("ss-ipc", LogLevel.INFO)
        self._msg_buf = bytearray()

    @property
    def msg_buf_size(self) -> int:
        """Capacity of the shared message buffer."""
        return len(self._msg_buf)

    def _maybe_grow_msg_buf(self, new_max_size: int) -> None:
        if new_max_size > len(self._msg_buf):
            self._msg_buf = bytearray(new_max_size)

    def _put_msg(self, handle: Any, msg_id: int) -> None:
        with suppress(IpcError):
            self.syscalls.put_msg(handle, msg_id)

    # -- ports -----------------------------------------------------------

    def port_create(
        self,
        ctx: IpcPortContext,
        port_name: str | None,
        queue_size: int,
        max_buffer_size: int,
        flags: int,
    ) -> None:
        """Publish a port and bind it to ``ctx``."""
        _check_port_ops(ctx)
        handle = self.syscalls.port_create(port_name, queue_size, max_buffer_size, flags)
        if handle is INVALID_IPC_HANDLE:
            self.logger.error("Failed to create port %s\n", port_name)
            raise IpcError(ErrorCode.GENERIC, f"failed to create port {port_name}")
        try:
            self.syscalls.set_cookie(handle, ctx)
            self._maybe_grow_msg_buf(max_buffer_size)
        except IpcError as exc:
            self.logger.error("Failed to set up port %s (%d)\n", port_name, int(exc.code))
            self.syscalls.close(handle)
            raise
        ctx.handle = handle
        ctx.evt_handler = self._handle_port
        ctx.channels = []

    def port_destroy(self, ctx: IpcPortContext) -> None:
        """Close the port and disconnect every channel still attached."""
        self.syscalls.close(ctx.handle)
        while ctx.channels:
            chan_ctx = ctx.channels.pop(0)
            chan_ctx.port = None
            self.logger.error("client still connected, handle %r\n", chan_ctx.handle)
            chan_ctx.on_disconnect(chan_ctx)
            self.syscalls.close(chan_ctx.handle)

    def _handle_port(self, ctx: IpcPortContext, event: Uevent) -> None:
        _check_port_ops(ctx)
        if event.event & _PORT_ERROR_EVENTS:
            self.logger.error(
                "error event (0x%x) for port (%r)\n", int(event.event), event.handle
            )
            raise RuntimeError(
                f"unexpected event 0x{int(event.event):x} on port {event.handle!r}"
            )
        self._do_connect(ctx, event)

    def _do_connect(self, ctx: IpcPortContext, event: Uevent) -> None:
        if not event.event & PollEvent.READY:
            return
        chan, peer = self.syscalls.accept(event.handle)
        if chan is INVALID_IPC_HANDLE:
            self.logger.error("failed to accept on port %r\n", event.handle)
            return

        chan_ctx = ctx.on_connect(ctx, peer, chan)
        if chan_ctx is None:
            self.logger.error("failure initializing channel state (%r)\n", chan)
            self.syscalls.close(chan)
            return
        _check_channel_ops(chan_ctx)

        chan_ctx.evt_handler = self._handle_channel
        chan_ctx.handle = chan
        try:
            self.syscalls.set_cookie(chan, chan_ctx)
        except IpcError as exc:
            self.logger.error("failed (%d) to set_cookie on chan %r\n", int(exc.code), chan)
            chan_ctx.on_disconnect(chan_ctx)
            self.syscalls.close(chan)
            return
        chan_ctx.port = ctx
        ctx.channels.append(chan_ctx)

    # -- channels --------------------------------------------------------

    def _handle_channel(self, ctx: IpcChannelContext, event: Uevent) -> None:
        _check_channel_ops(ctx)
        if event.event & _CHANNEL_ERROR_EVENTS:
            self.logger.error(
                "error event (0x%x) for chan (%r)\n", int(event.event), event.handle
            )
            raise RuntimeError(
                f"unexpected event 0x{int(event.event):x} on channel {event.handle!r}"
            )

        if event.event & PollEvent.MSG:
            if ctx.on_handle_msg is None:
                self.logger.error(
                    "error: unexpected message in channel (%r). closing...\n",
                    event.handle,
                )
                self._do_disconnect(ctx, event)
                return
            try:
                self._do_handle_msg(ctx, event)
            except IpcError as exc:
                self.logger.error(
                    "error (%d) in channel, disconnecting peer\n", int(exc.code)
                )
                self._do_disconnect(ctx, event)
                return

        if event.event & PollEvent.HUP:
            self._do_disconnect(ctx, event)

    def _do_handle_msg(self, ctx: IpcChannelContext, event: Uevent) -> None:
        chan = event.handle
        try:
            info = self.syscalls.get_msg(chan)
        except IpcError as exc:
            if exc.code == ErrorCode.NO_MSG:
                return
            self.logger.error(
                "failed (%d) to get_msg for chan (%r), closing connection\n",
                int(exc.code),
                chan,
            )
            raise

        if info.length > MSG_BUF_MAX_SIZE:
            self.logger.error("message too large %d\n", info.length)
            self._put_msg(chan, info.msg_id)
            raise IpcError(ErrorCode.NOT_ENOUGH_BUFFER, "message too large")

        buf = bytearray(info.length)
        try:
            read = self.syscalls.read_msg(chan, info.msg_id, 0, IpcMsg(iov=[buf]))
        except IpcError as exc:
            self.logger.error("failed to read msg (%d, %r)\n", int(exc.code), chan)
            raise
        finally:
            self._put_msg(chan, info.msg_id)

        if read < info.length:
            self.logger.error("invalid message of size (%d, %r)\n", read, chan)
            raise IpcError(ErrorCode.NOT_VALID, "short message")

        ctx.on_handle_msg(ctx, bytes(buf))

    def _do_disconnect(self, ctx: IpcChannelContext, event: Uevent) -> None:
        if ctx.port is not None:
            with suppress(ValueError):
                ctx.port.channels.remove(ctx)
            ctx.port = None
        ctx.on_disconnect(ctx)
        self.syscalls.close(event.handle)

    # -- event loop ------------------------------------------------------

    def dispatch_event(self, event: Uevent) -> None:
        """Hand an event to the handler of the context stored as its cookie."""
        if event.event == PollEvent.NONE:
            return
        context = event.cookie
        if context is None:
            raise ValueError("event carries no context")
        if context.evt_handler is None:
            raise ValueError("context has no event handler")
        if context.handle != event.handle:
            raise ValueError(
                f"event handle {event.handle!r} does not match context "
                f"handle {context.handle!r}"
            )
        context.evt_handler(context, event)

    def loop(self) -> IpcError:
        """Wait for and dispatch events until waiting fails; return that error."""
        while True:
            try:
                event = self.syscalls.wait_any(INFINITE_TIME)
            except IpcError as exc:
                self.logger.error("wait_any failed (%d)\n", int(exc.code))
                return exc
            self.dispatch_event(event)

    # -- synchronous request/response -----------------------------------

    def _wait_to_send(self, session: Any, msg: IpcMsg) -> int:
        try:
            event = self.syscalls.wait(session, INFINITE_TIME)
        except IpcError:
            self.logger.error("failed to wait for outgoing queue to free up\n")
            raise
        if event.event & PollEvent.SEND_UNBLOCKED:
            return self.syscalls.send_msg(session, msg)
        if event.event & PollEvent.MSG:
            raise IpcError(ErrorCode.BUSY, "incoming message while waiting to send")
        if event.event & PollEvent.HUP:
            raise IpcError(ErrorCode.CHANNEL_CLOSED, "peer hung up")
        return 0

    def _await_response(self, session: Any):
        try:
            self.syscalls.wait(session, INFINITE_TIME)
        except IpcError as exc:
            self.logger.error("interrupted waiting for response (%d)", int(exc.code))
            raise
        try:
            return self.syscalls.get_msg(session)
        except IpcError as exc:
            self.logger.error("failed to get_msg (%d)\n", int(exc.code))
            raise

    def _read_response(self, session: Any, msg_id: int, rx: list[bytearray]) -> int:
        try:
            return self.syscalls.read_msg(session, msg_id, 0, IpcMsg(iov=rx))
        except IpcError as exc:
            self.logger.error("failed to read msg (%d)\n", int(exc.code))
            raise
        finally:
            self._put_msg(session, msg_id)

    def sync_send_msg(
        self,
        session: Any,
        tx_iovecs: Iterable[bytearray],
        rx_iovecs: Iterable[bytearray] | None = None,
    ) -> int:
        """Send a request and, if buffers are given, read the reply into them.

        Returns the reply length, or 0 when no reply is expected.
        """
        tx_msg = IpcMsg(iov=list(tx_iovecs))
        try:
            try:
                self.syscalls.send_msg(session, tx_msg)
            except IpcError as exc:
                if exc.code != ErrorCode.NOT_ENOUGH_BUFFER:
                    raise
                self._wait_to_send(session, tx_msg)
        except IpcError as exc:
            self.logger.error("failed (%d) to send_msg\n", int(exc.code))
            raise

        rx = list(rx_iovecs) if rx_iovecs is not None else []
        if not rx:
            return 0

        info = self._await_response(session)

        if info.length < len(rx[0]):
            self.logger.error("invalid response length (%d)\n", info.length)
            self._put_msg(session, info.msg_id)
            raise IpcError(ErrorCode.NOT_VALID, "response shorter than first buffer")

        resp_size = sum(len(buf) for buf in rx)
        if resp_size < info.length:
            self.logger.error(
                "response buffer too short (%d < %d) \n", resp_size, info.length
            )
            self._put_msg(session, info.msg_id)
            raise IpcError(ErrorCode.BAD_LEN, "response buffer too short")

        read_len = self._read_response(session, info.msg_id, rx)
        self._put_msg(session, info.msg_id)
        if read_len != info.length:
            self.logger.error("invalid response length (%d)\n", read_len)
            raise IpcError(ErrorCode.IO, "response length mismatch")
        return read_len