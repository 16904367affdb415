# trustymodel

trustymodel is an executable model of the Trusty trusted-OS IPC interface.
Code written against the Trusty IPC API uses ports, channels, messages, events
and cookies, and this package lets you run and test that code without a Trusty
kernel. The kernel would normally choose some values itself: message ids and
lengths, event flags, error returns and peer identities. Here those values come
from a source of nondeterminism that you can seed or script, so every run can
be reproduced.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

### `trustymodel.types`

The IPC vocabulary.

- Flags and enums: `PortFlag`, `ConnectFlag`, `PollEvent`, `HandleSetCmd` and `HandleType`.
- `ErrorCode` lists the status codes. `IpcError` is the exception that failed calls raise, and its `.code` attribute holds the `ErrorCode`.
- `Uuid` holds a peer's identity. `Uuid.is_zero()` tells you whether the peer is a non-secure one.
- `Uevent` is an event: a handle, its event bits and its cookie.
- `MsgInfo` describes a pending message: `length`, `msg_id` and `num_handles`.
- `IpcMsg` is a list of `bytearray` buffers. `IpcMsg.total_len()` gives their combined length.
- Constants: `INVALID_IPC_HANDLE` (which is `None`), `INFINITE_TIME` and `INVALID_IPC_MSG_ID`.

### `trustymodel.nondet`

`Nondet(seed, script)` supplies the arbitrary values the model needs. Each value has a `Kind`, such as `Kind.MSG_ID`, `Kind.IPC_ERR` or `Kind.IPC_EVENT`.

- Values given in `script` (a mapping from `Kind` to an iterable of ints) are returned first, in order.
- After the script runs out, values come from a random generator seeded with `seed`.
- A scripted value that falls outside the range of its kind raises `ValueError`. Error-style kinds must be zero or negative.

Helper methods:

- `boolean()`
- `ipc_error()`
- `ipc_event()`
- `gettime(clock_id)`, which returns an arbitrary status.

### `trustymodel.memory`

`AllocationTracker(nondet)` handles buffer reallocation.

- `realloc(buf, new_size)` always returns a fresh zeroed `bytearray` and does not copy the old contents.
- The `Kind.STORE_MEM_SIZE` value decides whether the new buffer is recorded. Only the first buffer recorded this way is kept.
- `ptr_size_stored(buf)` and `alloc_size(buf)` query the recorded buffer.
- `alloc_size` returns an arbitrary `Kind.ALLOC_SIZE` value for any buffer other than the recorded one.

### `trustymodel.handle_table`

`FixedHandleTable(nondet)` has a fixed set of integer handles:

- Ports are 1 and 2. Odd port numbers are secure and even ones are non-secure.
- Channels are 16 and 17.

Behaviour:

- `new_port` and `new_channel` return `None` when no slot is free.
- `free` makes a slot available again.
- `match_port` compares only the first character of the path.
- `choose_active_handle` picks among the active handles and returns `None` when no handle is active.

### `trustymodel.ptr_handle_table`

`PointerHandleTable(nondet, can_fail)` gives each handle its own `HandleState` object.

- With `can_fail=True`, allocation can fail and return `None`.
- `on_connect_return(handle)` sets which port the next `connect` matches. If the path given to `connect` differs from that port's path, `AssertionError` is raised.
- `on_waitany_return(handle)` sets which handle `wait_any` returns. If that handle is inactive, `AssertionError` is raised.
- `free` marks a handle inactive. Its state stays readable afterwards.

### `trustymodel.syscalls`

`TrustySyscalls(table, nondet)` provides the system calls on top of either table.

| Call | Behaviour |
| --- | --- |
| `port_create(path, num_recv_bufs, recv_buf_size, flags)` | Returns a port handle. The port is secure when `flags` allow only non-secure clients to connect. A missing path raises `IpcError(BAD_PATH)` with the fixed table and returns `None` with the pointer table. |
| `connect(path, flags)` | Returns a channel or `None`. |
| `accept(handle)` | Returns `(channel, Uuid)`. The `Uuid` is all zeros for non-secure peers. |
| `close(handle)`, `set_cookie(handle, cookie)` | |
| `wait(handle, timeout_msecs)`, `wait_any(timeout_msecs)` | Return a `Uevent`. A `MSG` event gives the channel a new pending message. `wait_any` raises `IpcError(NOT_FOUND)` when no handle is active. |
| `get_msg(handle)` | Returns a `MsgInfo`. Raises `IpcError` when no message is pending. |
| `read_msg(handle, msg_id, offset, msg)` | Fills one or two buffers with arbitrary bytes and returns the number of bytes read. |
| `put_msg(handle, msg_id)` | Retires the pending message. |
| `send_msg(handle, msg)` | Returns the number of bytes sent. |
| `handle_set_create()` | Always returns `None`. |
| `handle_set_ctrl(handle, cmd, event)` | Always raises `IpcError(GENERIC)`. |

Several of these calls may also raise an arbitrary `IpcError`, as chosen by `Kind.IPC_ERR`.

### `trustymodel.ipc`

`IpcService(syscalls, logger)` is an event-driven IPC service.

- `port_create(ctx, port_name, queue_size, max_buffer_size, flags)` binds an `IpcPortContext` to a new port and raises `IpcError` on failure.
- When a port is ready, the service calls the context's `on_connect(ctx, peer, chan)`. That callback returns an `IpcChannelContext`, or `None` to refuse the connection.
- Channel messages of up to 4096 bytes are passed to `on_handle_msg(ctx, data)`.
- If `on_handle_msg` raises `IpcError`, or the peer hangs up, the channel is disconnected and `on_disconnect(ctx)` is called.
- Unexpected event bits on a port or a channel raise `RuntimeError`.
- `dispatch_event(event)` routes an event to the context stored as its cookie.
- `loop()` waits and dispatches until `wait_any` fails, then returns that `IpcError`.
- `port_destroy(ctx)` closes the port and disconnects every channel still attached to it.
- `sync_send_msg(session, tx_iovecs, rx_iovecs)` sends a request. If receive buffers are given, it reads the reply into them and returns the reply length. With no receive buffers it returns 0.

### `trustymodel.tlog`

`TLogger(tag, level, stream)` writes messages in the form `"<tag>: <line>: <message>"`. The default stream is stderr.

- It only writes messages at or above its `LogLevel`.
- The methods are `log`, `debug`, `info`, `warning`, `error` and `critical`. Each takes a %-style format string with arguments.
- Each method returns the text it wrote, or `None` when the message was filtered out.

## Example

```python
from trustymodel.nondet import Nondet
from trustymodel.handle_table import FixedHandleTable
from trustymodel.syscalls import TrustySyscalls
from trustymodel.types import PortFlag

nd = Nondet(seed=1, script=None)
calls = TrustySyscalls(FixedHandleTable(nd), nd)

port = calls.port_create("ta.example", 1, 100, PortFlag.ALLOW_TA_CONNECT)
assert port == 2                      # first non-secure port handle
chan, peer = calls.accept(port)
assert chan == 16 and peer.is_zero()  # non-secure peer gets an all-zero UUID
```

## What this package does not do

- It is a library of models and talks to no real kernel or device.
- Message contents are arbitrary bytes, and nothing is actually delivered between channels.
- Handle sets are not supported.
- It provides no command-line program, no storage service behind the IPC layer, and no persistent storage.