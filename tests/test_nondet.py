import itertools

import pytest

from trustymodel.nondet import Kind, Nondet
from trustymodel.types import ErrorCode, PollEvent


def test_scripted_values_come_first_then_random():
    nd = Nondet(seed=1, script={Kind.MSG_ID: [5, 9]})
    assert nd.value(Kind.MSG_ID) == 5
    assert nd.value(Kind.MSG_ID) == 9
    later = nd.value(Kind.MSG_ID)
    assert 0 <= later <= 0xFFFFFFFF


def test_scripts_are_per_kind():
    nd = Nondet(seed=0, script={Kind.CHAR: [200], Kind.SHORT: [65535]})
    assert nd.value(Kind.SHORT) == 65535
    assert nd.value(Kind.CHAR) == 200


def test_out_of_range_script_raises():
    nd = Nondet(script={Kind.CHAR: [256]})
    with pytest.raises(ValueError):
        nd.value(Kind.CHAR)


def test_positive_error_script_raises():
    nd = Nondet(script={Kind.IPC_ERR: [1]})
    with pytest.raises(ValueError):
        nd.ipc_error()


@pytest.mark.parametrize(
    "kind, low, high",
    [
        (Kind.CHAR, 0, 0xFF),
        (Kind.SHORT, 0, 0xFFFF),
        (Kind.INT, -(1 << 31), (1 << 31) - 1),
        (Kind.UNSIGNED, 0, 0xFFFFFFFF),
        (Kind.BOOL, 0, 1),
    ],
)
def test_random_values_within_range(kind, low, high):
    nd = Nondet(seed=7)
    assert all(low <= nd.value(kind) <= high for _ in range(200))


def test_same_seed_same_sequence():
    first = Nondet(seed=42)
    second = Nondet(seed=42)
    kinds = [Kind.LONG, Kind.MSG_LEN, Kind.IPC_ERR, Kind.TIME_MID] * 5
    assert [first.value(k) for k in kinds] == [second.value(k) for k in kinds]


def test_random_errors_are_known_statuses():
    nd = Nondet(seed=3)
    known = {int(code) for code in ErrorCode}
    assert all(nd.ipc_error() in known for _ in range(100))


def test_scripted_error_returned():
    nd = Nondet(script={Kind.IPC_ERR: [int(ErrorCode.GENERIC), 0]})
    assert nd.ipc_error() == ErrorCode.GENERIC
    assert nd.ipc_error() == ErrorCode.NO_ERROR


def test_ipc_event_scripted_and_random():
    nd = Nondet(seed=5, script={Kind.IPC_EVENT: [int(PollEvent.MSG)]})
    assert nd.ipc_event() == PollEvent.MSG
    allowed = PollEvent.READY | PollEvent.ERROR | PollEvent.HUP | PollEvent.MSG | PollEvent.SEND_UNBLOCKED
    for _ in range(50):
        ev = nd.ipc_event()
        assert ev & ~allowed == 0


def test_boolean_scripted():
    nd = Nondet(script={Kind.BOOL: [1, 0]})
    assert nd.boolean() is True
    assert nd.boolean() is False


def test_gettime_ignores_clock():
    nd = Nondet(script={Kind.INT: [42, 42]})
    assert nd.gettime(0) == 42
    assert nd.gettime(3) == 42


def test_infinite_script_supported():
    nd = Nondet(script={Kind.STORE_MEM_SIZE: itertools.repeat(1)})
    assert [nd.value(Kind.STORE_MEM_SIZE) for _ in range(4)] == [1, 1, 1, 1]