import pytest

from trustymodel.nondet import Kind, Nondet
from trustymodel.ptr_handle_table import HandleState, PointerHandleTable
from trustymodel.types import HandleType

PATH = "seahorn.com"


@pytest.fixture
def table():
    return PointerHandleTable(Nondet(seed=2))


def test_new_port_state(table):
    port = table.new_port(True, PATH)
    assert port.type is HandleType.PORT
    assert port.active and port.secure
    assert port.path == PATH
    assert port.cookie is None
    assert table.has_msg(port)
    assert table.is_active_port(port)
    assert table.is_secure(port)
    assert table.allows_ta_connect(port)


def test_new_channel_state(table):
    port = table.new_port(False, PATH)
    chan = table.new_channel(port)
    assert chan.type is HandleType.CHANNEL
    assert not table.is_port(chan)
    assert not table.is_active_port(chan)
    assert not table.allows_ta_connect(port)
    assert chan is not table.new_channel(port)


def test_free_keeps_state_readable(table):
    port = table.new_port(False, PATH)
    table.free(port)
    assert port.active is False
    assert not table.is_active_port(port)
    assert port.path == PATH


def test_allocation_can_fail():
    table = PointerHandleTable(Nondet(seed=0, script={Kind.BOOL: [0, 1]}), can_fail=True)
    assert table.new_port(True, PATH) is None
    assert isinstance(table.new_port(True, PATH), HandleState)


def test_match_port_follows_on_connect(table):
    assert table.match_port(PATH) is None
    port = table.new_port(True, PATH)
    table.on_connect_return(port)
    assert table.match_port(PATH) is port
    with pytest.raises(AssertionError):
        table.match_port("other.path")


def test_choose_active_handle(table):
    assert table.choose_active_handle() is None
    port = table.new_port(False, PATH)
    table.on_waitany_return(port)
    assert table.choose_active_handle() is port
    table.free(port)
    with pytest.raises(AssertionError):
        table.choose_active_handle()


def test_cookies_round_trip(table):
    port = table.new_port(True, PATH)
    chan = table.new_channel(port)
    table.set_cookie(port, "a")
    table.set_cookie_channel(chan, "b")
    assert table.get_cookie_port(port) == "a"
    assert table.get_cookie(chan) == "b"
    table.set_cookie_port(port, "c")
    assert table.get_cookie(port) == "c"
    assert table.get_cookie_channel(chan) == "b"


def test_new_nd_msg_scripted():
    table = PointerHandleTable(
        Nondet(seed=0, script={Kind.MSG_LEN: [3, 10], Kind.MSG_ID: [4, 0, 5]})
    )
    chan = table.new_channel(None)
    assert table.msg_id(chan) == 4
    assert table.msg_len(chan) == 3
    table.new_nd_msg(chan)
    assert table.msg_id(chan) == 5
    assert table.msg_len(chan) == 10


def test_msg_setters(table):
    chan = table.new_channel(None)
    table.set_msg_id(chan, 0)
    table.set_msg_len(chan, 64)
    assert not table.has_msg(chan)
    assert table.msg_len(chan) == 64


def test_invalid_handle_raises(table):
    with pytest.raises(ValueError):
        table.get_cookie(None)
    with pytest.raises(ValueError):
        table.free(None)