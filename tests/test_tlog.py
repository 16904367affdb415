import io
import re
import sys

from trustymodel.tlog import LogLevel, TLogger


def test_error_is_written_with_tag_and_formatting():
    out = io.StringIO()
    logger = TLogger("ss-ipc", LogLevel.INFO, out)
    text = logger.error("failed (%d) on %s\n", -4, "chan")
    assert re.fullmatch(r"ss-ipc: \d+: failed \(-4\) on chan\n", out.getvalue())
    assert text == out.getvalue()


def test_line_number_is_callers_line():
    out = io.StringIO()
    logger = TLogger("tag", LogLevel.DEBUG, out)
    expected = sys._getframe().f_lineno + 1
    logger.warning("w")
    assert out.getvalue() == f"tag: {expected}: w"


def test_log_reports_callers_line():
    out = io.StringIO()
    logger = TLogger("tag", LogLevel.DEBUG, out)
    expected = sys._getframe().f_lineno + 1
    logger.log(LogLevel.INFO, "x")
    assert out.getvalue() == f"tag: {expected}: x"


def test_default_level_filters_debug():
    out = io.StringIO()
    logger = TLogger("t", stream=out)
    assert logger.debug("hidden") is None
    assert out.getvalue() == ""
    assert logger.info("shown") is not None
    assert out.getvalue().endswith("shown")


def test_level_none_suppresses_everything():
    out = io.StringIO()
    logger = TLogger("t", LogLevel.NONE, out)
    assert logger.critical("c") is None
    assert logger.error("e") is None
    assert out.getvalue() == ""


def test_error_level_keeps_critical_drops_warning():
    out = io.StringIO()
    logger = TLogger("t", LogLevel.ERROR, out)
    logger.warning("warn")
    logger.critical("crit")
    assert "warn" not in out.getvalue()
    assert out.getvalue().endswith("crit")


def test_message_without_args_is_not_formatted():
    out = io.StringIO()
    logger = TLogger("t", LogLevel.INFO, out)
    logger.info("100%")
    assert out.getvalue().endswith(": 100%")


def test_default_stream_is_stderr(capsys):
    logger = TLogger("err")
    logger.error("to stderr")
    captured = capsys.readouterr()
    assert captured.err.startswith("err: ")
    assert captured.err.endswith("to stderr")
    assert captured.out == ""