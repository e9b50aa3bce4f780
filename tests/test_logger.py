import logging

from casewarden.util.logger import (
    ColorFormatter,
    PromptToolkitHandler,
    get_log_filepath,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


class DummyStream:
    def isatty(self):
        return True


def test_get_logger_has_console_and_file_handlers():
    logger = get_logger("casewarden_test_logger")
    assert any(isinstance(h, PromptToolkitHandler) for h in logger.handlers)
    assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    assert logger.propagate is False


def test_setup_logger_is_idempotent():
    first = setup_logger("casewarden_test_idem")
    handler_count = len(first.handlers)
    assert setup_logger("casewarden_test_idem") is first
    assert len(first.handlers) == handler_count


def test_color_formatter_wraps_by_level():
    formatter = ColorFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("test", logging.WARNING, "", 0, "delivery failed", None, None)
    formatted = formatter.format(record)
    assert formatted.startswith("\033[33m")
    assert "delivery failed" in formatted


def test_should_use_color_follows_tty(monkeypatch):
    monkeypatch.setattr("sys.stderr", DummyStream())
    assert should_use_color() is True


def test_log_filepath_is_stable():
    assert get_log_filepath() == get_log_filepath()
    assert get_log_filepath().parent.exists()


def test_handle_exception_logs_error(caplog):
    with caplog.at_level(logging.ERROR):
        try:
            raise ValueError("fail")
        except ValueError as exc:
            handle_exception(ValueError, exc, exc.__traceback__)
    assert any("Uncaught exception" in record.message for record in caplog.records)
