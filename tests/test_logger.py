import pytest

import ripple.server.logger as logging_setup
from ripple.server.logger import access_level, get_logger, log_access, logger


@pytest.fixture
def records():
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(sink_id)


@pytest.mark.parametrize(
    "status_code, level",
    [(200, "INFO"), (201, "INFO"), (304, "INFO"), (404, "WARNING"), (412, "WARNING"), (500, "ERROR")],
)
def test_access_level(status_code, level):
    assert access_level(status_code) == level


def test_get_logger_binds_name(records):
    get_logger("Relationships").info("hello")
    logger.info("plain")
    assert [r["extra"]["name"] for r in records] == ["Relationships", "ripple"]


def test_log_access(records):
    log_access("GET", "/users", 200, 1.5)
    log_access("PATCH", "/users/1", 403, 3.0, user_id="2")

    ok, denied = records
    assert ok["level"].name == "INFO"
    assert ok["extra"]["name"] == "Access"
    assert ok["message"] == "GET /users 200 1.5ms user=-"
    assert denied["level"].name == "WARNING"
    assert denied["extra"]["user_id"] == "2"


def test_log_access_can_be_disabled(records, monkeypatch):
    monkeypatch.setattr(logging_setup, "LOG_ACCESS", False)
    log_access("GET", "/users", 200, 1.0)
    assert records == []
