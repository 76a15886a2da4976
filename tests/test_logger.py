# tests/test_logger.py
import logging
from datetime import date
from unittest.mock import AsyncMock

from common.logging_config import LOGGER_NAME, configure_logging
from tools.voice_tools import VoiceTools
from utils.logger import ToolCallLogger, truncate


def test_truncate():
    assert truncate("short") == "short"
    assert truncate("x" * 300, limit=10) == "x" * 10 + " …[truncated]"
    assert truncate({"text": "Корт"}) == '{"text": "Корт"}'


def test_configure_logging_is_idempotent():
    logger = configure_logging(logging.DEBUG)
    n = len(logger.handlers)
    assert configure_logging(logging.DEBUG) is logger
    assert len(logger.handlers) == n
    assert logger.name == LOGGER_NAME


def test_tool_call_logger_lines(caplog):
    log = ToolCallLogger(logging.getLogger(LOGGER_NAME), "sess-9")
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        log.start("ping", {"message": "hi"})
        log.result("ping", True, 12.34)
        log.interaction(user_id="u-1", command="book_court", success=True, response_time_ms=5)

    lines = [r.getMessage() for r in caplog.records]
    assert lines[0].startswith("TOOL START | session=sess-9 tool=ping")
    assert "elapsed_ms=12.3" in lines[1]
    assert "user=u-1 command=book_court success=True" in lines[2]


async def test_voice_booking_logs_interaction(caplog, fake_service, speech):
    tools = VoiceTools(AsyncMock(return_value=fake_service), speech, today=lambda: date(2024, 12, 27))
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        await tools.voice_booking("Забронируй корт на завтра в 14:00", "user-123", "sess-1")

    records = [r.getMessage() for r in caplog.records if "VOICE INTERACTION" in r.getMessage()]
    assert len(records) == 1
    assert "session=sess-1 user=user-123 command=book_court success=True" in records[0]
