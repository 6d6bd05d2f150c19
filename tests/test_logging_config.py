import json
import logging
import sys

from threadbridge.logging_config import JSONFormatter, LoggerAdapter, get_logger


def _record(msg="Relaying message", context=None, exc_info=None):
    record = logging.LogRecord("threadbridge.relay", logging.INFO, __file__, 1, msg, None, exc_info)
    if context is not None:
        record.context = context
    return record


class TestJSONFormatter:
    def test_includes_service_and_context(self):
        data = json.loads(JSONFormatter().format(_record(context={"session_key": "-100:42"})))

        assert data["service"] == "threadbridge"
        assert data["level"] == "INFO"
        assert data["logger"] == "threadbridge.relay"
        assert data["message"] == "Relaying message"
        assert data["context"] == {"session_key": "-100:42"}

    def test_omits_empty_context(self):
        data = json.loads(JSONFormatter().format(_record(context={})))
        assert "context" not in data

    def test_non_json_values_are_stringified(self):
        data = json.loads(JSONFormatter().format(_record(context={"key": object()})))
        assert data["context"]["key"].startswith("<object")

    def test_exception_is_rendered(self):
        try:
            raise RuntimeError("assistant down")
        except RuntimeError:
            data = json.loads(JSONFormatter().format(_record(exc_info=sys.exc_info())))

        assert "RuntimeError: assistant down" in data["exception"]


class TestLoggerAdapter:
    def test_merges_bound_and_call_context(self):
        adapter = LoggerAdapter(get_logger("relay"), {"update_id": 9})

        msg, kwargs = adapter.process("hello", {"context": {"text_length": 5}})

        assert msg == "hello"
        assert kwargs["extra"] == {"context": {"update_id": 9, "text_length": 5}}

    def test_get_logger_prefix(self):
        assert get_logger("relay").name == "threadbridge.relay"
