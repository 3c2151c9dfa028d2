"""日志格式化器与上下文过滤器的测试用例。"""

import json
import logging

from app.packages.hierarchy.core.actor import set_current_actor
from app.packages.hierarchy.core.logger import JsonFormatter, RequestIdFilter, set_request_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("app", logging.INFO, __file__, 1, "moved %s", ("HR",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_structured_fields():
    set_request_id("req-1")
    set_current_actor(5)
    try:
        record = _record(department_id=3, operation="move")
        RequestIdFilter().filter(record)
        payload = json.loads(JsonFormatter().format(record))
    finally:
        set_request_id(None)

    assert payload["msg"] == "moved HR"
    assert payload["request_id"] == "req-1"
    assert payload["actor_id"] == 5
    assert payload["department_id"] == 3
    assert payload["operation"] == "move"
    assert "kind" not in payload
