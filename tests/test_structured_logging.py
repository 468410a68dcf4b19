"""
Structured JSON log output with request context.
"""

import json
import logging

from superclaw.agent.structured_logging import (
    StructuredFormatter, Subsystem, clear_request_context, get_subsystem_logger, set_request_context,
    user_id_var,
)


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.setFormatter(StructuredFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


class TestStructuredLogging:
    def test_json_line_with_context(self):
        handler = ListHandler()
        underlying = logging.getLogger("superclaw.router")
        underlying.addHandler(handler)
        underlying.setLevel(logging.INFO)
        try:
            set_request_context(request_id="req-1", user_id="user-1", channel="telegram")
            get_subsystem_logger(Subsystem.ROUTER).info("Routed", data={"agent": "a-1"})
        finally:
            underlying.removeHandler(handler)

        entry = json.loads(handler.lines[-1])
        assert entry["subsystem"] == "router"
        assert entry["message"] == "Routed"
        assert entry["request_id"] == "req-1"
        assert entry["user_id"] == "user-1"
        assert entry["channel"] == "telegram"
        assert entry["data"] == {"agent": "a-1"}

    def test_exception_details(self):
        handler = ListHandler()
        underlying = logging.getLogger("superclaw.usage")
        underlying.addHandler(handler)
        try:
            try:
                raise RuntimeError("ledger down")
            except RuntimeError:
                get_subsystem_logger(Subsystem.USAGE).exception("Failed")
        finally:
            underlying.removeHandler(handler)

        entry = json.loads(handler.lines[-1])
        assert entry["level"] == "ERROR"
        assert entry["exception"]["type"] == "RuntimeError"
        assert entry["exception"]["message"] == "ledger down"

    def test_clear_request_context(self):
        set_request_context(request_id="req-2", user_id="user-2", channel="slack")
        set_request_context(request_id="req-3")
        assert user_id_var.get() == "user-2"

        clear_request_context()
        assert user_id_var.get() == ""
