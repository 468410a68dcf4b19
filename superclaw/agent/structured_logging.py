"""
Structured Logging — Per-subsystem structured logging with JSON output.

Provides contextual logging with subsystem tags and per-message request
correlation (request id, user id, origin channel).
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from enum import Enum
from typing import Any, Dict

# Context variables for request correlation
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
channel_var: ContextVar[str] = ContextVar("channel", default="")


class Subsystem(str, Enum):
    ROUTER = "router"
    USAGE = "usage"
    CHANNEL = "channel"
    API = "api"
    SCHEDULER = "scheduler"


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "subsystem": getattr(record, "subsystem", "general"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add context vars if set
        req_id = request_id_var.get("")
        if req_id:
            log_entry["request_id"] = req_id
        usr_id = user_id_var.get("")
        if usr_id:
            log_entry["user_id"] = usr_id
        channel = channel_var.get("")
        if channel:
            log_entry["channel"] = channel

        extra = getattr(record, "extra_data", None)
        if extra:
            log_entry["data"] = extra

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(log_entry, default=str)


class SubsystemLogger:
    """Logger wrapper that adds subsystem context."""

    def __init__(self, subsystem: Subsystem, logger: logging.Logger):
        self._subsystem = subsystem
        self._logger = logger

    def _log(self, level: int, msg: str, extra_data: Any = None, **kwargs):
        extra = {"subsystem": self._subsystem.value}
        if extra_data:
            extra["extra_data"] = extra_data
        self._logger.log(level, msg, extra=extra, **kwargs)

    def debug(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.DEBUG, msg, data, **kwargs)

    def info(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.INFO, msg, data, **kwargs)

    def warning(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.WARNING, msg, data, **kwargs)

    def error(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.ERROR, msg, data, **kwargs)

    def exception(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.ERROR, msg, data, exc_info=True, **kwargs)


# ── Logger Registry ──
_loggers: Dict[str, SubsystemLogger] = {}
_structured_enabled = False


def get_subsystem_logger(subsystem: Subsystem) -> SubsystemLogger:
    """Get a structured logger for a subsystem."""
    key = subsystem.value
    if key not in _loggers:
        logger = logging.getLogger(f"superclaw.{key}")
        _loggers[key] = SubsystemLogger(subsystem, logger)
    return _loggers[key]


def enable_structured_logging(level: int = logging.INFO):
    """Enable JSON structured logging for every `superclaw.*` logger."""
    global _structured_enabled
    if _structured_enabled:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger("superclaw")
    root.addHandler(handler)
    root.setLevel(level)
    _structured_enabled = True


def set_request_context(request_id: str = "", user_id: str = "", channel: str = ""):
    """Set context variables for the current request."""
    if request_id:
        request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)
    if channel:
        channel_var.set(channel)


def clear_request_context():
    request_id_var.set("")
    user_id_var.set("")
    channel_var.set("")


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())[:12]


# ── Convenience loggers ──
router_log = get_subsystem_logger(Subsystem.ROUTER)
usage_log = get_subsystem_logger(Subsystem.USAGE)
channel_log = get_subsystem_logger(Subsystem.CHANNEL)
api_log = get_subsystem_logger(Subsystem.API)
scheduler_log = get_subsystem_logger(Subsystem.SCHEDULER)
