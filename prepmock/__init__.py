"""
prepmock package init.
Exports the sealed network interface, the delegate and the interception tools.
"""

import datetime
import json
import logging
import os

from .delegate import Delegate
from .exceptions import InterceptionError, MockingError, PrepmockError, StateQueryError
from .interception import InterceptionManager, intercept, prepare_for_test
from .mocking import is_mock, mock_final, reset_mocks, when
from .network_interface import NetworkInterface, NetworkInterfaceLike


class JSONFormatter(logging.Formatter):
    """JSON formatter emitting one object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
            context = getattr(record.exc_info[1], "context", None)
            if context:
                log_entry["context"] = context

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING") -> None:
    """
    Setup basic logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    use_json = os.environ.get("PREPMOCK_LOG_JSON", "false").lower() == "true"
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    if use_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    else:
        logging.basicConfig(level=getattr(logging, level.upper()))


__all__ = [
    "Delegate",
    "InterceptionError",
    "InterceptionManager",
    "JSONFormatter",
    "MockingError",
    "NetworkInterface",
    "NetworkInterfaceLike",
    "PrepmockError",
    "StateQueryError",
    "intercept",
    "is_mock",
    "mock_final",
    "prepare_for_test",
    "reset_mocks",
    "setup_logging",
    "when",
]
