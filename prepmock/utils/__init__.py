"""Utility helpers for prepmock."""

from .logging_utils import (
    log_dispatch,
    log_interception_event,
    log_mock_event,
    log_state_query_error,
)

__all__ = [
    "log_dispatch",
    "log_interception_event",
    "log_mock_event",
    "log_state_query_error",
]
