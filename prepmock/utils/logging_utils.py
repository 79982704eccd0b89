"""
Centralized logging utilities for prepmock.

Provides standardized logging functions so interception, mocking and
interface queries share one log format.
"""

import logging
from typing import Any


def log_interception_event(
    logger: logging.Logger, event_type: str, details: str = ""
) -> None:
    """Log rewrite/prepare/revert events with consistent format."""
    detail_str = f": {details}" if details else ""
    logger.debug(f"[INTERCEPTION] {event_type}{detail_str}")


def log_mock_event(logger: logging.Logger, event_type: str, details: str = "") -> None:
    """Log mock lifecycle events with consistent format."""
    detail_str = f": {details}" if details else ""
    logger.debug(f"[MOCK] {event_type}{detail_str}")


def log_dispatch(
    logger: logging.Logger, target: Any, method: str, intercepted: bool
) -> None:
    """Log where an intercepted call site sent a call."""
    route = "stub" if intercepted else "real"
    logger.debug(f"[DISPATCH] {type(target).__name__}.{method} -> {route}")


def log_state_query_error(
    logger: logging.Logger, interface: Any, attribute: str, error: Exception
) -> None:
    """Log interface state query failures with consistent format."""
    logger.warning(f"Error querying {attribute} of interface {interface}: {error}")
