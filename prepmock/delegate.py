"""Delegate that queries interface state on behalf of its caller."""

import logging

from .exceptions import StateQueryError
from .network_interface import NetworkInterfaceLike

logger = logging.getLogger(__name__)


class Delegate:
    """Forwards state queries to whatever interface it is handed."""

    def is_up(self, iface: NetworkInterfaceLike) -> bool:
        logger.debug(f"Querying link state of {iface!r}")
        try:
            return iface.is_up()
        except StateQueryError as e:
            e.add_context("caller", "Delegate.is_up")
            raise
