"""
Test doubles for prepmock tests.

Provides fakes for code that accepts any ``NetworkInterfaceLike`` and a
builder for throwaway sysfs trees read by ``NetworkInterface``.
"""

from .network_interfaces import FakeNetworkInterface, FailingNetworkInterface, FakeSysfs

__all__ = ["FakeNetworkInterface", "FailingNetworkInterface", "FakeSysfs"]
