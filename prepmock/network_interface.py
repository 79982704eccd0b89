"""
Sealed network interface type backed by Linux sysfs.

``NetworkInterface`` plays the part of a final system class: it cannot be
subclassed, its class attributes cannot be replaced (so
``unittest.mock.patch.object`` fails on it) and its instances are immutable.
Code that needs a test double should either accept anything satisfying
``NetworkInterfaceLike`` or run inside an interception scope (see
``prepmock.interception``).
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Protocol, final, runtime_checkable

from .exceptions import StateQueryError
from .utils.logging_utils import log_state_query_error

logger = logging.getLogger(__name__)

SYSFS_NET_ENV = "PREPMOCK_SYSFS_NET"
DEFAULT_SYSFS_NET = "/sys/class/net"

# Interface flags from <linux/if.h>
IFF_UP = 0x1
IFF_LOOPBACK = 0x8
IFF_POINTOPOINT = 0x10
IFF_RUNNING = 0x40
IFF_MULTICAST = 0x1000


def sysfs_net_root() -> Path:
    """Directory holding one entry per network interface."""
    return Path(os.environ.get(SYSFS_NET_ENV, DEFAULT_SYSFS_NET))


@runtime_checkable
class NetworkInterfaceLike(Protocol):
    """Anything whose link state can be queried."""

    def is_up(self) -> bool: ...


class SealedMeta(type):
    """Metaclass for types that can be neither subclassed nor patched."""

    def __new__(mcs, name: str, bases: tuple, namespace: dict, **kwargs: Any):
        for base in bases:
            if isinstance(base, SealedMeta):
                raise TypeError(
                    f"type '{base.__name__}' is not an acceptable base type"
                )
        return super().__new__(mcs, name, bases, namespace, **kwargs)

    def __setattr__(cls, name: str, value: Any) -> None:
        raise TypeError(
            f"cannot set '{name}' attribute of immutable type '{cls.__name__}'"
        )

    def __delattr__(cls, name: str) -> None:
        raise TypeError(
            f"cannot delete '{name}' attribute of immutable type '{cls.__name__}'"
        )


@final
class NetworkInterface(metaclass=SealedMeta):
    """A network interface of the local host.

    Instances are lightweight handles holding the interface name and index;
    every query reads the current state from sysfs.
    """

    _name: Optional[str] = None
    _index: int = -1

    def __init__(self, name: str, index: int = -1):
        if not isinstance(name, str) or not name:
            raise ValueError(f"Invalid interface name: {name!r}")
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_index", index)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is immutable")

    def __repr__(self) -> str:
        return f"NetworkInterface(name={self._name!r}, index={self._index})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NetworkInterface):
            return NotImplemented
        return (self._name, self._index) == (other._name, other._index)

    def __hash__(self) -> int:
        return hash((self._name, self._index))

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def index(self) -> int:
        return self._index

    @classmethod
    def get_by_name(cls, name: str) -> Optional["NetworkInterface"]:
        """Look up an interface by name, returning None if there is none."""
        if not _is_interface_name(name):
            return None
        if not (sysfs_net_root() / name).is_dir():
            return None
        return cls(name, _read_int(name, "ifindex"))

    @classmethod
    def get_by_index(cls, index: int) -> Optional["NetworkInterface"]:
        """Look up an interface by index, returning None if there is none."""
        for iface in cls.get_network_interfaces():
            if iface.index == index:
                return iface
        return None

    @classmethod
    def get_network_interfaces(cls) -> List["NetworkInterface"]:
        """All interfaces of the host, ordered by index."""
        root = sysfs_net_root()
        try:
            names = sorted(entry.name for entry in root.iterdir() if entry.is_dir())
        except OSError as e:
            raise StateQueryError(
                "Failed to enumerate network interfaces",
                context={"root": str(root)},
                original_exception=e,
            ) from e
        interfaces = [cls(name, _read_int(name, "ifindex")) for name in names]
        return sorted(interfaces, key=lambda iface: iface.index)

    def is_up(self) -> bool:
        """Whether the interface is administratively up and running."""
        flags = self._flags()
        return bool(flags & IFF_UP) and bool(flags & IFF_RUNNING)

    def is_loopback(self) -> bool:
        return bool(self._flags() & IFF_LOOPBACK)

    def is_point_to_point(self) -> bool:
        return bool(self._flags() & IFF_POINTOPOINT)

    def supports_multicast(self) -> bool:
        return bool(self._flags() & IFF_MULTICAST)

    def get_mtu(self) -> int:
        return _read_int(self._bound_name("mtu"), "mtu")

    def get_hardware_address(self) -> Optional[bytes]:
        """The link-layer address, or None when the interface has none."""
        raw = _read_attribute(self._bound_name("address"), "address")
        if not raw:
            return None
        try:
            address = bytes.fromhex(raw.replace(":", ""))
        except ValueError as e:
            raise StateQueryError(
                "Malformed hardware address",
                interface=self._name,
                attribute="address",
                original_exception=e,
            ) from e
        if not any(address):
            return None
        return address

    def _flags(self) -> int:
        return _read_int(self._bound_name("flags"), "flags", base=16)

    def _bound_name(self, attribute: str) -> str:
        if self._name is None:
            error = StateQueryError(
                "Interface handle is not bound to a system device",
                interface=repr(self),
                attribute=attribute,
            )
            log_state_query_error(logger, self, attribute, error)
            raise error
        return self._name


def _is_interface_name(name: Any) -> bool:
    # Interface names are single path components below the sysfs root.
    return (
        isinstance(name, str)
        and name not in ("", ".", "..")
        and "/" not in name
        and "\0" not in name
    )


def _read_attribute(name: str, attribute: str) -> str:
    path = sysfs_net_root() / name / attribute
    try:
        return path.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError) as e:
        log_state_query_error(logger, name, attribute, e)
        raise StateQueryError(
            f"Failed to read {attribute}",
            interface=name,
            attribute=attribute,
            context={"path": str(path)},
            original_exception=e,
        ) from e


def _read_int(name: str, attribute: str, base: int = 10) -> int:
    raw = _read_attribute(name, attribute)
    try:
        return int(raw, base)
    except ValueError as e:
        raise StateQueryError(
            f"Malformed {attribute} value",
            interface=name,
            attribute=attribute,
            context={"value": raw},
            original_exception=e,
        ) from e
