"""
Mocks for sealed classes.

A mock created by ``mock_final`` is a real, uninitialised instance of the
mocked class, so it passes every ``isinstance`` and ``type`` check the real
class would. Its stubs live on a ``unittest.mock`` shadow object returned by
``when``. The real methods are still the ones the class defines: only call
sites rewritten by ``prepmock.interception`` consult the shadow, through
``dispatch``.
"""

import logging
from typing import Any, Dict, NamedTuple, Tuple, Type, TypeVar
from unittest.mock import NonCallableMagicMock, create_autospec

from .exceptions import MockingError
from .utils.logging_utils import log_dispatch, log_mock_event

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _MockRecord(NamedTuple):
    instance: Any
    shadow: NonCallableMagicMock


# Keyed by id(); the record keeps the instance alive so ids are not reused.
_registry: Dict[int, _MockRecord] = {}


def mock_final(cls: Type[T]) -> T:
    """Create a mock of ``cls`` that is a genuine, unbound instance of it."""
    if not isinstance(cls, type):
        raise MockingError(
            "Only classes can be mocked", context={"target": repr(cls)}
        )
    try:
        instance = object.__new__(cls)
    except TypeError as e:
        raise MockingError(
            f"Cannot instantiate {cls.__name__} without its constructor",
            context={"target": cls.__qualname__},
            original_exception=e,
        ) from e
    shadow = create_autospec(cls, instance=True, spec_set=True)
    _registry[id(instance)] = _MockRecord(instance, shadow)
    log_mock_event(logger, "Created", cls.__qualname__)
    return instance


def is_mock(obj: Any) -> bool:
    record = _registry.get(id(obj))
    return record is not None and record.instance is obj


def when(mock: Any) -> NonCallableMagicMock:
    """Return the stub holder of ``mock``.

    Configure it like any autospecced ``unittest.mock`` object::

        when(iface).is_up.return_value = True
        when(iface).is_up.assert_called_once_with()
    """
    record = _registry.get(id(mock))
    if record is None or record.instance is not mock:
        raise MockingError("Object is not a mock", context={"target": repr(mock)})
    return record.shadow


def reset_mocks() -> None:
    """Forget every mock created so far."""
    count = len(_registry)
    _registry.clear()
    log_mock_event(logger, "Reset", f"{count} mock(s) released")


def dispatch(
    types: Tuple[type, ...], target: Any, method: str, /, *args: Any, **kwargs: Any
) -> Any:
    """Perform ``target.method(*args, **kwargs)`` from an intercepted call site.

    Calls on a registered mock go to its shadow when ``types`` is empty or the
    mock is an instance of one of ``types``; everything else is a plain call.
    """
    record = _registry.get(id(target))
    intercepted = (
        record is not None
        and record.instance is target
        and (not types or isinstance(target, types))
    )
    log_dispatch(logger, target, method, intercepted)
    if intercepted:
        return getattr(record.shadow, method)(*args, **kwargs)
    return getattr(target, method)(*args, **kwargs)
