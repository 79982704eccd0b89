"""
Interception scopes.

``intercept`` permanently rewrites the call sites of a function or class;
``prepare_for_test`` does the same for the duration of a ``with`` block or a
decorated test and puts the originals back afterwards.

Only the prepared callers are rewritten. A mock handed to code outside the
scope behaves like the sealed class it was made from, which usually means
the real method runs against an unbound instance and fails. Module-level
functions are swapped in the module that defines them, so modules that
imported the function by name keep calling the original.
"""

import functools
import inspect
import logging
import sys
from types import FunctionType
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from ..exceptions import InterceptionError
from ..utils.logging_utils import log_interception_event
from .rewriter import is_rewritten, rewrite_function

logger = logging.getLogger(__name__)

F = TypeVar("F")

PREPARATION_ATTR = "_prepmock_preparation"


def rewrite_member(
    member: Any, types: Tuple[type, ...], owner: Optional[type] = None
) -> Optional[Any]:
    """Rewritten replacement for a class member, or None if there is no code."""
    if isinstance(member, staticmethod):
        inner = rewrite_member(member.__func__, types, owner)
        return staticmethod(inner) if inner is not None else None
    if isinstance(member, classmethod):
        inner = rewrite_member(member.__func__, types, owner)
        return classmethod(inner) if inner is not None else None
    if not isinstance(member, FunctionType):
        return None

    preparation = getattr(member, PREPARATION_ATTR, None)
    if preparation is not None:
        rewritten = preparation(rewrite_function(member.__wrapped__, types, owner))
        rewritten.__dict__.update(
            {k: v for k, v in vars(member).items() if k != "__wrapped__"}
        )
        return rewritten
    if hasattr(member, "__wrapped__") and not is_rewritten(member):
        log_interception_event(
            logger,
            "Skipped",
            f"{member.__qualname__} is wrapped by a foreign decorator",
        )
        return None
    return rewrite_function(member, types, owner)


def intercept(*types: type) -> Callable[[F], F]:
    """Rewrite the decorated function or class so calls on mocks reach their stubs.

    With ``types`` given, only mocks of those types are intercepted;
    otherwise any mock is.
    """

    def decorator(target: F) -> F:
        if isinstance(target, type):
            for name, member in list(vars(target).items()):
                replacement = rewrite_member(member, types, target)
                if replacement is not None:
                    _set_member(target, name, replacement)
            log_interception_event(logger, "Intercepted", target.__qualname__)
            return target
        replacement = rewrite_member(target, types)
        if replacement is None:
            raise InterceptionError(
                "Target cannot be intercepted", context={"target": repr(target)}
            )
        return replacement

    return decorator


class InterceptionManager:
    """Applies rewritten callers in place and reverts them."""

    def __init__(self, types: Tuple[type, ...] = ()):
        self.types = tuple(types)
        self._originals: List[Tuple[Any, str, Any]] = []

    @property
    def applied(self) -> int:
        """Number of members currently swapped."""
        return len(self._originals)

    def prepare(self, caller: Any) -> None:
        if isinstance(caller, type):
            self._prepare_class(caller)
        elif isinstance(caller, FunctionType):
            self._prepare_function(caller)
        else:
            raise InterceptionError(
                "Only classes and functions can be prepared",
                context={"caller": repr(caller)},
            )

    def _prepare_class(self, cls: type) -> None:
        for name, member in list(vars(cls).items()):
            replacement = rewrite_member(member, self.types, cls)
            if replacement is not None:
                self._apply_member_patch(cls, name, replacement)

    def _prepare_function(self, func: FunctionType) -> None:
        module = sys.modules.get(func.__module__)
        if module is None or getattr(module, func.__name__, None) is not func:
            raise InterceptionError(
                "Function is not reachable from its module",
                context={"caller": func.__qualname__, "module": func.__module__},
            )
        self._apply_member_patch(
            module, func.__name__, rewrite_function(func, self.types)
        )

    def _apply_member_patch(self, owner: Any, name: str, new_member: Any) -> None:
        original = vars(owner)[name]
        _set_member(owner, name, new_member)
        self._originals.append((owner, name, original))
        log_interception_event(
            logger, "Prepared", f"{getattr(owner, '__name__', owner)}.{name}"
        )

    def revert_all(self) -> None:
        while self._originals:
            owner, name, original = self._originals.pop()
            setattr(owner, name, original)
            log_interception_event(
                logger, "Reverted", f"{getattr(owner, '__name__', owner)}.{name}"
            )


class prepare_for_test:
    """Prepare callers for interception while a block or a test runs.

    Usable as a context manager::

        with prepare_for_test(Delegate):
            assert Delegate().is_up(iface)

    or as a decorator on sync and async test functions::

        @prepare_for_test(Delegate)
        def test_delegate(self): ...
    """

    def __init__(self, *callers: Any, types: Tuple[type, ...] = ()):
        if not callers:
            raise InterceptionError("prepare_for_test needs at least one caller")
        self.callers = callers
        self.types = tuple(types)
        self._managers: List[InterceptionManager] = []

    def __enter__(self) -> InterceptionManager:
        manager = InterceptionManager(self.types)
        try:
            for caller in self.callers:
                manager.prepare(caller)
        except BaseException:
            manager.revert_all()
            raise
        self._managers.append(manager)
        return manager

    def __exit__(self, *exc_info: Any) -> None:
        self._managers.pop().revert_all()

    def __call__(self, func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self:
                    return await func(*args, **kwargs)

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                with self:
                    return func(*args, **kwargs)

        setattr(wrapper, PREPARATION_ATTR, self)
        return wrapper


def _set_member(owner: Any, name: str, value: Any) -> None:
    try:
        setattr(owner, name, value)
    except (TypeError, AttributeError) as e:
        raise InterceptionError(
            "Caller cannot be modified",
            context={
                "caller": getattr(owner, "__qualname__", repr(owner)),
                "member": name,
            },
            original_exception=e,
        ) from e
