"""Exceptions for prepmock with contextual information."""

from typing import Any, Dict, Optional


class PrepmockError(Exception):
    """Base error for prepmock with contextual information."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        """
        Initialize a prepmock error.

        Args:
            message: Error message
            context: Optional context information (interface, attribute, caller, etc.)
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.context = context or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Get string representation with context."""
        base_msg = super().__str__()
        if self.context:
            context_items = []
            for key, value in self.context.items():
                if isinstance(value, str) and len(value) > 50:
                    value = value[:47] + "..."
                context_items.append(f"{key}={value}")
            return f"{base_msg} (Context: {', '.join(context_items)})"
        return base_msg

    def __repr__(self) -> str:
        base_repr = super().__repr__()
        if self.context:
            return f"{base_repr} (context={self.context!r})"
        return base_repr

    def add_context(self, key: str, value: Any) -> None:
        """Add context information to the exception."""
        self.context[key] = value

    def get_context(self, key: str, default: Any = None) -> Any:
        """Get context information from the exception, or ``default``."""
        return self.context.get(key, default)


class StateQueryError(PrepmockError):
    """Querying the state of a network interface failed.

    ``interface`` and ``attribute`` name what was being read and lead the
    context; further details go in ``context``.
    """

    def __init__(
        self,
        message: str,
        interface: Optional[str] = None,
        attribute: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if interface is not None:
            details["interface"] = interface
        if attribute is not None:
            details["attribute"] = attribute
        details.update(context or {})
        super().__init__(message, details, original_exception)

    @property
    def interface(self) -> Optional[str]:
        return self.context.get("interface")

    @property
    def attribute(self) -> Optional[str]:
        return self.context.get("attribute")


class MockingError(PrepmockError):
    """A mock could not be created or is not a mock."""

    pass


class InterceptionError(PrepmockError):
    """A caller could not be rewritten or prepared for interception."""

    pass
