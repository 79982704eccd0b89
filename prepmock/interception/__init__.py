from .preparation import (
    InterceptionManager,
    intercept,
    prepare_for_test,
    rewrite_member,
)
from .rewriter import (
    CallSiteRewriter,
    intercepted_method_names,
    is_rewritten,
    rewrite_function,
)

# Explicit exports for mypy
__all__ = [
    "CallSiteRewriter",
    "InterceptionManager",
    "intercept",
    "intercepted_method_names",
    "is_rewritten",
    "prepare_for_test",
    "rewrite_function",
    "rewrite_member",
]
