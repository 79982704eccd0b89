"""
Call-site rewriting.

A rewritten function is recompiled from its own source with attribute calls
``obj.method(...)`` turned into ``dispatch(obj, "method", ...)``. The new
function shares the original's globals, closure cells, defaults and metadata,
so apart from the routing it behaves exactly like the original.
"""

from __future__ import annotations

import ast
import functools
import inspect
import logging
import textwrap
from types import FunctionType
from typing import Any, Callable, FrozenSet, Iterable, Optional, Tuple

from ..exceptions import InterceptionError
from ..mocking import dispatch
from ..utils.logging_utils import log_interception_event

logger = logging.getLogger(__name__)

DISPATCH_NAME = "_prepmock_dispatch"
FACTORY_NAME = "_prepmock_factory"
REWRITTEN_MARKER = "__prepmock_rewritten__"


def intercepted_method_names(types: Iterable[type]) -> Optional[FrozenSet[str]]:
    """Names of the methods defined by ``types``; None means every method."""
    types = tuple(types)
    if not types:
        return None
    names = set()
    for cls in types:
        for klass in cls.__mro__:
            if klass is object:
                continue
            for name, value in vars(klass).items():
                if name.startswith("__") and name.endswith("__"):
                    continue
                if isinstance(value, (staticmethod, classmethod)) or callable(value):
                    names.add(name)
    return frozenset(names)


class CallSiteRewriter(ast.NodeTransformer):
    """Route attribute calls through the dispatcher."""

    def __init__(
        self, method_names: Optional[FrozenSet[str]], owner: Optional[str] = None
    ):
        self.method_names = method_names
        self.owner = owner.lstrip("_") if owner else None
        self.rewritten = 0

    def visit_Call(self, node: ast.Call) -> ast.AST:
        self.generic_visit(node)
        func = node.func
        if not isinstance(func, ast.Attribute):
            return node
        if self.method_names is not None and func.attr not in self.method_names:
            return node
        self.rewritten += 1
        call = ast.Call(
            func=ast.Name(id=DISPATCH_NAME, ctx=ast.Load()),
            args=[func.value, ast.Constant(value=func.attr), *node.args],
            keywords=node.keywords,
        )
        return ast.copy_location(call, node)

    # Class members are compiled outside their class body, so private names
    # have to be mangled by hand.
    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        self.generic_visit(node)
        node.attr = self._mangle(node.attr)
        return node

    def visit_Name(self, node: ast.Name) -> ast.AST:
        node.id = self._mangle(node.id)
        return node

    def visit_arg(self, node: ast.arg) -> ast.AST:
        self.generic_visit(node)
        node.arg = self._mangle(node.arg)
        return node

    def visit_keyword(self, node: ast.keyword) -> ast.AST:
        self.generic_visit(node)
        if node.arg is not None:
            node.arg = self._mangle(node.arg)
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        self.generic_visit(node)
        node.name = self._mangle(node.name)
        return node

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:
        # Bases and decorators belong to the enclosing scope, the body to the
        # nested class.
        nested_owner = node.name.lstrip("_") or None
        node.name = self._mangle(node.name)
        for field in ("bases", "keywords", "decorator_list"):
            setattr(node, field, [self.visit(item) for item in getattr(node, field)])
        owner = self.owner
        self.owner = nested_owner
        try:
            node.body = [self.visit(stmt) for stmt in node.body]
        finally:
            self.owner = owner
        return node

    def visit_Global(self, node: ast.Global) -> ast.AST:
        node.names = [self._mangle(name) for name in node.names]
        return node

    visit_Nonlocal = visit_Global

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> ast.AST:
        self.generic_visit(node)
        if node.name is not None:
            node.name = self._mangle(node.name)
        return node

    def _mangle(self, name: str) -> str:
        if self.owner and name.startswith("__") and not name.endswith("__"):
            return f"_{self.owner}{name}"
        return name


def rewrite_function(
    func: Callable[..., Any],
    types: Tuple[type, ...] = (),
    owner: Optional[type] = None,
) -> Callable[..., Any]:
    """Return a copy of ``func`` whose call sites are intercepted.

    Args:
        func: Plain Python function or coroutine function
        types: Restrict interception to mocks of these types; when empty
            every attribute call is routed and any mock is intercepted
        owner: Class ``func`` was defined in, for private name mangling
    """
    if not isinstance(func, FunctionType):
        raise InterceptionError(
            "Only Python functions can be rewritten", context={"target": repr(func)}
        )
    if is_rewritten(func):
        func = func.__wrapped__
    if func.__name__ == "<lambda>":
        raise InterceptionError(
            "Lambdas cannot be rewritten", context={"target": func.__qualname__}
        )
    if hasattr(func, "__wrapped__"):
        raise InterceptionError(
            "Decorated callables cannot be rewritten",
            context={"target": func.__qualname__},
        )

    funcdef, filename = _parse_function(func)
    rewriter = CallSiteRewriter(
        intercepted_method_names(types), owner.__name__ if owner else None
    )
    funcdef = rewriter.visit(funcdef)
    _strip_definition_time_expressions(funcdef)

    freevars = func.__code__.co_freevars
    module = _build_factory(funcdef, freevars)
    code = compile(module, filename, "exec")
    namespace: dict = {}
    exec(code, func.__globals__, namespace)

    try:
        cells = [cell.cell_contents for cell in (func.__closure__ or ())]
    except ValueError as e:
        raise InterceptionError(
            "Closure variables are not bound yet",
            context={"target": func.__qualname__, "freevars": ", ".join(freevars)},
            original_exception=e,
        ) from e
    dispatcher = functools.partial(dispatch, tuple(types))
    rewritten = namespace[FACTORY_NAME](*cells, dispatcher)

    functools.update_wrapper(rewritten, func)
    rewritten.__defaults__ = func.__defaults__
    rewritten.__kwdefaults__ = func.__kwdefaults__
    setattr(rewritten, REWRITTEN_MARKER, True)
    log_interception_event(
        logger,
        "Rewrote",
        f"{func.__module__}.{func.__qualname__} ({rewriter.rewritten} call site(s))",
    )
    return rewritten


def is_rewritten(func: Any) -> bool:
    return getattr(func, REWRITTEN_MARKER, False)


def _parse_function(func: FunctionType) -> Tuple[ast.AST, str]:
    try:
        lines, lineno = inspect.getsourcelines(func)
        filename = inspect.getsourcefile(func) or "<prepmock>"
    except (OSError, TypeError) as e:
        raise InterceptionError(
            "Source is not available",
            context={"target": func.__qualname__},
            original_exception=e,
        ) from e
    try:
        tree = ast.parse(textwrap.dedent("".join(lines)))
    except SyntaxError as e:
        raise InterceptionError(
            "Source could not be parsed",
            context={"target": func.__qualname__},
            original_exception=e,
        ) from e
    ast.increment_lineno(tree, lineno - 1)
    funcdef = tree.body[0]
    if not isinstance(funcdef, (ast.FunctionDef, ast.AsyncFunctionDef)):
        raise InterceptionError(
            "Source is not a function definition",
            context={"target": func.__qualname__},
        )
    return funcdef, filename


def _strip_definition_time_expressions(funcdef: ast.AST) -> None:
    # Decorators, defaults and annotations were evaluated when the original
    # was defined; the rewritten copy takes them from the original instead.
    funcdef.decorator_list = []
    funcdef.returns = None
    arguments = funcdef.args
    arguments.defaults = []
    arguments.kw_defaults = [None] * len(arguments.kwonlyargs)
    for arg in (
        *arguments.posonlyargs,
        *arguments.args,
        *arguments.kwonlyargs,
        arguments.vararg,
        arguments.kwarg,
    ):
        if arg is not None:
            arg.annotation = None


def _build_factory(funcdef: ast.AST, freevars: Tuple[str, ...]) -> ast.Module:
    """Wrap ``funcdef`` in a factory taking its free variables and the dispatcher.

    Free variables become parameters of the factory so the rewritten function
    closes over the same values, including the ``__class__`` cell that
    zero-argument ``super()`` needs.
    """
    params = ", ".join((*freevars, DISPATCH_NAME))
    module = ast.parse(f"def {FACTORY_NAME}({params}):\n    pass\n")
    factory = module.body[0]
    factory.body = [
        funcdef,
        ast.Return(value=ast.Name(id=funcdef.name, ctx=ast.Load())),
    ]
    return ast.fix_missing_locations(module)
