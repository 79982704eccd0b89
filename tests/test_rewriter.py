import ast
import inspect

import pytest

from prepmock import (
    InterceptionError,
    NetworkInterface,
    StateQueryError,
    mock_final,
    when,
)
from prepmock.interception import (
    CallSiteRewriter,
    intercept,
    intercepted_method_names,
    is_rewritten,
    rewrite_function,
)
from tests.mocks import callers
from tests.mocks.network_interfaces import FakeNetworkInterface


@pytest.fixture
def iface():
    """Fixture providing a NetworkInterface mock stubbed as up."""
    mock_interface = mock_final(NetworkInterface)
    when(mock_interface).is_up.return_value = True
    return mock_interface


class TestCallSiteRewriter:

    def _rewrite(self, source, names=None, owner=None):
        tree = CallSiteRewriter(names, owner).visit(ast.parse(source))
        return ast.unparse(ast.fix_missing_locations(tree))

    def test_rewrites_attribute_calls(self):
        assert (
            self._rewrite("x.is_up(1, k=2)")
            == "_prepmock_dispatch(x, 'is_up', 1, k=2)"
        )

    def test_leaves_plain_calls_alone(self):
        assert self._rewrite("is_up(x)") == "is_up(x)"

    def test_restricts_to_method_names(self):
        result = self._rewrite("x.is_up()\nlog.debug('m')", frozenset({"is_up"}))

        assert "_prepmock_dispatch(x, 'is_up')" in result
        assert "log.debug('m')" in result

    def test_rewrites_nested_calls(self):
        assert (
            self._rewrite("a.b(c.d())")
            == "_prepmock_dispatch(a, 'b', _prepmock_dispatch(c, 'd'))"
        )

    def test_mangles_private_names_for_owner(self):
        result = self._rewrite("self.__count()\nself.__dunder__", owner="_Monitor")

        assert "_prepmock_dispatch(self, '_Monitor__count')" in result
        assert "self.__dunder__" in result

    def test_mangles_parameters_and_nested_definitions(self):
        result = self._rewrite(
            "def __f(__x, *, __y):\n"
            "    def __inner():\n"
            "        return __x\n"
            "    class __Box:\n"
            "        __slot = 1\n"
            "    try:\n"
            "        pass\n"
            "    except OSError as __e:\n"
            "        pass\n"
            "    return call(__z=__inner())\n",
            owner="_Monitor",
        )

        assert "def _Monitor__f(_Monitor__x, *, _Monitor__y):" in result
        assert "def _Monitor__inner():" in result
        assert "class _Monitor__Box:" in result
        assert "_Box__slot = 1" in result
        assert "except OSError as _Monitor__e:" in result
        assert "call(_Monitor__z=_Monitor__inner())" in result

    def test_method_names_of_classes(self):
        names = intercepted_method_names([NetworkInterface])

        assert {"is_up", "get_mtu", "get_by_name", "_flags"} <= names
        assert "name" not in names
        assert "__init__" not in names
        assert intercepted_method_names([]) is None


class TestRewriteFunction:

    def test_module_function(self, iface):
        rewritten = rewrite_function(callers.link_state, (NetworkInterface,))

        assert rewritten(iface) is True
        assert is_rewritten(rewritten)
        assert not is_rewritten(callers.link_state)
        with pytest.raises(StateQueryError):
            callers.link_state(iface)

    def test_metadata_is_preserved(self):
        rewritten = rewrite_function(callers.describe)

        assert rewritten.__name__ == "describe"
        assert rewritten.__qualname__ == "describe"
        assert rewritten.__module__ == callers.__name__
        assert rewritten.__wrapped__ is callers.describe
        assert inspect.signature(rewritten) == inspect.signature(callers.describe)

    def test_defaults_are_preserved(self, iface):
        rewritten = rewrite_function(callers.describe)

        assert rewritten(iface) == "link up."
        assert rewritten(iface, "eth0", suffix="!") == "eth0 up!"

    def test_varargs_and_keyword_only(self, iface):
        rewritten = rewrite_function(callers.link_states)

        assert rewritten(iface, FakeNetworkInterface(up=False)) == [True, False]
        assert rewritten(iface, negate=True) == [False]

    def test_closure(self, iface):
        rewritten = rewrite_function(callers.make_checker("eth0"))

        assert rewritten(iface) == "eth0: True"

    def test_nested_function(self, iface):
        assert rewrite_function(callers.nested)(iface) is True

    def test_rewriting_twice_starts_from_original(self, iface):
        once = rewrite_function(callers.link_state, (NetworkInterface,))
        twice = rewrite_function(once)

        assert twice.__wrapped__ is callers.link_state
        assert twice(iface) is True

    def test_restricted_to_types(self, iface):
        class Other:
            def is_up(self):
                return False

        other = mock_final(Other)
        when(other).is_up.return_value = True
        rewritten = rewrite_function(callers.link_state, types=(NetworkInterface,))

        assert rewritten(iface) is True
        assert rewritten(other) is False

    def test_real_objects_still_work(self):
        rewritten = rewrite_function(callers.link_state)

        assert rewritten(FakeNetworkInterface(up=False)) is False

    @pytest.mark.asyncio
    async def test_coroutine(self, iface):
        rewritten = rewrite_function(callers.async_link_state)

        assert inspect.iscoroutinefunction(rewritten)
        assert await rewritten(iface) is True

    def test_rejects_lambda(self):
        with pytest.raises(InterceptionError, match="Lambdas"):
            rewrite_function(lambda iface: iface.is_up())

    def test_rejects_builtins(self):
        with pytest.raises(InterceptionError, match="Only Python functions"):
            rewrite_function(len)

    def test_rejects_foreign_decorators(self):
        with pytest.raises(InterceptionError, match="Decorated"):
            rewrite_function(callers.traced_link_state)

    def test_rejects_functions_without_source(self, tmp_path):
        namespace = {}
        source = "def generated(iface):\n    return iface.is_up()\n"
        exec(compile(source, str(tmp_path / "missing.py"), "exec"), namespace)

        with pytest.raises(InterceptionError, match="Source is not available"):
            rewrite_function(namespace["generated"])


class TestInterceptDecorator:

    def test_function(self, iface):
        @intercept(NetworkInterface)
        def query(target):
            return target.is_up()

        assert query(iface) is True

    def test_foreign_decorated_function(self):
        with pytest.raises(InterceptionError, match="cannot be intercepted"):
            intercept()(callers.traced_link_state)

    def test_class_rewrites_own_members(self, iface):
        @intercept(NetworkInterface)
        class Probe:
            def direct(self, target):
                return target.is_up()

            @staticmethod
            def static(target):
                return target.is_up()

            @classmethod
            def klass(cls, target):
                return (cls.__name__, target.is_up())

        assert Probe().direct(iface) is True
        assert Probe.static(iface) is True
        assert Probe.klass(iface) == ("Probe", True)
        assert is_rewritten(vars(Probe)["direct"])

    def test_sealed_class_cannot_be_intercepted(self):
        with pytest.raises(InterceptionError, match="cannot be modified"):
            intercept()(NetworkInterface)
