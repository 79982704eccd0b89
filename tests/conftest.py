import pytest

from prepmock import NetworkInterface, mock_final, reset_mocks, when
from tests.mocks.network_interfaces import FakeSysfs


@pytest.fixture(autouse=True)
def isolated_mocks():
    """Drop mock registrations after every test."""
    yield
    reset_mocks()


@pytest.fixture
def fake_sysfs(tmp_path, monkeypatch):
    """Fixture providing an empty sysfs tree that NetworkInterface reads from."""
    sysfs = FakeSysfs(tmp_path / "net")
    monkeypatch.setenv("PREPMOCK_SYSFS_NET", str(sysfs.root))
    return sysfs


@pytest.fixture
def up_interface_mock():
    """Fixture providing a NetworkInterface mock stubbed as up."""
    iface = mock_final(NetworkInterface)
    when(iface).is_up.return_value = True
    return iface
