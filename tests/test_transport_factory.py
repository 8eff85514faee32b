import logging

import pytest

from tbauth_core.errors import HotplugError
from tbauth_core.transport import transport_factory
from tbauth_core.transport.transport_local import LocalSource
from tbauth_core.transport.transport_sysfs import SysfsSource

# CMD Line Usage: pytest -v -s --log-cli-level=DEBUG tests/test_transport_factory.py


def test_local_loopback(sysfs, caplog):
    """LocalSource delivers published events to subscribers, queued ones first."""
    node = sysfs.device("0-1", "A")
    bus = LocalSource()
    received = []

    with caplog.at_level(logging.DEBUG, logger="tbauth.Transport.Local"):
        bus.publish("add", node)
        bus.subscribe(received.append)
        bus.publish("remove", node)

    assert [e.action for e in received] == ["add", "remove"]
    assert received[0].node.sys_path == node.sys_path
    assert "LOCAL PUB" in caplog.text


def test_local_rejects_unknown_action(sysfs):
    with pytest.raises(HotplugError):
        LocalSource().publish("bind", sysfs.device("0-1", "A"))


def test_sysfs_source_enumerates_only(sysfs):
    sysfs.domain()
    sysfs.device("0-1", "A")
    src = SysfsSource(str(sysfs.root))
    assert len(list(src.enumerate())) == 2
    with pytest.raises(HotplugError):
        src.subscribe(print)


def test_transport_factory_modes(monkeypatch, tmp_path):
    """transport_factory returns the source selected by TBAUTH_HOTPLUG."""
    monkeypatch.setenv("TBAUTH_HOTPLUG", "local")
    assert isinstance(transport_factory(), LocalSource)

    monkeypatch.setenv("TBAUTH_HOTPLUG", "sysfs")
    monkeypatch.setenv("TBAUTH_SYSFS_ROOT", str(tmp_path))
    src = transport_factory()
    assert isinstance(src, SysfsSource)
    assert src.root == str(tmp_path)

    assert isinstance(transport_factory("sysfs", sysfs_root="/x"), SysfsSource)
    with pytest.raises(ValueError):
        transport_factory("carrier-pigeon")
