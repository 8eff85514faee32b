import logging
import os

import pytest

from tbauth_core.device import Device
from tbauth_core.enums import AuthLevel, Policy, Security
from tbauth_core.errors import DeviceIOError, NotFoundError
from tbauth_core.reconciler import Reconciler
from tbauth_core.transport import LocalSource


@pytest.fixture
def attached(sysfs):
    domain = sysfs.domain(security="user")
    a = sysfs.device("0-1", "A", device_name="Dock A")
    b = sysfs.device("0-3", "B", device_name="Dock B")
    return domain, a, b


def test_startup_excludes_domain_controller(store, attached):
    rec = Reconciler(store)
    count = rec.initial_sync(attached)

    assert count == 2
    assert sorted(d.uid for d in rec.list_attached()) == ["A", "B"]
    assert rec.security is Security.USER


def test_startup_merges_store(store, attached):
    store.put(Device(uid="B", device_name="Dock B", vendor_name="GNOME",
                     policy=Policy.AUTO, autoconnect=True))
    rec = Reconciler(store)
    rec.initial_sync(attached)

    assert rec.lookup("A").known is False
    b = rec.lookup("B")
    assert b.known is True
    assert b.policy is Policy.AUTO
    assert b.sysfs_path.endswith("0-3")


def test_change_updates_in_place(store, sysfs, attached):
    store.put(Device(uid="B", device_name="Dock B", vendor_name="GNOME",
                     policy=Policy.AUTO, autoconnect=True))
    rec = Reconciler(store)
    source = LocalSource(attached)
    rec.run(source)
    before = rec.lookup("B")

    _, _, b = attached
    sysfs.set_attr(b, "device_name", "Renamed Dock")
    sysfs.set_attr(b, "authorized", "1")
    source.publish("change", b)

    after = rec.lookup("B")
    assert after is before
    assert after.device_name == "Renamed Dock"
    assert after.authorized is AuthLevel.AUTHORIZED
    assert after.policy is Policy.AUTO
    assert after.autoconnect is True
    assert after.known is True
    assert len(rec.registry) == 2


def test_change_for_missing_device_readds(store, sysfs, caplog):
    rec = Reconciler(store)
    node = sysfs.device("0-1", "A")
    source = LocalSource()
    rec.run(source)

    with caplog.at_level(logging.WARNING):
        source.publish("change", node)
    assert "not in registry" in caplog.text
    assert rec.lookup("A").sysfs_path == node.sys_path


def test_double_remove_warns(store, attached, caplog):
    rec = Reconciler(store)
    source = LocalSource(attached)
    rec.run(source)
    removed = []
    rec.connect("device-removed", removed.append)

    _, _, b = attached
    source.publish("remove", b)
    assert rec.registry.find_by_uid("B") is None
    assert removed[0].sysfs_path is None
    assert removed[0].authorized is AuthLevel.UNKNOWN

    with caplog.at_level(logging.WARNING):
        event = source.publish("remove", b)
    assert rec.dispatch(event) is None
    assert "remove for unknown device" in caplog.text
    assert len(rec.registry) == 1


def test_remove_after_node_vanished_matches_path(store, attached):
    import shutil

    rec = Reconciler(store)
    rec.initial_sync(attached)
    _, a, _ = attached
    shutil.rmtree(a.sys_path)

    event_dev = rec.handle_remove(a)
    assert event_dev is not None and event_dev.uid == "A"


def test_corrupt_record_excludes_device(store, attached, caplog):
    os.makedirs(store.devices)
    with open(os.path.join(store.devices, "A"), "w") as f:
        f.write("garbage without sections\n")

    rec = Reconciler(store)
    with caplog.at_level(logging.WARNING):
        rec.initial_sync(attached)

    assert [d.uid for d in rec.list_attached()] == ["B"]
    assert "ignoring device A" in caplog.text


def test_listeners_fire(store, attached):
    rec = Reconciler(store)
    seen = []
    rec.connect("device-added", lambda d: seen.append(("A", d.uid)))
    rec.initial_sync(attached)
    assert seen == [("A", "A"), ("A", "B")]
    with pytest.raises(ValueError):
        rec.connect("device-exploded", print)


def test_authorize_store_auto(store, attached):
    rec = Reconciler(store)
    rec.initial_sync(attached)

    dev = rec.authorize("A", auto=True)
    assert dev.authorized is AuthLevel.AUTHORIZED
    with open(os.path.join(dev.sysfs_path, "authorized")) as f:
        assert f.read().startswith("1")

    stored = store.get("A")
    assert stored.policy is Policy.AUTO
    assert stored.autoconnect is True
    assert dev.known is True


def test_authorize_store_sets_manual_policy(store, attached):
    rec = Reconciler(store)
    rec.initial_sync(attached)
    rec.authorize("B", store=True)
    assert store.get("B").policy is Policy.MANUAL


def test_authorize_unknown_uid(store, attached):
    rec = Reconciler(store)
    rec.initial_sync(attached)
    with pytest.raises(NotFoundError):
        rec.authorize("Z")


def test_authorize_rejects_swapped_device(store, sysfs, attached):
    rec = Reconciler(store)
    rec.initial_sync(attached)
    _, a, _ = attached
    sysfs.set_attr(a, "unique_id", "someone-else")

    with pytest.raises(DeviceIOError):
        rec.authorize("A")
    with open(os.path.join(a.sys_path, "authorized")) as f:
        assert f.read() == "0\n"


def test_authorize_skipped_without_security(store, sysfs):
    nodes = [sysfs.domain(security="none"), sysfs.device("0-1", "A")]
    rec = Reconciler(store)
    rec.initial_sync(nodes)

    rec.authorize("A")
    with open(os.path.join(nodes[1].sys_path, "authorized")) as f:
        assert f.read() == "0\n"


def test_auto_authorize(store, attached):
    store.put(Device(uid="B", device_name="Dock B", vendor_name="GNOME",
                     policy=Policy.AUTO, autoconnect=True))
    rec = Reconciler(store)
    rec.initial_sync(attached)

    assert rec.auto_authorize("A") is False
    assert rec.auto_authorize("B") is True
    assert rec.lookup("B").authorized is AuthLevel.AUTHORIZED


def test_forget_clears_known(store, attached):
    rec = Reconciler(store)
    rec.initial_sync(attached)
    dev = rec.authorize("A", auto=True)
    rec.ensure_key(dev)
    assert rec.have_key(dev)

    rec.forget("A")
    assert dev.known is False
    assert dev.policy is Policy.UNKNOWN
    assert not rec.device_stored(dev)
    assert not rec.have_key(dev)


def test_empty_uid_does_not_abort_startup(store, sysfs):
    nodes = [sysfs.device("0-1", ""), sysfs.device("0-3", "B")]
    rec = Reconciler(store)
    assert rec.initial_sync(nodes) == 1
    assert [d.uid for d in rec.list_attached()] == ["B"]


def test_unstorable_uid_is_skipped(store, sysfs, caplog):
    bad = sysfs.device("0-1", ".hidden")
    good = sysfs.device("0-3", "B")
    rec = Reconciler(store)
    with caplog.at_level(logging.WARNING):
        assert rec.initial_sync([bad, good]) == 1

    source = LocalSource()
    rec.run(source)
    with caplog.at_level(logging.WARNING):
        source.publish("add", bad)
    assert rec.registry.find_by_uid(".hidden") is None
    assert "invalid device uid" in caplog.text


def test_change_after_node_vanished_keeps_fields(store, attached):
    import shutil

    rec = Reconciler(store)
    source = LocalSource(attached)
    rec.run(source)
    _, a, _ = attached
    shutil.rmtree(a.sys_path)

    source.publish("change", a)
    dev = rec.lookup("A")
    assert dev.device_name == "Dock A"
    assert dev.vendor_name == "GNOME"
    assert dev.authorized is AuthLevel.UNAUTHORIZED
