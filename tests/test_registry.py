from tbauth_core.device import Device
from tbauth_core.registry import DeviceRegistry
from tbauth_core.sysfs import SysfsNode


def test_add_find_remove():
    reg = DeviceRegistry()
    a = Device(uid="A", sysfs_path="/sys/x/0-1")
    b = Device(uid="B", sysfs_path="/sys/x/0-3")
    reg.add(a)
    reg.add(b)

    assert len(reg) == 2
    assert [d.uid for d in reg] == ["A", "B"]
    assert reg.find_by_uid("B") is b
    assert "A" in reg

    assert reg.remove(a)
    assert not reg.remove(a)
    assert reg.find_by_uid("A") is None


def test_same_uid_replaces_in_place():
    reg = DeviceRegistry()
    reg.add(Device(uid="A", device_name="old"))
    reg.add(Device(uid="B"))
    reg.add(Device(uid="A", device_name="new"))

    assert len(reg) == 2
    assert [d.uid for d in reg] == ["A", "B"]
    assert reg.find_by_uid("A").device_name == "new"


def test_find_by_hardware_prefers_uid(sysfs):
    reg = DeviceRegistry()
    node = sysfs.device("0-1", "A")
    dev = Device(uid="A", sysfs_path="/somewhere/else")
    reg.add(dev)
    assert reg.find_by_hardware(node) is dev


def test_find_by_hardware_falls_back_to_path(tmp_path):
    reg = DeviceRegistry()
    path = str(tmp_path / "0-1")
    dev = Device(uid="A", sysfs_path=path)
    reg.add(dev)
    reg.add(Device(uid="B"))  # detached, no path

    # directory does not exist, so unique_id cannot be read
    assert reg.find_by_hardware(SysfsNode(path)) is dev
    assert reg.find_by_hardware(SysfsNode(str(tmp_path / "0-3"))) is None


def test_snapshot_is_a_copy():
    reg = DeviceRegistry()
    reg.add(Device(uid="A", device_name="x"))
    snap = reg.snapshot()
    snap[0].device_name = "changed"
    assert reg.find_by_uid("A").device_name == "x"
