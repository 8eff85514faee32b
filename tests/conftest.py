import pytest

from tbauth_core.storage import FileStorage
from tbauth_core.sysfs import SysfsNode


class FakeSysfs:
    """A throwaway /sys/bus/thunderbolt/devices tree."""

    def __init__(self, root):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def domain(self, name="domain0", security="user"):
        path = self.root / name
        path.mkdir()
        (path / "security").write_text(security + "\n")
        return SysfsNode(str(path))

    def device(self, name, uid, device_name="Dock", vendor_name="GNOME",
               device="0x1", vendor="0x2", authorized="0"):
        path = self.root / name
        path.mkdir()
        attrs = {
            "unique_id": uid,
            "device_name": device_name,
            "vendor_name": vendor_name,
            "device": device,
            "vendor": vendor,
            "authorized": authorized,
        }
        for key, value in attrs.items():
            (path / key).write_text(value + "\n")
        return SysfsNode(str(path))

    def set_attr(self, node, key, value):
        (self.root / node.sys_path.rsplit("/", 1)[-1] / key).write_text(value + "\n")


@pytest.fixture
def sysfs(tmp_path):
    return FakeSysfs(tmp_path / "sys")


@pytest.fixture
def store(tmp_path):
    return FileStorage(str(tmp_path / "db"))
