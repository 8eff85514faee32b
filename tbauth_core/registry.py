from __future__ import annotations
from typing import Iterator, List, Optional

from .device import Device
from .sysfs import SysfsNode


class DeviceRegistry:
    """
    Devices currently attached, in arrival order.

    Keyed by uid. Nodes without a unique_id (domain controllers, or nodes
    whose sysfs directory is already gone on remove) are matched by the
    sysfs path recorded when the device was added.
    """

    def __init__(self) -> None:
        self._devices: List[Device] = []

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices))

    def __contains__(self, uid: object) -> bool:
        return self.find_by_uid(uid) is not None  # type: ignore[arg-type]

    def add(self, device: Device) -> None:
        for i, dev in enumerate(self._devices):
            if dev.uid == device.uid:
                self._devices[i] = device
                return
        self._devices.append(device)

    def remove(self, device: Device) -> bool:
        for i, dev in enumerate(self._devices):
            if dev.uid == device.uid:
                del self._devices[i]
                return True
        return False

    def find_by_uid(self, uid: str) -> Optional[Device]:
        return next((d for d in self._devices if d.uid == uid), None)

    def find_by_path(self, sysfs_path: str) -> Optional[Device]:
        return next(
            (d for d in self._devices if d.sysfs_path is not None and d.sysfs_path == sysfs_path),
            None,
        )

    def find_by_hardware(self, node: SysfsNode) -> Optional[Device]:
        uid = node.unique_id
        if uid is not None:
            return self.find_by_uid(uid)
        return self.find_by_path(node.sys_path)

    def snapshot(self) -> List[Device]:
        return [d.copy() for d in self._devices]
