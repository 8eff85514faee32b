# tbauth_core/transport/transport_udev.py
import logging
from typing import Iterable, Optional

import pyudev

from tbauth_core.constants import SUBSYSTEM
from tbauth_core.errors import HotplugError
from tbauth_core.sysfs import SysfsNode
from tbauth_core.transport.transport_base import ACTIONS, BaseHotplugSource, Handler, HotplugEvent

log = logging.getLogger("tbauth.Transport.Udev")


class UdevSource(BaseHotplugSource):
    """
    Live Thunderbolt hotplug feed from udev.

    • netlink monitor filtered on the thunderbolt subsystem
    • events delivered strictly in kernel order, one at a time
    • subscribe() blocks until the process is terminated
    """

    name = "udev"

    def __init__(self, context: Optional[pyudev.Context] = None,
                 receive_buffer_size: int = 128 * 1024 * 1024):
        try:
            self.context = context or pyudev.Context()
        except Exception as e:
            raise HotplugError(f"udev: could not create context: {e}") from e
        self.receive_buffer_size = receive_buffer_size
        self.monitor: Optional[pyudev.Monitor] = None

    def open(self) -> None:
        if self.monitor is not None:
            return
        try:
            monitor = pyudev.Monitor.from_netlink(self.context, source="udev")
            monitor.filter_by(subsystem=SUBSYSTEM)
            monitor.set_receive_buffer_size(self.receive_buffer_size)
            monitor.start()
        except (OSError, ValueError) as e:
            raise HotplugError(f"udev: could not enable monitoring: {e}") from e
        self.monitor = monitor
        log.info(f"[UDEV] monitoring subsystem={SUBSYSTEM}")

    def enumerate(self) -> Iterable[SysfsNode]:
        return [SysfsNode(d.sys_path) for d in self.context.list_devices(subsystem=SUBSYSTEM)]

    def subscribe(self, handler: Handler) -> None:
        self.open()
        for device in iter(self.monitor.poll, None):
            action = device.action
            log.debug(f"uevent [ UDEV ]: {action} {device.sys_path}")
            if action not in ACTIONS:
                continue
            handler(HotplugEvent(action=action, node=SysfsNode(device.sys_path), source=self.name))

    def close(self) -> None:
        self.monitor = None
