# tbauth_core/transport/__init__.py
import os
from tbauth_core.constants import DEFAULT_SYSFS_ROOT
from tbauth_core.transport.transport_base import BaseHotplugSource, HotplugEvent
from tbauth_core.transport.transport_local import LocalSource
from tbauth_core.transport.transport_sysfs import SysfsSource
from tbauth_core.transport.transport_udev import UdevSource


def transport_factory(mode: str | None = None, sysfs_root: str | None = None) -> BaseHotplugSource:
    """
    mode:
      - "udev"  → live netlink feed (default)
      - "sysfs" → enumerate-only, reads TBAUTH_SYSFS_ROOT
      - "local" → in-process loopback
    """
    mode = (mode or os.getenv("TBAUTH_HOTPLUG", "udev")).lower()

    if mode == "sysfs":
        return SysfsSource(sysfs_root or os.getenv("TBAUTH_SYSFS_ROOT", DEFAULT_SYSFS_ROOT))

    if mode == "local":
        return LocalSource()

    if mode == "udev":
        return UdevSource()

    raise ValueError(f"Unknown hotplug source: {mode}")


__all__ = [
    "BaseHotplugSource",
    "HotplugEvent",
    "LocalSource",
    "SysfsSource",
    "UdevSource",
    "transport_factory",
]
