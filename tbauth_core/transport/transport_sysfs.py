# tbauth_core/transport/transport_sysfs.py
from typing import Iterable

from tbauth_core.errors import HotplugError
from tbauth_core.sysfs import SysfsNode, enumerate_nodes
from tbauth_core.transport.transport_base import BaseHotplugSource, Handler


class SysfsSource(BaseHotplugSource):
    """
    Enumerate-only source reading a sysfs device directory.

    Enough for one-shot commands that need the attached devices but no
    live events.
    """

    name = "sysfs"

    def __init__(self, root: str):
        self.root = root

    def enumerate(self) -> Iterable[SysfsNode]:
        return list(enumerate_nodes(self.root))

    def subscribe(self, handler: Handler) -> None:
        raise HotplugError("the sysfs source does not deliver live events; use udev")
