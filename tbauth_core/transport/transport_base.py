from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
import time

from tbauth_core.errors import HotplugError
from tbauth_core.sysfs import SysfsNode

ACTIONS = ("add", "change", "remove")


@dataclass
class HotplugEvent:
    action: str
    node: SysfsNode
    source: str = "local"
    ts_ms: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def sys_path(self) -> str:
        return self.node.sys_path


Handler = Callable[[HotplugEvent], None]


class BaseHotplugSource:
    """
    Contract for hotplug feeds.

    Users call open() first, then enumerate() for the nodes already
    present, then subscribe(handler). Opening before enumerating makes
    sure a device plugged in between the two is seen as an event.
    """
    name: str = "base"

    def open(self) -> None:
        return

    def enumerate(self) -> Iterable[SysfsNode]:
        raise NotImplementedError

    def subscribe(self, handler: Handler) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return

    def __enter__(self) -> "BaseHotplugSource":
        self.open()
        return self

    def __exit__(self, *exc: object) -> Optional[bool]:
        self.close()
        return None


def check_action(action: Optional[str]) -> str:
    if action not in ACTIONS:
        raise HotplugError(f"unsupported hotplug action: {action!r}")
    return action
