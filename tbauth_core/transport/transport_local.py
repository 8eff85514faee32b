# tbauth_core/transport/transport_local.py
import logging
from typing import Iterable, List, Optional

from tbauth_core.sysfs import SysfsNode
from tbauth_core.transport.transport_base import BaseHotplugSource, Handler, HotplugEvent, check_action

log = logging.getLogger("tbauth.Transport.Local")


class LocalSource(BaseHotplugSource):
    """
    In-process loopback feed.

    publish() hands the event straight to the subscribed handlers; events
    published before anyone subscribed are queued and replayed on
    subscribe(), in order.
    """

    name = "local"

    def __init__(self, nodes: Optional[Iterable[SysfsNode]] = None):
        self.nodes: List[SysfsNode] = list(nodes or [])
        self.handlers: List[Handler] = []
        self._pending: List[HotplugEvent] = []

    def enumerate(self) -> Iterable[SysfsNode]:
        return list(self.nodes)

    def publish(self, action: str, node: SysfsNode) -> HotplugEvent:
        event = HotplugEvent(action=check_action(action), node=node, source=self.name)
        log.debug(f"[LOCAL PUB] {action} {node.sys_path}")
        if not self.handlers:
            self._pending.append(event)
            return event
        for handler in list(self.handlers):
            handler(event)
        return event

    def subscribe(self, handler: Handler) -> None:
        self.handlers.append(handler)
        pending, self._pending = self._pending, []
        for event in pending:
            handler(event)

    def close(self) -> None:
        self.handlers.clear()
