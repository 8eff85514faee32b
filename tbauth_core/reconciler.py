"""
tbauth_core.reconciler
----------------------
Keeps the in-memory registry in step with the hardware and the store.

A single dispatcher applies hotplug events in delivery order:

    add     → build Device from the node, merge store data, register
    change  → refresh hardware fields (re-adding if the device is missing)
    remove  → drop from the registry; the store record is kept

Nodes without a unique_id are domain controllers: they carry the domain's
security mode instead of becoming devices.

The same object serves the one-shot operations (lookup, authorize, key
creation, forget) used by the command line.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, List, Optional
import os

from .device import Device
from .enums import AuthLevel, Policy, Security, from_token, to_token
from .errors import BoltError, CorruptRecordError, DeviceIOError, NotFoundError
from .logger import get_logger
from .registry import DeviceRegistry
from .storage import KeyHandle, StorageProvider
from .sysfs import SysfsAuthorizer, SysfsNode, update_from_node, verify_uid
from .transport import BaseHotplugSource, HotplugEvent

log = get_logger("tbauth.Reconciler")

Listener = Callable[[Device], None]
SIGNALS = ("device-added", "device-changed", "device-removed")


class Reconciler:
    def __init__(self, store: StorageProvider,
                 authorizer: Optional[SysfsAuthorizer] = None,
                 registry: Optional[DeviceRegistry] = None):
        self.store = store
        self.authorizer = authorizer or SysfsAuthorizer()
        self.registry = registry or DeviceRegistry()
        self.security = Security.UNKNOWN
        self._listeners: Dict[str, List[Listener]] = {s: [] for s in SIGNALS}

    # ------------------------------------------------------------------
    # listeners
    # ------------------------------------------------------------------
    def connect(self, signal: str, callback: Listener) -> None:
        if signal not in self._listeners:
            raise ValueError(f"unknown signal: {signal}")
        self._listeners[signal].append(callback)

    def _emit(self, signal: str, dev: Device) -> None:
        for cb in list(self._listeners[signal]):
            cb(dev)

    # ------------------------------------------------------------------
    # event handling
    # ------------------------------------------------------------------
    def run(self, source: BaseHotplugSource) -> None:
        """Initial sync, then process live events until the process ends."""
        source.open()
        self.initial_sync(source.enumerate())
        source.subscribe(self.dispatch)

    def initial_sync(self, nodes: Iterable[SysfsNode]) -> int:
        count = 0
        for node in nodes:
            try:
                dev = self.handle_add(node)
            except BoltError as e:
                log.warning(f"skipping {node.sys_path}: {e}")
                continue
            if dev is not None:
                count += 1
        log.info(f"initial sync: {count} device(s), domain security {to_token(self.security)}")
        return count

    def dispatch(self, event: HotplugEvent) -> Optional[Device]:
        log.debug(f"uevent [{event.source}]: {event.action} {event.sys_path}")
        handlers = {
            "add": self.handle_add,
            "change": self.handle_change,
            "remove": self.handle_remove,
        }
        handler = handlers.get(event.action)
        if handler is None:
            log.debug(f"ignoring action {event.action!r}")
            return None
        try:
            return handler(event.node)
        except BoltError as e:
            log.warning(f"could not process {event.action} for {event.sys_path}: {e}")
            return None

    def handle_add(self, node: SysfsNode) -> Optional[Device]:
        uid = node.unique_id
        if uid is None:
            self._update_security(node)
            return None

        existing = self.registry.find_by_uid(uid)
        if existing is not None:
            return self._refresh(existing, node)

        dev = node.to_device()
        try:
            self.store.merge(dev)
        except NotFoundError:
            pass
        except CorruptRecordError as e:
            log.warning(f"ignoring device {uid}: {e}")
            return None
        except DeviceIOError as e:
            log.warning(f"could not load device data for {uid} from store: {e}")

        self.registry.add(dev)
        log.info(f"device added: {uid} ({dev.device_name}, known={dev.known})")
        self._emit("device-added", dev)
        return dev

    def handle_change(self, node: SysfsNode) -> Optional[Device]:
        dev = self.registry.find_by_hardware(node)
        if dev is None:
            if node.unique_id is not None:
                log.warning(f"device {node.unique_id} not in registry, adding it")
            return self.handle_add(node)
        if node.unique_id is None:
            # node directory is gone; keep the last known hardware fields
            log.debug(f"change for vanished node {node.sys_path}")
            return dev
        return self._refresh(dev, node)

    def handle_remove(self, node: SysfsNode) -> Optional[Device]:
        dev = self.registry.find_by_hardware(node)
        if dev is None:
            log.warning(f"remove for unknown device at {node.sys_path}")
            return None

        self.registry.remove(dev)
        dev.authorized = AuthLevel.UNKNOWN
        dev.sysfs_path = None
        log.info(f"device removed: {dev.uid}")
        self._emit("device-removed", dev)
        return dev

    def _refresh(self, dev: Device, node: SysfsNode) -> Device:
        update_from_node(dev, node)
        self._emit("device-changed", dev)
        return dev

    def _update_security(self, node: SysfsNode) -> None:
        token = node.attr("security")
        if token is None:
            return
        try:
            self.security = from_token(Security, token)
        except ValueError:
            log.warning(f"unknown domain security: {token}")
            self.security = Security.UNKNOWN
        log.info(f"domain {node.sys_path} security: {to_token(self.security)}")

    # ------------------------------------------------------------------
    # one-shot operations
    # ------------------------------------------------------------------
    def lookup(self, uid: str) -> Device:
        dev = self.registry.find_by_uid(uid)
        if dev is None:
            raise NotFoundError(f"device {uid} is not attached")
        return dev

    def list_attached(self) -> List[Device]:
        return list(self.registry)

    def device_stored(self, dev: Device) -> bool:
        return self.store.have(dev.uid)

    def have_key(self, dev: Device) -> bool:
        return self.store.have_key(dev.uid)

    def ensure_key(self, dev: Device) -> KeyHandle:
        return self.store.create_key(dev)

    def store_device(self, dev: Device) -> None:
        if dev.policy is Policy.UNKNOWN:
            dev.policy = Policy.MANUAL
        self.store.put(dev)

    def authorize(self, uid: str, store: bool = False, auto: bool = False) -> Device:
        """
        Grant ``uid`` access to the bus.

        With ``auto`` the device is also stored with policy Auto so later
        hotplugs can be authorized unattended (``auto`` implies ``store``).
        """
        dev = self.lookup(uid)

        if self.security in (Security.NONE, Security.DPONLY):
            log.info(f"domain security is {to_token(self.security)}, nothing to authorize")
        else:
            if self.security is Security.UNKNOWN:
                log.warning("security level could not be determined")
            if dev.sysfs_path is None:
                raise NotFoundError(f"device {uid} is not attached")
            verify_uid(os.path.join(dev.sysfs_path, "unique_id"), dev.uid)
            self.authorizer.authorize(dev)

        if auto:
            dev.policy = Policy.AUTO
            dev.autoconnect = True
            store = True
        if store:
            self.store_device(dev)
        return dev

    def auto_authorize(self, uid: str) -> bool:
        """Authorize ``uid`` only if it is stored with policy Auto."""
        dev = self.lookup(uid)
        if not dev.known:
            log.info(f"device {uid} not in store")
            return False
        if dev.policy is not Policy.AUTO:
            log.info(f"device {uid} not set up for auto authorization")
            return False
        self.authorize(uid)
        return True

    def forget(self, uid: str) -> None:
        self.store.delete(uid)
        dev = self.registry.find_by_uid(uid)
        if dev is not None:
            dev.known = False
            dev.policy = Policy.UNKNOWN
            dev.autoconnect = False
            dev.key_path = None
