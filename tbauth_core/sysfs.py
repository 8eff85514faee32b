"""
tbauth_core.sysfs
-----------------
Hardware side of the trust boundary.

- SysfsNode: read-only view of one device directory under
  /sys/bus/thunderbolt/devices; missing attributes read as None
- enumerate_nodes(): every node currently present below a root directory
- verify_uid(): check that a node's unique_id still is the expected one
- SysfsAuthorizer: the privileged one-byte write to ``authorized``
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Optional
import contextlib, errno, os

from .crypto import bytes_equal
from .device import Device
from .enums import AuthLevel
from .errors import DeviceIOError, NotFoundError
from .logger import get_logger
from .utils import parse_sysfs_int

log = get_logger("tbauth.Sysfs")

AUTHORIZE_BYTE = b"1"


@dataclass(frozen=True)
class SysfsNode:
    sys_path: str

    def attr(self, name: str) -> Optional[str]:
        try:
            with open(os.path.join(self.sys_path, name), "r", encoding="utf-8", errors="replace") as f:
                return f.read().rstrip("\n")
        except OSError:
            return None

    def attr_int(self, name: str) -> Optional[int]:
        return parse_sysfs_int(self.attr(name))

    @property
    def unique_id(self) -> Optional[str]:
        # an empty unique_id names no device
        return self.attr("unique_id") or None

    def to_device(self) -> Device:
        """Build a Device from the node's hardware attributes (unique_id required)."""
        uid = self.unique_id
        if uid is None:
            raise NotFoundError(f"{self.sys_path} has no unique_id")
        dev = Device(uid=uid, sysfs_path=self.sys_path)
        update_from_node(dev, self)
        return dev


def update_from_node(dev: Device, node: SysfsNode) -> None:
    """Overwrite the hardware-sourced fields of ``dev`` from ``node``."""
    dev.device_name = node.attr("device_name") or ""
    dev.vendor_name = node.attr("vendor_name") or ""
    dev.device_id = node.attr_int("device") or 0
    dev.vendor_id = node.attr_int("vendor") or 0
    dev.sysfs_path = node.sys_path
    dev.authorized = AuthLevel.from_sysfs(node.attr_int("authorized"))


def enumerate_nodes(root: str) -> Iterator[SysfsNode]:
    try:
        names = sorted(os.listdir(root))
    except FileNotFoundError:
        log.warning(f"sysfs root {root} does not exist")
        return
    for name in names:
        path = os.path.join(root, name)
        if os.path.isdir(path):
            yield SysfsNode(path)


def verify_uid(path: str, uid: str) -> None:
    """Read len(uid) bytes from ``path`` and compare them with ``uid``.

    Raises DeviceIOError on read failure, short read or mismatch.
    """
    expected = uid.encode("utf-8")
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError as e:
        raise DeviceIOError.from_os(e, f"could not open {path}") from e
    try:
        while True:
            try:
                data = os.read(fd, len(expected))
                break
            except InterruptedError:
                continue
    except OSError as e:
        raise DeviceIOError.from_os(e, f"could not read from {path}") from e
    finally:
        _close_quietly(fd)

    if len(data) != len(expected):
        raise DeviceIOError(f"could not read full uid from {path}", errno=errno.EIO)
    if not bytes_equal(data, expected):
        raise DeviceIOError(
            f"unique id verification failed [{data.decode('utf-8', 'replace')} != {uid}]"
        )


class SysfsAuthorizer:
    """Grants bus access by writing ``1`` into the node's ``authorized`` file."""

    def authorize(self, device: Device) -> None:
        if device.sysfs_path is None:
            raise NotFoundError(f"device {device.uid} is not attached")

        path = os.path.join(device.sysfs_path, "authorized")
        try:
            fd = os.open(path, os.O_WRONLY)
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not open {path}") from e

        try:
            n = _write_once(fd, AUTHORIZE_BYTE)
        except OSError as e:
            _close_quietly(fd)
            raise DeviceIOError.from_os(e, f"could not write to {path}") from e

        if n != len(AUTHORIZE_BYTE):
            _close_quietly(fd)
            raise DeviceIOError(f"short write to {path} ({n} bytes)", errno=errno.EIO)

        try:
            os.close(fd)
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not close {path}") from e

        device.authorized = AuthLevel.AUTHORIZED
        log.info(f"authorized device {device.uid}")


def _write_once(fd: int, data: bytes) -> int:
    # one write; only an interrupted syscall is retried
    while True:
        try:
            return os.write(fd, data)
        except InterruptedError:
            continue


def _close_quietly(fd: int) -> None:
    # for read-only fds and write paths that already failed
    with contextlib.suppress(OSError):
        os.close(fd)
