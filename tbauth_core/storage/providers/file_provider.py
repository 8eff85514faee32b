from __future__ import annotations
from typing import List
import os

from tbauth_core.constants import DEVICES_DIR, KEYS_DIR
from tbauth_core.crypto import generate_key_material
from tbauth_core.device import Device
from tbauth_core.errors import CorruptRecordError, DeviceIOError, InvalidUidError, NotFoundError
from tbauth_core.logger import get_logger
from tbauth_core.storage.models import DeviceRecord, KeyHandle
from tbauth_core.storage.provider import StorageProvider
from tbauth_core.utils import write_file_atomic, write_file_exclusive

log = get_logger("tbauth.Store")


class FileStorage(StorageProvider):
    """
    Store rooted at ``path``:

        <path>/devices/<uid>   keyfile record (device + user sections)
        <path>/keys/<uid>      64 hex chars, mode 0600

    Nothing is cached; every call goes to the filesystem, so several
    processes can share one root.
    """

    def __init__(self, path: str):
        if not path:
            raise ValueError("FileStorage needs a root path")
        self.root = os.path.abspath(path)
        self.devices = os.path.join(self.root, DEVICES_DIR)
        self.keys = os.path.join(self.root, KEYS_DIR)

    def _entry(self, uid: str) -> str:
        return os.path.join(self.devices, _checked(uid))

    def _keyfile(self, uid: str) -> str:
        return os.path.join(self.keys, _checked(uid))

    @staticmethod
    def _ensure_dir(path: str) -> None:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not create directory {path}") from e

    # --- records ---

    def have(self, uid: str) -> bool:
        return os.path.exists(self._entry(uid))

    def put(self, device: Device) -> None:
        self._ensure_dir(self.devices)
        entry = self._entry(device.uid)
        data = DeviceRecord.from_device(device).to_text().encode("utf-8")
        try:
            write_file_atomic(entry, data)
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not store device {device.uid}") from e
        device.known = True
        log.debug(f"stored device {device.uid} at {entry}")

    def _load(self, uid: str) -> DeviceRecord:
        entry = self._entry(uid)
        try:
            with open(entry, "r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            raise NotFoundError(f"device {uid} not in store") from None
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not read record for {uid}") from e
        except UnicodeDecodeError as e:
            raise CorruptRecordError(f"record for {uid} is not valid utf-8: {e}") from None
        return DeviceRecord.from_text(uid, text)

    def get(self, uid: str) -> Device:
        return self._load(uid).to_device()

    def merge(self, device: Device) -> None:
        self._load(device.uid).apply_to(device)

    def list_ids(self) -> List[str]:
        try:
            names = os.listdir(self.devices)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not list {self.devices}") from e
        return sorted(n for n in names if not n.startswith("."))

    def delete(self, uid: str) -> None:
        errors = []
        for what, path in (("device data", self._entry(uid)), ("key", self._keyfile(uid))):
            try:
                os.unlink(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                errors.append(DeviceIOError.from_os(e, f"could not remove {what}"))

        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise DeviceIOError(
                f"could not remove device data ({errors[0]}) and key ({errors[1]})",
                errno=errors[0].errno,
            )
        log.info(f"deleted device {uid} from store")

    # --- key material ---

    def have_key(self, uid: str) -> bool:
        return os.path.exists(self._keyfile(uid))

    def create_key(self, device: Device) -> KeyHandle:
        path = self._keyfile(device.uid)
        if os.path.exists(path):
            device.key_path = path
            return KeyHandle(uid=device.uid, path=path, created=False)

        self._ensure_dir(self.keys)
        try:
            created = write_file_exclusive(path, generate_key_material().encode("ascii"), mode=0o600)
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not write key for {device.uid}") from e

        if created:
            log.info(f"created key for device {device.uid}")
        else:
            log.debug(f"key for {device.uid} appeared concurrently, keeping it")
        device.key_path = path
        return KeyHandle(uid=device.uid, path=path, created=created)

    def read_key(self, uid: str) -> str:
        path = self._keyfile(uid)
        try:
            with open(path, "r", encoding="ascii") as f:
                return f.read().strip()
        except FileNotFoundError:
            raise NotFoundError(f"no key for device {uid}") from None
        except OSError as e:
            raise DeviceIOError.from_os(e, f"could not read key for {uid}") from e


def _checked(uid: str) -> str:
    # uids name files directly; reject anything that could escape the store
    if not uid or uid.startswith(".") or "/" in uid or "\0" in uid:
        raise InvalidUidError(f"invalid device uid: {uid!r}")
    return uid
