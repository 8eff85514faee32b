from typing import Dict, List

from tbauth_core.crypto import generate_key_material
from tbauth_core.device import Device
from tbauth_core.errors import NotFoundError
from tbauth_core.storage.models import DeviceRecord, KeyHandle
from tbauth_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.records: Dict[str, DeviceRecord] = {}
        self.keys: Dict[str, str] = {}

    def have(self, uid: str) -> bool:
        return uid in self.records

    def put(self, device: Device):
        self.records[device.uid] = DeviceRecord.from_device(device)
        device.known = True

    def _load(self, uid: str) -> DeviceRecord:
        rec = self.records.get(uid)
        if rec is None:
            raise NotFoundError(f"device {uid} not in store")
        return rec

    def get(self, uid: str) -> Device:
        return self._load(uid).to_device()

    def merge(self, device: Device):
        self._load(device.uid).apply_to(device)

    def list_ids(self) -> List[str]:
        return sorted(uid for uid in self.records if not uid.startswith("."))

    def delete(self, uid: str):
        self.records.pop(uid, None)
        self.keys.pop(uid, None)

    # key material
    def have_key(self, uid: str) -> bool:
        return uid in self.keys

    def create_key(self, device: Device) -> KeyHandle:
        created = device.uid not in self.keys
        if created:
            self.keys[device.uid] = generate_key_material()
        device.key_path = f"memory:{device.uid}"
        return KeyHandle(uid=device.uid, path=device.key_path, created=created)

    def read_key(self, uid: str) -> str:
        if uid not in self.keys:
            raise NotFoundError(f"no key for device {uid}")
        return self.keys[uid]
