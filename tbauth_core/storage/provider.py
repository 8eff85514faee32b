# tbauth_core/storage/provider.py
from __future__ import annotations
from typing import List

from tbauth_core.device import Device
from tbauth_core.storage.models import KeyHandle


class StorageProvider:
    """
    Interface of the persistent device store.

    Lookups that find nothing raise NotFoundError; malformed records raise
    CorruptRecordError; filesystem failures raise DeviceIOError.
    """

    def have(self, uid: str) -> bool: ...
    def put(self, device: Device) -> None: ...
    def get(self, uid: str) -> Device: ...
    def merge(self, device: Device) -> None: ...
    def delete(self, uid: str) -> None: ...
    def list_ids(self) -> List[str]: ...

    # key material
    def have_key(self, uid: str) -> bool: ...
    def create_key(self, device: Device) -> KeyHandle: ...
    def read_key(self, uid: str) -> str: ...
