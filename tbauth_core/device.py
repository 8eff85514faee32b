# tbauth_core/device.py
from __future__ import annotations
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Optional

from .enums import AuthLevel, Policy, to_token


@dataclass
class Device:
    """
    Runtime view of one Thunderbolt device.

    Hardware fields (names, ids, sysfs_path, authorized) come from sysfs;
    persistence fields (policy, autoconnect, known) come from the store.
    ``uid`` can be set once, at construction.
    """
    uid: str
    device_name: str = ""
    vendor_name: str = ""
    device_id: int = 0
    vendor_id: int = 0
    sysfs_path: Optional[str] = None
    authorized: AuthLevel = AuthLevel.UNKNOWN
    known: bool = False
    policy: Policy = Policy.UNKNOWN
    autoconnect: bool = False
    key_path: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "uid" and "uid" in self.__dict__:
            raise AttributeError("Device.uid is immutable")
        super().__setattr__(name, value)

    @property
    def attached(self) -> bool:
        return self.sysfs_path is not None

    @property
    def is_authorized(self) -> bool:
        return self.authorized > AuthLevel.UNAUTHORIZED

    def copy(self) -> "Device":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["authorized"] = to_token(self.authorized)
        d["policy"] = to_token(self.policy)
        return d
