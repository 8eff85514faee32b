# tbauth_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import configparser, io

from tbauth_core.constants import DEVICE_GROUP, USER_GROUP
from tbauth_core.device import Device
from tbauth_core.enums import Policy, from_token, to_token
from tbauth_core.errors import CorruptRecordError

_BOOL_TOKENS = {"true": True, "false": False}

# keyfile string escapes; \s is only needed where the parser would strip a space
_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "t": "\t", "r": "\r", "s": " "}


@dataclass
class DeviceRecord:
    """
    Storage-level representation of a device's persisted attributes.

    Provider agnostic: the file store serializes it as a keyfile, the
    memory store keeps it as is.
    """
    uid: str
    name: str
    vendor_name: str
    autoconnect: bool = False
    policy: Policy = Policy.UNKNOWN

    @classmethod
    def from_device(cls, dev: Device) -> "DeviceRecord":
        return cls(
            uid=dev.uid,
            name=dev.device_name,
            vendor_name=dev.vendor_name,
            autoconnect=dev.autoconnect,
            policy=dev.policy,
        )

    def to_device(self) -> Device:
        return Device(
            uid=self.uid,
            device_name=self.name,
            vendor_name=self.vendor_name,
            autoconnect=self.autoconnect,
            policy=self.policy,
            known=True,
        )

    def apply_to(self, dev: Device) -> None:
        dev.policy = self.policy
        dev.autoconnect = self.autoconnect
        dev.known = True

    # --- keyfile text ---

    def to_text(self) -> str:
        kf = _keyfile()
        kf[DEVICE_GROUP] = {"name": _escape(self.name), "vendor-name": _escape(self.vendor_name)}
        kf[USER_GROUP] = {
            "autoconnect": "true" if self.autoconnect else "false",
            "policy": to_token(self.policy),
        }
        buf = io.StringIO()
        kf.write(buf, space_around_delimiters=False)
        return buf.getvalue()

    @classmethod
    def from_text(cls, uid: str, text: str) -> "DeviceRecord":
        kf = _keyfile()
        try:
            kf.read_string(text)
        except configparser.Error as e:
            raise CorruptRecordError(f"record for {uid} is malformed: {e}") from None

        name = kf.get(DEVICE_GROUP, "name", fallback=None)
        vendor_name = kf.get(DEVICE_GROUP, "vendor-name", fallback=None)
        if name is None or vendor_name is None:
            raise CorruptRecordError(f"record for {uid} lacks name or vendor-name")
        name = _unescape(uid, name)
        vendor_name = _unescape(uid, vendor_name)

        autoconnect = _parse_bool(uid, kf.get(USER_GROUP, "autoconnect", fallback=None))
        policy_str: Optional[str] = kf.get(USER_GROUP, "policy", fallback=None)
        try:
            policy = from_token(Policy, policy_str) if policy_str else Policy.UNKNOWN
        except ValueError as e:
            raise CorruptRecordError(f"record for {uid}: {e}") from None

        return cls(uid=uid, name=name, vendor_name=vendor_name,
                   autoconnect=autoconnect, policy=policy)


@dataclass
class KeyHandle:
    uid: str
    path: str
    created: bool = False


def _keyfile() -> configparser.ConfigParser:
    kf = configparser.ConfigParser(interpolation=None, delimiters=("=",))
    kf.optionxform = str  # keys are case sensitive
    return kf


def _parse_bool(uid: str, value: Optional[str]) -> bool:
    if value is None:
        return False
    try:
        return _BOOL_TOKENS[value.strip().lower()]
    except KeyError:
        raise CorruptRecordError(f"record for {uid}: invalid autoconnect value {value!r}") from None


def _escape(value: str) -> str:
    """Escape a string value so the keyfile parser returns it unchanged."""
    out = []
    last = len(value) - 1
    for i, ch in enumerate(value):
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch == " " and i in (0, last):
            out.append("\\s")
        elif ch.isspace() and i in (0, last):
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    return "".join(out)


def _unescape(uid: str, value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        code = value[i + 1:i + 2]
        if code in _UNESCAPES:
            out.append(_UNESCAPES[code])
            i += 2
        elif code == "u" and len(value) >= i + 6:
            try:
                out.append(chr(int(value[i + 2:i + 6], 16)))
            except ValueError:
                raise CorruptRecordError(f"record for {uid}: invalid escape in {value!r}") from None
            i += 6
        else:
            raise CorruptRecordError(f"record for {uid}: invalid escape in {value!r}")
    return "".join(out)
