"""
tbauth_core.enums
-----------------
Enumerations shared by the device model, the store and sysfs.

Every enum has one static token table which is used both to serialize a
value (store records, CLI output) and to parse one back.
"""

from __future__ import annotations
from enum import Enum, IntEnum
from typing import Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


class AuthLevel(IntEnum):
    """Authorization level as reported by the ``authorized`` attribute."""
    UNKNOWN = -1
    UNAUTHORIZED = 0
    AUTHORIZED = 1
    AUTHORIZED_SECURE = 2

    @classmethod
    def from_sysfs(cls, value: Optional[int]) -> "AuthLevel":
        if value is None or value < cls.UNKNOWN or value > cls.AUTHORIZED_SECURE:
            return cls.UNKNOWN
        return cls(value)


class Policy(Enum):
    """What to do when a stored device shows up again."""
    UNKNOWN = -1
    MANUAL = 0
    AUTO = 1


class Security(Enum):
    """Security mode of the (single) Thunderbolt domain."""
    UNKNOWN = -1
    NONE = 0
    DPONLY = 1
    USER = 2
    SECURE = 3


_TOKENS: Dict[Type[Enum], Dict[Enum, str]] = {
    AuthLevel: {
        AuthLevel.UNKNOWN: "unknown",
        AuthLevel.UNAUTHORIZED: "unauthorized",
        AuthLevel.AUTHORIZED: "authorized",
        AuthLevel.AUTHORIZED_SECURE: "authorized-secure",
    },
    Policy: {
        Policy.UNKNOWN: "unknown",
        Policy.MANUAL: "manual",
        Policy.AUTO: "auto",
    },
    Security: {
        Security.UNKNOWN: "unknown",
        Security.NONE: "none",
        Security.DPONLY: "dponly",
        Security.USER: "user",
        Security.SECURE: "secure",
    },
}

_REVERSE: Dict[Type[Enum], Dict[str, Enum]] = {
    cls: {token: member for member, token in table.items()}
    for cls, table in _TOKENS.items()
}


def to_token(value: Enum) -> str:
    return _TOKENS[type(value)][value]


def from_token(cls: Type[E], token: str) -> E:
    """Parse ``token`` into a member of ``cls``; raises ValueError if unknown."""
    try:
        return _REVERSE[cls][token.strip().lower()]  # type: ignore[return-value]
    except KeyError:
        raise ValueError(f"unknown {cls.__name__.lower()} token: {token!r}") from None


def tokens(cls: Type[Enum]) -> list[str]:
    return list(_TOKENS[cls].values())
