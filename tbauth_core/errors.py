from __future__ import annotations
from typing import Optional
import os


class BoltError(Exception):
    pass


class NotFoundError(BoltError):
    """Record, key or device is absent. Often expected."""


class CorruptRecordError(BoltError):
    pass


class PermissionDeniedError(BoltError):
    pass


class InvalidUidError(BoltError, ValueError):
    """A uid that cannot name a store entry (empty, hidden or containing a path separator)."""


class DeviceIOError(BoltError):
    """open/read/write/close failure; keeps the OS error code when there is one."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno

    @classmethod
    def from_os(cls, exc: OSError, message: str) -> "DeviceIOError":
        if exc.errno:
            reason = exc.strerror or os.strerror(exc.errno)
        else:
            reason = str(exc)
        return cls(f"{message}: {reason}", errno=exc.errno)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.errno is not None:
            return f"{msg} [{self.errno}]"
        return msg


class HotplugError(BoltError):
    pass
