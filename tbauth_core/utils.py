"""
tbauth_core.utils
-----------------
Small helpers for timestamps, sysfs value parsing and durable file writes.
"""

from __future__ import annotations
import os, tempfile, time
from typing import Optional


def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, microsecond precision for event ordering
    t = time.time()
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(t)) + f".{int(t % 1 * 1e6):06d}Z"


def parse_sysfs_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer attribute the way strtoul(…, 0) does; None if unparsable."""
    if value is None:
        return None
    try:
        return int(value.strip(), 0)
    except ValueError:
        return None


def write_file_atomic(path: str, data: bytes, mode: int = 0o644) -> None:
    """Replace ``path`` with ``data``; readers see the old or the new file, never a mix."""
    dir_path = os.path.dirname(path) or "."
    fd, tmp = tempfile.mkstemp(prefix="." + os.path.basename(path) + ".", dir=dir_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


def write_file_exclusive(path: str, data: bytes, mode: int = 0o600) -> bool:
    """Create ``path`` with ``data`` unless it already exists.

    The content is written to a hidden temp file first and then hard-linked
    into place, so ``path`` only ever appears complete. Returns False when
    another writer got there first (the existing file is kept).
    """
    dir_path = os.path.dirname(path) or "."
    fd, tmp = tempfile.mkstemp(prefix="." + os.path.basename(path) + ".", dir=dir_path)
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        return True
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
