"""Log filename grammar and the "current log" symlink.

Inside a node subdirectory:

    node-2024-05-01T10-00-00.log     # rotated-out log
    node-2024-05-01T14-32-07.log     # current log
    node.log -> node-2024-05-01T14-32-07.log

JSON roots use the same layout with ``.json`` instead of ``.log``.

Timestamps are UTC, fixed-width and ordered year..second, so sorting
filenames sorts logs oldest-first.  The symlink target is always a bare
filename (relative to the subdirectory), never an absolute path.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

LogFormat = Literal["text", "json"]

LOG_PREFIX = "node-"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

_EXTENSIONS: dict[str, str] = {
    "text": ".log",
    "json": ".json",
}
_TMP_SUFFIX = ".tmp"


def log_extension(fmt: str) -> str:
    try:
        return _EXTENSIONS[fmt]
    except KeyError:
        msg = f"unknown log format: {fmt!r} (expected one of {', '.join(_EXTENSIONS)})"
        raise ValueError(msg) from None


def symlink_name(fmt: str) -> str:
    """Fixed name of the current-log link: node.log / node.json."""
    return "node" + log_extension(fmt)


def _tmp_symlink_name(fmt: str) -> str:
    # Per process: the writer and the rotator may relink the same node at once.
    return f"{symlink_name(fmt)}{_TMP_SUFFIX}.{os.getpid()}"


def is_tmp_link(path: Path | str, fmt: str) -> bool:
    """True for a temporary link left by a relink (node.log.tmp.<pid>)."""
    return Path(path).name.startswith(symlink_name(fmt) + _TMP_SUFFIX)


def log_name(fmt: str, when: datetime) -> str:
    return LOG_PREFIX + when.strftime(TIMESTAMP_FORMAT) + log_extension(fmt)


def _parse_timestamp(raw: str) -> datetime | None:
    try:
        ts = datetime.strptime(raw, TIMESTAMP_FORMAT)  # noqa: DTZ007
    except ValueError:
        return None
    # strptime accepts "2024-5-1T..." too; only zero-padded names sort correctly.
    if ts.strftime(TIMESTAMP_FORMAT) != raw:
        return None
    return ts.replace(tzinfo=UTC)


def _timestamp_part(path: Path | str) -> str:
    return Path(path).stem[len(LOG_PREFIX):]


def is_log(fmt: str, path: Path | str) -> bool:
    """True iff the filename is <prefix><timestamp><extension> for this format."""
    name = Path(path).name
    if not name.startswith(LOG_PREFIX):
        return False
    if Path(name).suffix != log_extension(fmt):
        return False
    return _parse_timestamp(_timestamp_part(name)) is not None


def timestamp_of(path: Path | str) -> datetime | None:
    """Timestamp encoded in a log filename (UTC), or None if it does not parse."""
    return _parse_timestamp(_timestamp_part(path))


def is_symlink(path: Path | str, fmt: str) -> bool:
    """True iff the entry has the link name AND is a symbolic link on disk."""
    p = Path(path)
    return p.name == symlink_name(fmt) and p.is_symlink()


def is_symlink_valid(path: Path | str) -> bool:
    """True iff the link's target, taken relative to the link's directory, is a regular file."""
    p = Path(path)
    target = p.parent / os.readlink(p)
    return target.is_file()


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_log(subdir: Path, fmt: str, now: datetime | None = None) -> Path:
    """Create an empty log named after `now` (UTC). Returns its path.

    An existing file with the same name (two calls within one second) is
    reused, never truncated.
    """
    when = now or datetime.now(UTC)
    path = subdir / log_name(fmt, when)
    path.touch(exist_ok=True)
    return path


def create_log_and_link(subdir: Path, fmt: str, now: datetime | None = None) -> Path:
    """Create a fresh log and a new link to it. The link must not exist yet."""
    log = create_log(subdir, fmt, now)
    os.symlink(log.name, subdir / symlink_name(fmt))
    return log


def create_log_and_relink(subdir: Path, fmt: str, now: datetime | None = None) -> Path:
    """Create a fresh log and atomically repoint the existing link at it.

    The new link is built under a temporary name and renamed over the real
    one, so a writer resolving the link sees either the old or the new
    target, never a missing link.
    """
    log = create_log(subdir, fmt, now)
    relink(subdir, fmt, log)
    return log


def relink(subdir: Path, fmt: str, log: Path) -> None:
    """Atomically point the link at an existing log in the same subdirectory."""
    tmp = subdir / _tmp_symlink_name(fmt)
    if tmp.is_symlink() or tmp.exists():
        tmp.unlink()  # left over from an interrupted relink
    os.symlink(log.name, tmp)
    os.replace(tmp, subdir / symlink_name(fmt))
