"""Rotation engine: size-triggered rotation and age/count retention.

Every pass re-derives state from a fresh directory listing; nothing is
cached between passes.  For each root, every node subdirectory is checked
independently (one thread per subdirectory, joined per root), and a
failure in one subdirectory is logged and never reaches its siblings.

Per subdirectory (temporary relink links node.log.tmp.<pid> are not counted):
    0 entries   -> nothing to do
    1 entry     -> self-heal (dangling link only, or log without link)
    2+ entries  -> link repair, size check, retention check
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from nodelog.naming import (
    create_log_and_link,
    create_log_and_relink,
    is_log,
    is_symlink,
    is_symlink_valid,
    is_tmp_link,
    relink,
    symlink_name,
    timestamp_of,
)

if TYPE_CHECKING:
    from nodelog.config import RotationConfig

logger = logging.getLogger("nodelog.rotator")


def _list_dir(path: Path) -> list[Path]:
    return sorted(path.iterdir(), key=lambda p: p.name)


# ---------------------------------------------------------------------------
# Root / node
# ---------------------------------------------------------------------------

async def check_root(root: Path, fmt: str, params: RotationConfig) -> None:
    """Check every node subdirectory of root concurrently."""
    try:
        subdirs = await asyncio.to_thread(lambda: [p for p in _list_dir(root) if p.is_dir()])
    except OSError:
        logger.exception("cannot list root directory: %s", root)
        return
    if not subdirs:
        # No node has written here yet (or the subdirs were removed).
        return

    async with asyncio.TaskGroup() as tg:
        for subdir in subdirs:
            tg.create_task(asyncio.to_thread(_check_node_logged, subdir, fmt, params))


def _check_node_logged(subdir: Path, fmt: str, params: RotationConfig) -> None:
    try:
        check_node(subdir, fmt, params)
    except Exception:
        logger.exception("rotation failed in %s", subdir)


def check_node(subdir: Path, fmt: str, params: RotationConfig, now: datetime | None = None) -> None:
    # Temporary links belong to a relink in flight (or an interrupted one).
    entries = [p for p in _list_dir(subdir) if not is_tmp_link(p, fmt)]
    if not entries:
        return
    if len(entries) == 1:
        # A healthy node has at least a log and its link.
        fix_single_file(entries[0], fmt)
        return
    check_logs(params, fmt, entries, now=now)


def fix_single_file(path: Path, fmt: str) -> None:
    """Repair a subdirectory whose only entry is `path`."""
    if is_symlink(path, fmt):
        # Only the link is left: its log was deleted.
        _reseed(path, fmt)
    elif is_log(fmt, path):
        # Only the log is left: its link was deleted.
        os.symlink(path.name, path.parent / symlink_name(fmt))
        logger.info("relinked orphan log: %s", path)


def _reseed(link: Path, fmt: str) -> None:
    link.unlink()
    log = create_log_and_link(link.parent, fmt)
    logger.info("recreated log and link: %s", log)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_logs(params: RotationConfig, fmt: str, paths: list[Path], now: datetime | None = None) -> None:
    # Names share a prefix and carry a fixed-width timestamp: sorted == oldest first.
    logs = sorted((p for p in paths if is_log(fmt, p)), key=lambda p: p.name)
    if not logs:
        link = next((p for p in paths if is_symlink(p, fmt)), None)
        if link is not None and not is_symlink_valid(link):
            # Dangling link next to unrelated entries: no log left to point at.
            _reseed(link, fmt)
        return
    repair_link(logs, fmt)
    check_size(logs, fmt, params.max_size_bytes)
    check_retention(logs, fmt, params.max_age_hours, params.keep_files, now=now)


def repair_link(logs: list[Path], fmt: str) -> bool:
    """Point a missing, dangling or stale link at the newest log. Returns True if repaired.

    A link left on an older log (e.g. by a relink interrupted after the new
    log was created) would hide the current log from the size check.
    """
    if not logs:
        return False
    subdir = logs[-1].parent
    link = subdir / symlink_name(fmt)
    if link.exists() and not link.is_symlink():
        logger.warning("%s is a regular file, not a link; leaving it alone", link)
        return False
    if link.is_symlink() and is_symlink_valid(link) and os.readlink(link) == logs[-1].name:
        return False
    relink(subdir, fmt, logs[-1])
    logger.info("repaired link %s -> %s", link, logs[-1].name)
    return True


def check_size(logs: list[Path], fmt: str, max_size_bytes: int) -> Path | None:
    """Rotate when the newest log reached max_size_bytes. Returns the new log, if any."""
    if not logs:
        return None
    current = logs[-1]  # the one the link targets
    size = current.stat().st_size
    if size < max_size_bytes:
        return None
    new_log = create_log_and_relink(current.parent, fmt)
    logger.info("rotated %s (%d bytes) -> %s", current, size, new_log.name)
    return new_log


def check_retention(
    logs: list[Path],
    fmt: str,
    max_age_hours: int,
    keep_files: int,
    now: datetime | None = None,
) -> list[Path]:
    """Delete logs older than max_age_hours while keeping at least keep_files logs.

    `logs` must be sorted oldest first. Returns the removed paths.
    """
    if not logs:
        return []
    now = now or datetime.now(UTC)
    max_age_secs = max_age_hours * 3600

    def _is_old(path: Path) -> bool:
        ts = timestamp_of(path)
        return ts is not None and int((now - ts).total_seconds()) >= max_age_secs

    old = [p for p in logs if _is_old(p)]
    remaining = len(logs) - len(old)

    if remaining >= keep_files:
        _remove(old)
        if old and remaining == 0:
            # keep_files == 0 and every log was old: the current one is gone too.
            subdir = logs[0].parent
            (subdir / symlink_name(fmt)).unlink(missing_ok=True)
            log = create_log_and_link(subdir, fmt)
            logger.info("all logs expired in %s, started %s", subdir, log.name)
        return old

    # Too many logs are old: keep the newest of them to reach keep_files.
    to_keep = keep_files - remaining
    to_remove = list(reversed(old))[to_keep:]
    _remove(to_remove)
    return to_remove


def _remove(paths: list[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)
    if paths:
        logger.info("removed %d old log(s) from %s", len(paths), paths[0].parent)
