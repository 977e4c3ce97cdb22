"""Writer side of the layout: appends already-formatted lines through the link.

The rotator relies on this contract:
    - the subdirectory and its first log/link pair are created here;
    - every append opens the link path afresh, so a rotation (atomic
      relink) is picked up by the very next write;
    - bytes are only ever appended, never rewritten.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nodelog.naming import create_log_and_link, create_log_and_relink, symlink_name

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger("nodelog.writer")


def node_dir_name(node_id: int | str, node_name: str = "") -> str:
    """Subdirectory for a node: "<id>", or "<name>-<id>" when a name is set."""
    return f"{node_name}-{node_id}" if node_name else str(node_id)


def ensure_current_log(subdir: Path, fmt: str) -> Path:
    """Make sure the link resolves to a log. Returns the link path."""
    link = subdir / symlink_name(fmt)
    if link.exists():
        return link
    if link.is_symlink():
        # Dangling: replace atomically, a concurrent rotation may be relinking too.
        create_log_and_relink(subdir, fmt)
        return link
    try:
        create_log_and_link(subdir, fmt)
    except FileExistsError:
        pass  # the rotator created it between our check and the symlink call
    return link


def append_lines(
    root: Path,
    fmt: str,
    node_id: int | str,
    lines: Iterable[str],
    node_name: str = "",
) -> Path | None:
    """Append lines (one per record) to the node's current log. Returns the link path.

    Returns None when the node subdirectory cannot be created; the batch is dropped.
    """
    subdir = root / node_dir_name(node_id, node_name)
    try:
        subdir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.exception("cannot create subdir for log files: %s", subdir)
        return None

    link = ensure_current_log(subdir, fmt)
    data = "".join(line + "\n" for line in lines)
    if data:
        with link.open("a", encoding="utf-8") as f:
            f.write(data)
    return link
