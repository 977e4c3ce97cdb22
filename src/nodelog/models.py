"""Read-only snapshot of a node subdirectory, for `nodelog status`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nodelog.naming import is_log, is_symlink_valid, symlink_name

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class NodeStatus:
    """One node subdirectory as found on disk."""

    name: str                          # subdirectory name: <id> or <name>-<id>
    log_count: int = 0
    total_bytes: int = 0
    current: str | None = None         # link target (bare filename), None if no link
    link_ok: bool = False              # link exists and resolves to a regular file
    newest: str | None = None          # newest log by filename

    @property
    def healthy(self) -> bool:
        """Link valid and pointing at the newest log."""
        return self.link_ok and self.log_count > 0 and self.current == self.newest

    @classmethod
    def from_dir(cls, subdir: Path, fmt: str) -> NodeStatus:
        logs = sorted((p for p in subdir.iterdir() if is_log(fmt, p)), key=lambda p: p.name)
        link = subdir / symlink_name(fmt)
        current: str | None = None
        link_ok = False
        if link.is_symlink():
            current = os.readlink(link)
            link_ok = is_symlink_valid(link)
        return cls(
            name=subdir.name,
            log_count=len(logs),
            total_bytes=sum(p.stat().st_size for p in logs),
            current=current,
            link_ok=link_ok,
            newest=logs[-1].name if logs else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "log_count": self.log_count,
            "total_bytes": self.total_bytes,
            "current": self.current,
            "link_ok": self.link_ok,
            "newest": self.newest,
            "healthy": self.healthy,
        }

    def summary(self) -> str:
        state = "ok" if self.healthy else ("broken link" if self.current and not self.link_ok else "needs check")
        target = self.current or "-"
        return f"{self.name}: {self.log_count} log(s), {self.total_bytes:,} bytes, current={target} [{state}]"
