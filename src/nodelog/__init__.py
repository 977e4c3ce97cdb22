"""Size and age based rotation for per-node log directories.

Layout under each configured root:
    <root>/
        <id>/ or <name>-<id>/
            node-2024-05-01T10-00-00.log
            node-2024-05-01T14-32-07.log
            node.log -> node-2024-05-01T14-32-07.log   # current log

A writer appends through node.log; the rotator swaps the link atomically
(temp link + rename) when the current log is full, and deletes logs older
than max_age_hours while keeping at least keep_files of them.
"""

from nodelog.config import NodelogConfig, RootConfig, RotationConfig, init_config, load_config
from nodelog.models import NodeStatus
from nodelog.rotator import check_logs, check_node, check_root
from nodelog.writer import append_lines

__all__ = [
    "NodeStatus",
    "NodelogConfig",
    "RootConfig",
    "RotationConfig",
    "append_lines",
    "check_logs",
    "check_node",
    "check_root",
    "init_config",
    "load_config",
]
