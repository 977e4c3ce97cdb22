"""Background scheduler: a detached `python -m nodelog.scheduler` tracked by a PID file.

State lives in the configured state dir:
    .nodelog/
        scheduler.pid
        logs/scheduler.log     # the scheduler's own stdout/stderr
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from nodelog.config import NodelogConfig


def _pid_file(cfg: NodelogConfig) -> Path:
    return cfg.state_dir / "scheduler.pid"


def _running_pid(cfg: NodelogConfig) -> int | None:
    """PID of a live scheduler, or None (missing, unreadable or stale PID file)."""
    try:
        pid = int(_pid_file(cfg).read_text().strip())
        os.kill(pid, 0)
    except (OSError, ValueError):
        return None
    return pid


def start_scheduler(cfg: NodelogConfig) -> str:
    pid = _running_pid(cfg)
    if pid is not None:
        return f"already running (pid {pid})"

    log_file = cfg.state_dir / "logs" / "scheduler.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with log_file.open("a") as log:
        proc = subprocess.Popen(
            [sys.executable, "-m", "nodelog.scheduler", str(cfg.root)],
            stdout=log,
            stderr=log,
            start_new_session=True,
        )
    _pid_file(cfg).write_text(str(proc.pid))
    return f"started (pid {proc.pid})"


def scheduler_status(cfg: NodelogConfig) -> str:
    pid = _running_pid(cfg)
    return "stopped" if pid is None else f"running (pid {pid})"


def reload_scheduler(cfg: NodelogConfig) -> bool:
    """Ask the scheduler to re-read nodelog.toml. False if it is not running."""
    pid = _running_pid(cfg)
    if pid is None:
        return False
    os.kill(pid, signal.SIGHUP)
    return True


def stop_scheduler(cfg: NodelogConfig) -> str:
    pid = _running_pid(cfg)
    _pid_file(cfg).unlink(missing_ok=True)
    if pid is None:
        return "not running"
    os.kill(pid, signal.SIGTERM)
    return "stopped"
