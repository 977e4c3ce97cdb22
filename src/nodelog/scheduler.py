"""Rotation scheduler: runs the rotation engine over every root, forever.

Runs in the foreground or as a background process (see nodelog.daemon):
    python -m nodelog.scheduler CONFIG_ROOT

Each tick checks all distinct (root, format) pairs concurrently, waits for
the whole tick to finish, then sleeps `rotation.interval` seconds (20 by
default).  No state survives between ticks.

If nodelog.toml has no [rotation] section the scheduler returns immediately.
SIGHUP reloads nodelog.toml once the running tick finishes; a pending
interval sleep is cut short.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from nodelog.config import load_config
from nodelog.rotator import check_root

if TYPE_CHECKING:
    from nodelog.config import NodelogConfig, RotationConfig

logger = logging.getLogger("nodelog.scheduler")

_RELOAD_POLL = 0.5    # seconds between reload-flag checks while sleeping

# ---------------------------------------------------------------------------
# SIGHUP config reload
# ---------------------------------------------------------------------------

# Mutable container so the signal handler and loop can share state without globals.
_reload_state: list[bool] = [False]     # [0] = SIGHUP reload requested


class _ReloadRequestedError(Exception):
    """Raised from within the scheduler loop to trigger a config reload."""


def _handle_sighup(signum: int, frame: object) -> None:  # noqa: ARG001
    _reload_state[0] = True
    logger.info("SIGHUP received, config reload requested")


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------

async def run_tick(targets: list[tuple[Path, str]], params: RotationConfig) -> None:
    """One pass over all roots. Per-root and per-node errors are logged, never raised."""
    async with asyncio.TaskGroup() as tg:
        for root, fmt in targets:
            tg.create_task(check_root(root, fmt, params))


async def _sleep_unless_reload(interval: float) -> None:
    deadline = time.monotonic() + interval
    while not _reload_state[0]:
        left = deadline - time.monotonic()
        if left <= 0:
            return
        await asyncio.sleep(min(left, _RELOAD_POLL))


async def run_forever(
    targets: list[tuple[Path, str]],
    params: RotationConfig,
    max_ticks: int | None = None,
) -> None:
    """Tick every params.interval seconds. max_ticks bounds the loop (tests, `check`)."""
    if not targets:
        logger.info("no file-mode roots configured, nothing to rotate")
        return
    logger.info("rotating %d root(s) every %.1fs", len(targets), params.interval)
    ticks = 0
    while True:
        try:
            await run_tick(targets, params)
        except Exception:
            logger.exception("rotation tick failed")
        ticks += 1
        if max_ticks is not None and ticks >= max_ticks:
            return
        await _sleep_unless_reload(params.interval)
        if _reload_state[0]:
            raise _ReloadRequestedError


def run(cfg: NodelogConfig) -> None:
    if cfg.rotation is None:
        logger.info("no [rotation] section in config, rotation disabled")
        return
    asyncio.run(run_forever(cfg.rotation_targets(), cfg.rotation))


def run_from_config(config_root: Path | None = None, log_level: str = "INFO") -> None:
    """Load nodelog.toml and run the scheduler. Handles SIGHUP for live config reload."""
    import signal as _signal

    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(name)s %(message)s")

    if hasattr(_signal, "SIGHUP"):
        _signal.signal(_signal.SIGHUP, _handle_sighup)

    while True:
        _reload_state[0] = False
        cfg = load_config(config_root)
        try:
            run(cfg)
            break  # run() loops forever normally; returns only when rotation is disabled
        except _ReloadRequestedError:
            logger.info("Reloading config from %s", config_root or Path.cwd())


if __name__ == "__main__":
    # Accept optional config root as argument
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    run_from_config(root)
