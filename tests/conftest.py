from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from nodelog.config import RotationConfig
from nodelog.naming import log_name, symlink_name

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def make_log(subdir: Path, fmt: str = "text", hours_ago: float = 0, content: bytes = b"") -> Path:
    """Write a log file whose name is timestamped hours_ago before NOW."""
    subdir.mkdir(parents=True, exist_ok=True)
    path = subdir / log_name(fmt, NOW - timedelta(hours=hours_ago))
    path.write_bytes(content)
    return path


def link_to(log: Path, fmt: str = "text") -> Path:
    link = log.parent / symlink_name(fmt)
    os.symlink(log.name, link)
    return link


def names(subdir: Path) -> list[str]:
    return sorted(p.name for p in subdir.iterdir())


@pytest.fixture
def node_dir(tmp_path: Path) -> Path:
    d = tmp_path / "root" / "relay-7"
    d.mkdir(parents=True)
    return d


@pytest.fixture
def params() -> RotationConfig:
    return RotationConfig(max_size_bytes=100, max_age_hours=24, keep_files=2, interval=0.01)
