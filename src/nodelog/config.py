"""NodelogConfig: rotation daemon configuration.

Default layout (relative to the directory holding nodelog.toml):

    nodelog.toml          # config
    .nodelog/             # state: pid file, daemon logs
    logs/
        text/             # a root: one subdirectory per log source
            <id>/ or <name>-<id>/
                node-2024-05-01T14-32-07.log
                node.log -> node-2024-05-01T14-32-07.log

nodelog.toml example:

    [nodelog]
    # state_dir = ".nodelog"   # default

    [[roots]]
    path = "logs/text"
    format = "text"     # text -> .log, json -> .json
    mode = "file"       # file | journal (journal roots are never rotated)

    [rotation]          # omit the whole section to disable rotation
    max_size_bytes = 10485760
    max_age_hours = 24
    keep_files = 10
    interval = 20.0     # seconds between rotation passes
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from nodelog.naming import log_extension

_CONFIG_FILENAME = "nodelog.toml"
_DEFAULT_STATE_DIR = ".nodelog"
_DEFAULT_INTERVAL = 20.0
_LOG_MODES = ("file", "journal")


@dataclass
class RootConfig:
    """A [[roots]] entry in nodelog.toml."""
    path: str                               # relative to config root (or absolute)
    format: str = "text"                    # text | json
    mode: str = "file"                      # file | journal

    def abs_path(self, root: Path) -> Path:
        return root / self.path


@dataclass(frozen=True)
class RotationConfig:
    """The [rotation] section. Constant for the lifetime of the process."""
    max_size_bytes: int
    max_age_hours: int
    keep_files: int
    interval: float = _DEFAULT_INTERVAL


@dataclass
class NodelogConfig:
    """Resolved configuration."""

    root: Path                              # directory that contains nodelog.toml
    state_dir: Path = field(default_factory=Path)
    roots: list[RootConfig] = field(default_factory=list)
    rotation: RotationConfig | None = None  # None = rotation disabled

    @property
    def rotation_enabled(self) -> bool:
        return self.rotation is not None

    def rotation_targets(self) -> list[tuple[Path, str]]:
        """Distinct (root dir, format) pairs of file-mode roots, in config order."""
        targets: list[tuple[Path, str]] = []
        for r in self.roots:
            if r.mode != "file":
                continue
            pair = (r.abs_path(self.root), r.format)
            if pair not in targets:
                targets.append(pair)
        return targets

    def ensure_dirs(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)


def _parse_root(raw: dict[str, Any]) -> RootConfig:
    if "path" not in raw:
        msg = "[[roots]] entry is missing 'path'"
        raise ValueError(msg)
    fmt = str(raw.get("format", "text"))
    log_extension(fmt)  # raises ValueError on unknown format
    mode = str(raw.get("mode", "file"))
    if mode not in _LOG_MODES:
        msg = f"unknown log mode for root {raw['path']!r}: {mode!r} (expected file or journal)"
        raise ValueError(msg)
    return RootConfig(path=str(raw["path"]), format=fmt, mode=mode)


def _parse_rotation(raw: dict[str, Any]) -> RotationConfig:
    try:
        rot = RotationConfig(
            max_size_bytes=int(raw["max_size_bytes"]),
            max_age_hours=int(raw["max_age_hours"]),
            keep_files=int(raw["keep_files"]),
            interval=float(raw.get("interval", _DEFAULT_INTERVAL)),
        )
    except KeyError as exc:
        msg = f"[rotation] is missing {exc.args[0]!r}"
        raise ValueError(msg) from exc
    if rot.max_size_bytes <= 0:
        msg = f"[rotation] max_size_bytes must be positive, got {rot.max_size_bytes}"
        raise ValueError(msg)
    if rot.max_age_hours < 0 or rot.keep_files < 0:
        msg = "[rotation] max_age_hours and keep_files must not be negative"
        raise ValueError(msg)
    if rot.interval <= 0:
        msg = f"[rotation] interval must be positive, got {rot.interval}"
        raise ValueError(msg)
    return rot


def load_config(root: Path | str | None = None) -> NodelogConfig:
    """Load nodelog.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    section = raw.get("nodelog", {})
    state_rel = section.get("state_dir", _DEFAULT_STATE_DIR)

    rot_section = raw.get("rotation")

    return NodelogConfig(
        root=root_path,
        state_dir=root_path / state_rel,
        roots=[_parse_root(r) for r in raw.get("roots", [])],
        rotation=_parse_rotation(rot_section) if rot_section is not None else None,
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for nodelog.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path) -> Path:
    """Write a default nodelog.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"nodelog.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = """\
[nodelog]
# state_dir = ".nodelog"   # pid file, daemon logs

[[roots]]
path = "logs/text"
format = "text"     # text -> node-<ts>.log + node.log link
mode = "file"       # file | journal (journal roots are never rotated)

# [[roots]]
# path = "logs/json"
# format = "json"   # json -> node-<ts>.json + node.json link

# Remove this section to disable rotation entirely.
[rotation]
max_size_bytes = 10485760   # rotate the current log at 10 MiB
max_age_hours = 24          # logs older than this are candidates for removal
keep_files = 10             # ...but always keep at least this many logs
# interval = 20.0           # seconds between rotation passes
"""
    config_path.write_text(content)
    return config_path
