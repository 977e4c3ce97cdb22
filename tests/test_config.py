from __future__ import annotations

from pathlib import Path

import pytest

from nodelog.config import init_config, load_config

_FULL = """\
[nodelog]
state_dir = "state"

[[roots]]
path = "logs/text"
format = "text"

[[roots]]
path = "logs/text"
format = "text"

[[roots]]
path = "logs/json"
format = "json"

[[roots]]
path = "journal"
mode = "journal"

[rotation]
max_size_bytes = 2048
max_age_hours = 12
keep_files = 3
"""


def _write(root: Path, content: str) -> None:
    (root / "nodelog.toml").write_text(content)


def test_load_full_config(tmp_path: Path) -> None:
    _write(tmp_path, _FULL)
    cfg = load_config(tmp_path)

    assert cfg.root == tmp_path
    assert cfg.state_dir == tmp_path / "state"
    assert len(cfg.roots) == 4
    assert cfg.rotation is not None
    assert cfg.rotation.max_size_bytes == 2048
    assert cfg.rotation.max_age_hours == 12
    assert cfg.rotation.keep_files == 3
    assert cfg.rotation.interval == 20.0


def test_rotation_targets_dedup_and_skip_journal(tmp_path: Path) -> None:
    _write(tmp_path, _FULL)
    cfg = load_config(tmp_path)

    assert cfg.rotation_targets() == [
        (tmp_path / "logs/text", "text"),
        (tmp_path / "logs/json", "json"),
    ]


def test_missing_rotation_section_disables(tmp_path: Path) -> None:
    _write(tmp_path, '[[roots]]\npath = "logs"\n')
    cfg = load_config(tmp_path)
    assert cfg.rotation is None
    assert not cfg.rotation_enabled


def test_no_config_file_gives_empty_config(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)
    assert cfg.roots == []
    assert cfg.rotation is None


def test_config_found_by_walking_up(tmp_path: Path) -> None:
    _write(tmp_path, _FULL)
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert load_config(nested).root == tmp_path


@pytest.mark.parametrize(
    ("content", "match"),
    [
        ('[[roots]]\npath = "x"\nformat = "xml"\n', "unknown log format"),
        ('[[roots]]\npath = "x"\nmode = "syslog"\n', "unknown log mode"),
        ('[[roots]]\nformat = "text"\n', "missing 'path'"),
        ("[rotation]\nmax_size_bytes = 1\nmax_age_hours = 1\n", "missing 'keep_files'"),
        ("[rotation]\nmax_size_bytes = 0\nmax_age_hours = 1\nkeep_files = 1\n", "must be positive"),
        ("[rotation]\nmax_size_bytes = 1\nmax_age_hours = -1\nkeep_files = 1\n", "must not be negative"),
    ],
)
def test_invalid_config(tmp_path: Path, content: str, match: str) -> None:
    _write(tmp_path, content)
    with pytest.raises(ValueError, match=match):
        load_config(tmp_path)


def test_init_config_round_trip(tmp_path: Path) -> None:
    path = init_config(tmp_path)
    assert path == tmp_path / "nodelog.toml"

    cfg = load_config(tmp_path)
    assert cfg.rotation is not None
    assert cfg.rotation.keep_files == 10
    assert cfg.rotation_targets() == [(tmp_path / "logs/text", "text")]

    with pytest.raises(FileExistsError):
        init_config(tmp_path)
