from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from nodelog import scheduler
from nodelog.config import NodelogConfig, RootConfig, RotationConfig
from nodelog.scheduler import _ReloadRequestedError, run, run_forever, run_tick

from .conftest import link_to, make_log


@pytest.fixture(autouse=True)
def _reset_reload_flag():
    scheduler._reload_state[0] = False
    yield
    scheduler._reload_state[0] = False


def _recording_check_root(calls: list[tuple[Path, str]], fail: bool = False):
    async def fake(root: Path, fmt: str, params: RotationConfig) -> None:
        calls.append((root, fmt))
        if fail:
            msg = "boom"
            raise RuntimeError(msg)

    return fake


def test_run_tick_rotates_every_root(tmp_path: Path) -> None:
    params = RotationConfig(max_size_bytes=3, max_age_hours=10_000_000, keep_files=5)
    text_node = tmp_path / "text" / "1"
    json_node = tmp_path / "json" / "2"
    link_to(make_log(text_node, "text", content=b"abcd"), "text")
    link_to(make_log(json_node, "json", content=b"{}\n{}"), "json")

    asyncio.run(run_tick([(tmp_path / "text", "text"), (tmp_path / "json", "json")], params))

    assert len(list(text_node.glob("node-*.log"))) == 2
    assert len(list(json_node.glob("node-*.json"))) == 2


def test_run_forever_ticks_until_limit(monkeypatch: pytest.MonkeyPatch, params: RotationConfig) -> None:
    calls: list[tuple[Path, str]] = []
    monkeypatch.setattr(scheduler, "check_root", _recording_check_root(calls))
    targets = [(Path("/a"), "text"), (Path("/b"), "json")]

    asyncio.run(run_forever(targets, params, max_ticks=3))

    assert len(calls) == 6
    assert set(calls) == set(targets)


def test_run_forever_survives_failing_tick(monkeypatch: pytest.MonkeyPatch, params: RotationConfig) -> None:
    calls: list[tuple[Path, str]] = []
    monkeypatch.setattr(scheduler, "check_root", _recording_check_root(calls, fail=True))

    asyncio.run(run_forever([(Path("/a"), "text")], params, max_ticks=2))

    assert len(calls) == 2


def test_run_forever_without_targets(monkeypatch: pytest.MonkeyPatch, params: RotationConfig) -> None:
    calls: list[tuple[Path, str]] = []
    monkeypatch.setattr(scheduler, "check_root", _recording_check_root(calls))

    asyncio.run(run_forever([], params))

    assert calls == []


def test_reload_request_interrupts_loop(monkeypatch: pytest.MonkeyPatch, params: RotationConfig) -> None:
    calls: list[tuple[Path, str]] = []
    monkeypatch.setattr(scheduler, "check_root", _recording_check_root(calls))
    scheduler._reload_state[0] = True

    with pytest.raises(_ReloadRequestedError):
        asyncio.run(run_forever([(Path("/a"), "text")], params))

    assert len(calls) == 1


def test_reload_request_cuts_interval_sleep_short(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[Path, str]] = []
    record = _recording_check_root(calls)

    async def request_reload_later(root: Path, fmt: str, params: RotationConfig) -> None:
        await record(root, fmt, params)
        asyncio.get_running_loop().call_later(0.05, scheduler._reload_state.__setitem__, 0, True)

    monkeypatch.setattr(scheduler, "check_root", request_reload_later)
    monkeypatch.setattr(scheduler, "_RELOAD_POLL", 0.01)
    params = RotationConfig(max_size_bytes=100, max_age_hours=24, keep_files=2, interval=30)

    async def main() -> None:
        await asyncio.wait_for(run_forever([(Path("/a"), "text")], params), timeout=5)

    with pytest.raises(_ReloadRequestedError):
        asyncio.run(main())

    assert len(calls) == 1


def test_run_disabled_without_rotation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(*_args: object) -> None:
        pytest.fail("scheduler must not start without rotation parameters")

    monkeypatch.setattr(scheduler.asyncio, "run", fail)
    cfg = NodelogConfig(root=tmp_path, roots=[RootConfig(path="logs")], rotation=None)

    run(cfg)
