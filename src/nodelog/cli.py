"""nodelog CLI: rotation daemon for per-node log directories.

Commands:
    nodelog init               write a default nodelog.toml
    nodelog check              run one rotation pass and exit
    nodelog run                run the scheduler in the foreground
    nodelog status [--json]    show every node subdirectory and its link
    nodelog append ID LINE...  append lines to a node's current log
    nodelog daemon start|stop|status|reload
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from nodelog.config import NodelogConfig, init_config, load_config
from nodelog.daemon import reload_scheduler, scheduler_status, start_scheduler, stop_scheduler
from nodelog.models import NodeStatus
from nodelog.scheduler import run_from_config, run_tick
from nodelog.writer import append_lines

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(config_root: str | None) -> NodelogConfig:
    try:
        return load_config(config_root)
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="nodelog")
@click.option("--config", "config_root", default=None, help="Directory containing nodelog.toml")
@click.option("--log-level", default="INFO", show_default=True, help="Python logging level")
@click.pass_context
def cli(ctx: click.Context, config_root: str | None, log_level: str) -> None:
    """nodelog: size and age based rotation for node log directories."""
    ctx.ensure_object(dict)
    ctx.obj["config_root"] = config_root
    ctx.obj["log_level"] = log_level


# ---------------------------------------------------------------------------
# nodelog init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(root: str) -> None:
    """Write a default nodelog.toml."""
    try:
        config_path = init_config(Path(root).resolve())
    except FileExistsError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {config_path}")


# ---------------------------------------------------------------------------
# nodelog check / run
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Run a single rotation pass over all roots."""
    cfg = _load_cfg(ctx.obj["config_root"])
    if cfg.rotation is None:
        click.echo("Rotation disabled (no [rotation] section)")
        return
    logging.basicConfig(level=ctx.obj["log_level"].upper(), format="%(asctime)s %(name)s %(message)s")
    targets = cfg.rotation_targets()
    asyncio.run(run_tick(targets, cfg.rotation))
    click.echo(f"Checked {len(targets)} root(s)")


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the rotation scheduler in the foreground (Ctrl-C to stop)."""
    cfg = _load_cfg(ctx.obj["config_root"])
    if cfg.rotation is None:
        click.echo("Rotation disabled (no [rotation] section)")
        return
    try:
        run_from_config(cfg.root, log_level=ctx.obj["log_level"])
    except KeyboardInterrupt:
        click.echo("Stopped")


# ---------------------------------------------------------------------------
# nodelog status
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Machine-readable output")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show node subdirectories, their log counts and link health."""
    cfg = _load_cfg(ctx.obj["config_root"])
    report: list[dict] = []
    for root, fmt in cfg.rotation_targets():
        nodes: list[NodeStatus] = []
        if root.is_dir():
            nodes = [
                NodeStatus.from_dir(p, fmt)
                for p in sorted(root.iterdir(), key=lambda p: p.name)
                if p.is_dir()
            ]
        report.append({"root": str(root), "format": fmt, "nodes": nodes})

    if as_json:
        out = [{**r, "nodes": [n.to_dict() for n in r["nodes"]]} for r in report]
        click.echo(json.dumps(out, indent=2))
        return

    if cfg.rotation is None:
        click.echo("Rotation: disabled")
    else:
        rot = cfg.rotation
        click.echo(
            f"Rotation: max {rot.max_size_bytes:,} bytes, max age {rot.max_age_hours}h, "
            f"keep {rot.keep_files} file(s), every {rot.interval:g}s"
        )
    if not report:
        click.echo("No file-mode roots configured")
    for r in report:
        click.echo(f"\n{r['root']} ({r['format']})")
        if not r["nodes"]:
            click.echo("  (no nodes)")
        for node in r["nodes"]:
            click.echo(f"  {node.summary()}")


# ---------------------------------------------------------------------------
# nodelog append
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("node_id")
@click.argument("lines", nargs=-1, required=True)
@click.option("--name", "node_name", default="", help="Human-readable node name (dir becomes NAME-ID)")
@click.option("--root", "root_path", default=None, help="Root directory (default: first configured root)")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default=None)
@click.pass_context
def append(
    ctx: click.Context,
    node_id: str,
    lines: tuple[str, ...],
    node_name: str,
    root_path: str | None,
    fmt: str | None,
) -> None:
    """Append LINES to the current log of node NODE_ID."""
    cfg = _load_cfg(ctx.obj["config_root"])
    if root_path is None:
        targets = cfg.rotation_targets()
        if not targets:
            raise click.ClickException("no file-mode roots configured; pass --root")
        root, default_fmt = targets[0]
    else:
        root, default_fmt = Path(root_path), "text"
    fmt = fmt or default_fmt

    link = append_lines(root, fmt, node_id, lines, node_name=node_name)
    if link is None:
        raise click.ClickException(f"cannot write logs for node {node_id} under {root}")
    click.echo(f"Appended {len(lines)} line(s) to {link}")


# ---------------------------------------------------------------------------
# nodelog daemon
# ---------------------------------------------------------------------------


@cli.group()
def daemon() -> None:
    """Manage the background scheduler."""


@daemon.command("start")
@click.pass_context
def daemon_start(ctx: click.Context) -> None:
    cfg = _load_cfg(ctx.obj["config_root"])
    if cfg.rotation is None:
        click.echo("Rotation disabled (no [rotation] section); not starting")
        return
    click.echo(f"Scheduler: {start_scheduler(cfg)}")


@daemon.command("stop")
@click.pass_context
def daemon_stop(ctx: click.Context) -> None:
    cfg = _load_cfg(ctx.obj["config_root"])
    click.echo(f"Scheduler: {stop_scheduler(cfg)}")


@daemon.command("status")
@click.pass_context
def daemon_status(ctx: click.Context) -> None:
    cfg = _load_cfg(ctx.obj["config_root"])
    click.echo(f"Scheduler: {scheduler_status(cfg)}")


@daemon.command("reload")
@click.pass_context
def daemon_reload(ctx: click.Context) -> None:
    cfg = _load_cfg(ctx.obj["config_root"])
    if reload_scheduler(cfg):
        click.echo("Scheduler: reload requested")
    else:
        click.echo("Scheduler: not running as a background process")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
