"""
lorekeeper: Typer CLI for inspecting and driving keepers from the shell.

Commands:
    • archives : List the archives a config manages, oldest first
    • rotate   : Force one rotation of the current file
    • pipe     : Copy stdin into a keeper line by line (rotating as configured)

Every command takes a YAML/JSON keeper config and optional ``--set key=value``
overrides (OmegaConf dotlist syntax).
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from . import __version__
from .archives import list_archives
from .config import KeeperConfig
from .config_loader import load_config
from .errors import LorekeeperError
from .keeper import new_keeper

app = typer.Typer(help="lorekeeper: rotating log files", add_completion=False)

_CONFIG = typer.Argument(..., help="Keeper config file (.yaml, .yml or .json)")
_SET = typer.Option(None, "--set", "-s", help="Override a config key, e.g. --set max_size=1MiB")


def _load(config: Path, overrides: Optional[List[str]]) -> KeeperConfig:
    try:
        return load_config(config, overrides or None)
    except LorekeeperError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """Manage rotating log files."""
    if version:
        typer.echo(f"lorekeeper {__version__}")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


@app.command()
def archives(config: Path = _CONFIG, overrides: Optional[List[str]] = _SET):
    """List archives matching the config's archive pattern, oldest first."""
    cfg = _load(config, overrides)
    try:
        records, total = list_archives(cfg.archive_glob(), exclude=[cfg.current_path])
    except LorekeeperError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    for record in records:
        stamp = datetime.fromtimestamp(record.mtime_ns / 1e9).isoformat(timespec="seconds")
        typer.echo(f"{record.size:>12}  {stamp}  {record.path}")
    typer.echo(f"{len(records)} archive(s), {total} bytes")


@app.command()
def rotate(config: Path = _CONFIG, overrides: Optional[List[str]] = _SET):
    """Archive the current file now."""
    cfg = _load(config, overrides)
    try:
        keeper = new_keeper(cfg)
        try:
            keeper.rotate()
        finally:
            keeper.release()
    except LorekeeperError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"rotated {keeper.current_path}")


@app.command()
def pipe(
    config: Path = _CONFIG,
    overrides: Optional[List[str]] = _SET,
    archive_on_exit: bool = typer.Option(
        False, "--archive-on-exit", help="Archive the current file at end of input"
    ),
):
    """Append stdin to the keeper's current file, one line per write."""
    cfg = _load(config, overrides)
    stdin = typer.get_binary_stream("stdin")
    count = 0
    try:
        keeper = new_keeper(cfg)
        try:
            for line in stdin:
                count += keeper.write(line)
        finally:
            if archive_on_exit:
                keeper.close()
            else:
                keeper.release()
    except LorekeeperError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"wrote {count} bytes to {keeper.name}", err=True)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
