"""brainbase config — show the effective settings, or create the global defaults file."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.panel import Panel

from brainbase.cli.errors import err_config
from brainbase.config import ConfigError, ensure_global_config, load_config

console = Console()


def config_cmd(
    init: Annotated[
        bool,
        typer.Option("--init", help="Create ~/.brainbase/config.yaml with defaults if missing."),
    ] = False,
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override the global config path (for testing)."),
    ] = None,
) -> None:
    """Show the merged configuration (global → brainbase.yaml → environment)."""
    if init:
        path = ensure_global_config(global_config)
        console.print(f"[green]✓[/] Global config: {path}")

    try:
        cfg = load_config(global_config_path=global_config)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc

    rendered = yaml.safe_dump(asdict(cfg), sort_keys=False, default_flow_style=False)
    console.print(Panel(rendered.rstrip(), title="[bold]Effective configuration[/]", expand=False))
