"""wisemonk config check — validate configuration."""

from __future__ import annotations

import sys

from rich.console import Console
from rich.table import Table

from wisemonk.core.constants import ExitCode


def cmd_config_check(config_path: str | None, console: Console) -> None:
    from wisemonk.core.config import load_config
    from wisemonk.core.exceptions import ConfigError, ConfigNotFoundError

    try:
        config = load_config(config_path)
    except ConfigNotFoundError as exc:
        console.print(f"[red]Not configured:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    table = Table(title="Monitored channels")
    table.add_column("Channel", style="cyan")
    table.add_column("Window")
    table.add_column("Threshold", justify="right")
    table.add_column("Topic category")
    table.add_column("Search over")
    for channel_id, ch in sorted(config.channels.items()):
        table.add_row(
            channel_id,
            ch.interval,
            str(ch.max_messages),
            ch.create_topic_in or "-",
            ", ".join(ch.search_over) or "-",
        )
    console.print(table)

    archive = config.discourse.url if config.discourse else "disabled"
    console.print(f"Archive: {archive}")
    console.print(
        f"Tick: {config.monitor.tick_seconds:g}s  Queue size: {config.monitor.queue_size}"
    )
    console.print("[green]Config OK[/green]")
