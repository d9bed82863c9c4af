"""wisemonk run — monitor the configured channels."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

from wisemonk.core.constants import ExitCode

if TYPE_CHECKING:
    from wisemonk.core.config import WisemonkConfig

logger = structlog.get_logger()


def cmd_run(
    config_path: str | None,
    log_level: str | None,
    log_json: bool,
    console: Console,
) -> None:
    """Load the config and run the supervisor until Ctrl+C or a fatal error."""
    from wisemonk.core.config import load_config
    from wisemonk.core.exceptions import (
        ConfigError,
        ConfigNotFoundError,
        IntegrationError,
        WisemonkError,
    )
    from wisemonk.core.logging import configure_logging

    try:
        config = load_config(config_path)
    except ConfigNotFoundError as exc:
        console.print(f"[red]Not configured:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    # An explicit --log-level/--log-json wins over the config file.
    configure_logging(
        level=log_level or config.logging.level,
        json_output=log_json or config.logging.format == "json",
    )

    console.print(
        f"[bold]Wisemonk[/bold] watching {len(config.channels)} channel(s). Press Ctrl+C to stop."
    )
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Wisemonk stopped.[/yellow]")
    except ConfigError as exc:
        logger.error("config_rejected", error=str(exc))
        sys.exit(ExitCode.CONFIG_ERROR)
    except IntegrationError as exc:
        logger.error("integration_error", error=str(exc))
        sys.exit(ExitCode.INTEGRATION_ERROR)
    except WisemonkError as exc:
        logger.error("wisemonk_failed", error=str(exc))
        sys.exit(ExitCode.ERROR)


async def _serve(config: WisemonkConfig) -> None:
    from wisemonk.monitor.supervisor import MonitorSupervisor

    supervisor = MonitorSupervisor.from_config(config)
    supervisor.install_signal_handlers()
    await supervisor.run()
