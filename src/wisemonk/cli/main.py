"""
Wisemonk CLI entry point.

Commands:
  wisemonk run [--config PATH]           — monitor the configured channels
  wisemonk config check [--config PATH]  — validate the config and show channels
  wisemonk version                       — show version
"""

from __future__ import annotations

import click
from rich.console import Console

from wisemonk import __version__

console = Console()


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="wisemonk %(version)s")
@click.option(
    "--log-level",
    default=None,
    help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to the config file's level.",
)
@click.option("--log-json", is_flag=True, default=False, help="Emit JSON log lines.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_json: bool) -> None:
    """Wisemonk — asks busy Slack channels to take it to the forum."""
    from wisemonk.core.logging import configure_logging

    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["log_json"] = log_json
    configure_logging(level=log_level or "INFO", json_output=log_json)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml (default: $WISEMONK_CONFIG or the platform config dir).",
)
@click.pass_context
def run(ctx: click.Context, config_path: str | None) -> None:
    """Monitor the configured channels until interrupted."""
    from wisemonk.cli._run import cmd_run

    cmd_run(
        config_path=config_path,
        log_level=ctx.obj.get("log_level"),
        log_json=ctx.obj.get("log_json", False),
        console=console,
    )


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml.",
)
def config_check(config_path: str | None) -> None:
    """Validate the config file and list the monitored channels."""
    from wisemonk.cli._config_cmd import cmd_config_check

    cmd_config_check(config_path=config_path, console=console)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command()
def version() -> None:
    """Show the Wisemonk version."""
    console.print(f"wisemonk {__version__}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
