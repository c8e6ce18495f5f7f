"""
Root Typer application for the stagewise CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from stagewise.cli.utils import fail
from stagewise.core.logging import LOG_LEVELS, configure_logging
from stagewise.core.settings import get_settings

app = Typer(
    name="stagewise",
    help="stagewise — staged, re-runnable unit deployments.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("stagewise")
        except PackageNotFoundError:
            from stagewise import __version__ as v
        typer.echo(f"stagewise {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL."),
) -> None:
    """stagewise CLI — run, preview and inspect stage deployments."""
    settings = get_settings()
    level = (log_level or settings.log_level).upper()
    if level not in LOG_LEVELS:
        raise fail(f"Invalid log level {log_level!r}; expected one of {', '.join(LOG_LEVELS)}")
    configure_logging(level=level, json_format=settings.json_logs())


# ── Sub-command registration ─────────────────────────────────────────────

from stagewise.cli.deploy import plan_command, run_command  # noqa: E402
from stagewise.cli.units import app as units_app  # noqa: E402

app.command("run")(run_command)
app.command("plan")(plan_command)
app.add_typer(units_app, name="units", help="Unit registry inspection.")
