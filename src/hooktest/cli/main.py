"""CLI entry point for hooktest."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from hooktest import __version__, bootstrap
from hooktest.config import RunnerConfig, load_config
from hooktest.loader import load_suite
from hooktest.reporting import JsonReporter, ReportManager, TerminalReporter

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"hooktest {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the hooktest version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Top level CLI group for hooktest."""

    bootstrap(verbose=verbose)
    ctx.obj = CliState(verbose=verbose)


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML runner config.")
@click.option("--match", "match_filters", type=str, help="Comma-separated title globs to run.")
@click.option("--concurrency", type=click.IntRange(min=0), help="Maximum concurrent tests (0 = unbounded).")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Per-unit timeout in seconds.")
@click.option("--fail-fast", is_flag=True, help="Stop starting tests after the first failure.")
@click.option("--serial", is_flag=True, help="Run every test serially.")
@click.option("--update-snapshots", is_flag=True, help="Overwrite recorded snapshots.")
@click.option(
    "--report",
    "report_format",
    type=click.Choice(["terminal", "json"]),
    default="terminal",
    show_default=True,
    help="Report format (terminal by default).",
)
@click.option("--report-path", type=str, help="When --report json, write to this path.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_obj
def run(
    state: CliState,
    files: Tuple[str, ...],
    config_path: Optional[str],
    match_filters: Optional[str],
    concurrency: Optional[int],
    timeout: Optional[float],
    fail_fast: bool,
    serial: bool,
    update_snapshots: bool,
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Run the suites declared in FILES."""

    try:
        config = load_config(config_path) if config_path else RunnerConfig()
        config = config.merged(
            match=_split_csv(match_filters) or None,
            concurrency=concurrency,
            timeout=timeout,
            fail_fast=fail_fast or None,
            serial=serial or None,
            update_snapshots=update_snapshots or None,
        )
        suites = [load_suite(Path(path)) for path in files]
        if state.verbose:
            click.echo(f"Effective config: {config}", err=True)
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc

    reporter = JsonReporter(report_path) if report_format == "json" else TerminalReporter(use_color=not no_color)
    manager = ReportManager([reporter])
    manager.run_started(list(files))
    for index, suite in enumerate(suites, start=1):
        manager.suite_finished(suite.run(config), index, len(suites))
    results = manager.run_finished()
    raise click.exceptions.Exit(0 if all(r.ok for r in results) else 1)


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="hooktest", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return tuple()
    parts = [part.strip() for part in value.split(",") if part.strip()]
    return tuple(parts)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
