"""Command line interface for course-setup."""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Set, Tuple

import click
from rich.console import Console

from .bundle import BUNDLE_NAME, build_bundle
from .core.config import Config
from .core.host import detect_host
from .core.logging import setup_logging
from .core.runner import SetupRunner
from .core.selfupdate import REEXEC_TOKEN, SelfUpdater
from .core.steps import Step, StepSelection

console = Console()
logger = logging.getLogger(__name__)

NO_FAIL_TOKEN = "d"
MODE_TOKENS = (NO_FAIL_TOKEN, REEXEC_TOKEN)


def split_tokens(tokens: Tuple[str, ...]) -> Tuple[Set[str], str]:
    """Separate leading mode tokens from the step flag string.

    Raises:
        click.UsageError: If more than one flag string is given.
    """
    remaining: List[str] = list(tokens)
    modes: Set[str] = set()
    while remaining and remaining[0] in MODE_TOKENS:
        modes.add(remaining.pop(0))
    if len(remaining) > 1:
        raise click.UsageError(f"Expected a single FLAGS string, got: {' '.join(remaining)}")
    return modes, remaining[0] if remaining else ""


def _step_help() -> str:
    return "\n".join(f"  {step.flag}  {step.title}" for step in Step)


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog="\b\nStep flags:\n" + _step_help(),
)
@click.argument("tokens", nargs=-1, metavar="[d|r] [FLAGS]")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding the built-in course configuration",
)
@click.option("--debug", is_flag=True, help="Show debug output on the console")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write a debug log here")
@click.option("--no-update", is_flag=True, help="Do not check for a newer setup script")
def cli(
    tokens: Tuple[str, ...],
    config_file: Optional[Path],
    debug: bool,
    log_file: Optional[str],
    no_update: bool,
) -> None:
    """Set up this machine for the course.

    Installs packages, creates your SSH key, clones your course repository,
    installs the course skeleton files and configures your shell and desktop.
    It is safe to run again: anything already done is left alone.

    FLAGS picks which steps to run (default: all of them). A leading `d`
    makes recoverable failures exit with status 0; a leading `r` marks a
    re-run after a self-update and skips the update check.

    Examples:

      # Run everything
      course-setup

      # Only re-sync skeleton files and shell configuration
      course-setup sc

      # Run everything but don't fail the calling script on minor errors
      course-setup d
    """
    modes, flags = split_tokens(tokens)
    try:
        selection = StepSelection.parse(flags)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="FLAGS")

    setup_logging(debug=debug, log_file=log_file, console=console)

    try:
        config = Config(config_file)
    except ValueError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Config error: {error}")
        raise click.Abort()

    self_update = config.section("self_update")
    if REEXEC_TOKEN not in modes and not no_update and self_update.get("enabled", True):
        script_name = self_update.get("script_name", BUNDLE_NAME)
        updater = SelfUpdater(
            config.url_for(script_name),
            Path(sys.argv[0]).resolve(),
            script_name,
            timeout=float(config.section("http").get("timeout", 30.0)),
            console=console,
        )
        status = updater.run(sys.argv[1:])
        if status is not None:
            sys.exit(status)

    host = detect_host(config)
    console.print(f"[bold]Setting up {host.host_type.value} host {host.hostname} for {host.user}")

    runner = SetupRunner(config, host, console=console)
    report = runner.run(selection)
    report.render(console)

    if report.aborted:
        sys.exit(1)
    if not report.success:
        sys.exit(0 if NO_FAIL_TOKEN in modes else config.get("failure_exit_code", 1))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "output", type=click.Path(dir_okay=False, path_type=Path), default=BUNDLE_NAME, required=False
)
def bundle(output: Path) -> None:
    """Build the single-file setup script that course staff publish.

    The result is a zipapp of this package. Students run it with python3;
    it replaces itself when a newer copy is published at base_url.
    """
    path = build_bundle(output)
    console.print(f"[green]Wrote {path}")


def main() -> None:
    """Entry point for the course-setup CLI."""
    cli()


def bundle_main() -> None:
    """Entry point for course-setup-bundle."""
    bundle()


if __name__ == "__main__":
    main()
