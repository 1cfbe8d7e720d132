"""``bundleforge build`` — run the whole relocation pipeline.

Flags override the matching environment variables (``QT_ROOT``,
``WITH_TRANSLATIONS``, ``BUILD_SERVER``, ``ALLOW_HOMEBREW_QT``,
``RUN_SELF_CHECKS``).  Exit status is 0 on success and the failing
error's exit code otherwise; warnings never change it.
"""

from __future__ import annotations

import signal
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from bundleforge.config import ForgeSettings
from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.errors import PipelineError
from bundleforge.core.orchestrator import Orchestrator
from bundleforge.core.tools import Toolchain
from bundleforge.logging_setup import configure_logging
from bundleforge.models.config import BuildConfig
from bundleforge.monitor.renderer import ReportRenderer

console = Console()


def print_error(exc: PipelineError) -> None:
    console.print(f"[bold red]ERROR:[/bold red] {escape(str(exc))}", highlight=False)
    if exc.remediation:
        console.print(f"[dim]{escape(exc.remediation)}[/dim]")


def load_settings() -> ForgeSettings:
    """Read the environment, exiting 1 with one line per invalid variable."""
    try:
        return ForgeSettings()
    except ValidationError as exc:
        for error in exc.errors():
            name = ".".join(str(part) for part in error["loc"]).upper()
            console.print(
                f"[bold red]ERROR:[/bold red] invalid value for {escape(name)}: "
                f"{escape(error['msg'])}",
                highlight=False,
            )
        raise typer.Exit(code=1)


def build_cmd(
    qt_root: Optional[Path] = typer.Option(
        None, "--qt-root", help="Path to a Qt kit, e.g. ~/Qt/6.10.0/macos."
    ),
    with_translations: Optional[bool] = typer.Option(
        None,
        "--with-translations/--without-translations",
        help="Build translations (requires gettext msgfmt).",
    ),
    with_server: Optional[bool] = typer.Option(
        None, "--with-server/--without-server", help="Also build the classroom server."
    ),
    allow_homebrew_qt: Optional[bool] = typer.Option(
        None,
        "--allow-homebrew-qt/--no-allow-homebrew-qt",
        help="Allow Homebrew Qt (known to be unstable with macdeployqt).",
    ),
    self_checks: Optional[bool] = typer.Option(
        None,
        "--self-checks/--no-self-checks",
        help="Run post-build reference scan and smoke test.",
    ),
    source_root: Optional[Path] = typer.Option(
        None, "--source-root", help="Project source root (default: current directory)."
    ),
) -> None:
    """Build the app, fix its dependency closure, verify and package it."""
    settings = load_settings()
    configure_logging(settings.log_level)

    config = BuildConfig.from_settings(
        settings,
        qt_root=qt_root,
        with_translations=with_translations,
        build_server=with_server,
        allow_distrusted_toolkit=allow_homebrew_qt,
        run_self_checks=self_checks,
        source_root=source_root,
    )

    token = CancellationToken()
    orchestrator = Orchestrator(config, Toolchain.system(config), token=token)
    renderer = ReportRenderer(console=console)

    previous = signal.signal(signal.SIGINT, lambda *_: token.cancel("interrupted"))
    try:
        report = orchestrator.run()
    except PipelineError as exc:
        renderer.print_report(orchestrator.report())
        print_error(exc)
        raise typer.Exit(code=exc.exit_code)
    finally:
        signal.signal(signal.SIGINT, previous)

    renderer.print_report(report)
