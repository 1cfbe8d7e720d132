"""``bundleforge locate`` — resolve the Qt kit without building anything."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from bundleforge.cli.commands.build import load_settings, print_error
from bundleforge.core.errors import PipelineError
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.locator import ToolkitLocator, enforce_trust, validate_toolkit
from bundleforge.core.tools import Toolchain
from bundleforge.models.config import BuildConfig
from bundleforge.monitor.renderer import ReportRenderer

console = Console()


def locate_cmd(
    qt_root: Optional[Path] = typer.Option(None, "--qt-root", help="Explicit Qt kit path."),
    allow_homebrew_qt: Optional[bool] = typer.Option(
        None, "--allow-homebrew-qt/--no-allow-homebrew-qt", help="Accept Homebrew Qt."
    ),
) -> None:
    """Print the kit the build would use and whether the trust gate accepts it."""
    settings = load_settings()
    config = BuildConfig.from_settings(
        settings, qt_root=qt_root, allow_distrusted_toolkit=allow_homebrew_qt
    )
    toolchain = Toolchain.system(config)
    renderer = ReportRenderer(console=console)

    try:
        root = ToolkitLocator(
            config, LayoutClassifier.from_config(config), toolchain.package_manager
        ).resolve()
        renderer.print_toolkit(root)
        validate_toolkit(root)
        enforce_trust(root, config.allow_distrusted_toolkit)
    except PipelineError as exc:
        print_error(exc)
        raise typer.Exit(code=exc.exit_code)

    console.print("[green]Kit accepted.[/green]")
