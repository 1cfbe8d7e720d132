"""``bundleforge scan BUNDLE`` — static portability check of an existing bundle."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.tools import OtoolInspector
from bundleforge.core.verifier import scan_bundle
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.monitor.renderer import ReportRenderer

console = Console()

_DEFAULT_PREFIX: str = BuildConfig.model_fields["distrusted_prefix"].default


def scan_cmd(
    bundle: Path = typer.Argument(..., help="Path to the .app bundle."),
    prefix: Optional[list[str]] = typer.Option(
        None,
        "--prefix",
        "-p",
        help=f"Distrusted path prefix (repeatable). Default: {_DEFAULT_PREFIX}.",
    ),
    timeout: float = typer.Option(60.0, help="Per-binary inspection timeout in seconds."),
) -> None:
    """List binaries that still reference a distrusted absolute path."""
    artifact = BundleArtifact(root=bundle)
    if not artifact.exists():
        console.print(f"[bold red]Bundle not found:[/bold red] {escape(str(bundle))}")
        raise typer.Exit(code=1)

    classifier = LayoutClassifier(prefix or [_DEFAULT_PREFIX])
    offenses, scanned = scan_bundle(artifact, OtoolInspector(timeout), classifier)
    ReportRenderer(console=console).print_offenses(offenses, scanned)
    if offenses:
        raise typer.Exit(code=1)
