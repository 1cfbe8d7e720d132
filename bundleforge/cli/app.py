"""Main Typer application — imports and registers all CLI commands.

Entry point: ``bundleforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from bundleforge.cli.commands.build import build_cmd
from bundleforge.cli.commands.locate import locate_cmd
from bundleforge.cli.commands.scan import scan_cmd

app = typer.Typer(
    name="bundleforge",
    help="Build, relocate, verify and package a portable macOS app bundle.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="build", help="Run the full pipeline and produce the disk image.")(build_cmd)
app.command(name="locate", help="Show which Qt kit would be used, and whether it is trusted.")(locate_cmd)
app.command(name="scan", help="Scan an existing bundle for absolute distrusted references.")(scan_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
