"""bundleforge CLI — Typer-based command-line interface.

Provides the ``bundleforge`` command with subcommands to build the
distributable, inspect the resolved Qt kit, and scan an existing bundle.

All output uses Rich for formatted terminal display.
"""
