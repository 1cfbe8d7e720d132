"""Rich terminal renderer for pipeline reports.

Color scheme
------------
- green : PASSED
- red   : FAILED
- yellow: RUNNING
- dim   : NOT_STARTED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bundleforge.models.reports import Offense, PipelineReport
from bundleforge.models.stages import StageState
from bundleforge.models.toolkit import ToolkitRoot, TrustTier

_STATE_STYLES: dict[StageState, str] = {
    StageState.PASSED: "bold green",
    StageState.FAILED: "bold red",
    StageState.RUNNING: "bold yellow",
    StageState.NOT_STARTED: "dim",
}

_STATE_LABELS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
}


class ReportRenderer:
    """Renders ``PipelineReport`` and scan results as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_report(self, report: PipelineReport) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Stage", min_width=28)
        table.add_column("State", min_width=12, justify="center")
        table.add_column("Output", style="dim", width=14)

        for i, stage in enumerate(report.stages):
            style = _STATE_STYLES.get(stage.state, "")
            table.add_row(
                str(i),
                f"[{style}]{stage.display_name}[/{style}]",
                _STATE_LABELS.get(stage.state, stage.state.value),
                stage.output_hash[:12] or "-",
            )

        parts: list[object] = [table]
        if report.warnings:
            parts.append(Text(""))
            for w in report.warnings:
                parts.append(Text.from_markup(f"[yellow]WARNING[/yellow] ({w.kind.value}) ") + Text(w.message))
        if report.archive_path is not None:
            parts.append(Text(""))
            parts.append(Text.from_markup("[bold]Artifact:[/bold] ") + Text(str(report.archive_path)))

        if report.succeeded:
            title, border = "[bold green]Bundle ready[/bold green]", "green"
        else:
            title, border = "[bold red]Pipeline aborted[/bold red]", "red"
        return Panel(
            Group(*parts),
            title=title,
            subtitle=f"run {report.run_id}",
            border_style=border,
            padding=(1, 2),
        )

    def print_report(self, report: PipelineReport) -> None:
        self.console.print(self.render_report(report))

    def print_offenses(self, offenses: list[Offense], scanned: int) -> None:
        if not offenses:
            self.console.print(
                f"[green]No absolute distrusted references in {scanned} binaries.[/green]"
            )
            return
        table = Table(title="Unresolved absolute dependencies", header_style="bold red")
        table.add_column("Binary")
        table.add_column("Reference", style="red")
        for o in offenses:
            table.add_row(escape(str(o.binary)), escape(o.reference))
        self.console.print(table)

    def print_toolkit(self, root: ToolkitRoot) -> None:
        trust_style = "green" if root.trust != TrustTier.OPT_IN_REQUIRED else "yellow"
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold]Path:[/bold]   {escape(str(root.path))}",
                    f"[bold]Origin:[/bold] {root.origin.value}",
                    f"[bold]Layout:[/bold] {root.layout.value}",
                    f"[bold]Trust:[/bold]  [{trust_style}]{root.trust.value}[/{trust_style}]",
                ]),
                title="[bold]Qt toolkit[/bold]",
                border_style="blue",
            )
        )
