# delta_deploy/cli/utils/output.py
"""Output formatting utilities"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ...models import Manifest, PipelineResult

console = Console()


def format_pipeline_result(result: PipelineResult) -> None:
    """Format and display a pipeline run result"""
    if result.success:
        if result.noop_reason:
            headline = f"[green]✓[/green] Nothing to deploy ({result.noop_reason})"
        elif result.dry_run:
            headline = "[green]✓[/green] Dry run completed successfully!"
        else:
            headline = "[green]✓[/green] Deployment completed successfully!"
        lines = [headline, ""]
    else:
        stage = result.failed_stage.value if result.failed_stage else "unknown"
        lines = [
            f"[red]✗ Deployment failed at {stage}:[/red] {escape(str(result.error))}",
            "",
        ]

    lines.append(f"[bold]State:[/bold] {result.state.name}")

    if result.package_manifest is not None:
        lines.append(f"[bold]Package members:[/bold] {result.package_manifest.member_count}")
    if result.destructive_manifest is not None:
        lines.append(f"[bold]Destructive members:[/bold] {result.destructive_manifest.member_count}")
    if result.test_units:
        names = ", ".join(t.unit_name for t in result.test_units)
        lines.append(f"[bold]Test classes:[/bold] {names}")
    if result.attempts:
        failed = sum(1 for a in result.attempts if not a.succeeded)
        lines.append(f"[bold]Remote attempts:[/bold] {len(result.attempts)} ({failed} failed)")
    if result.duration is not None:
        lines.append(f"[dim]Duration: {result.duration:.2f}s[/dim]")

    panel = Panel(
        "\n".join(lines),
        title="Delta Deploy Result" if result.success else "Delta Deploy Error",
        border_style="green" if result.success else "red"
    )
    console.print(panel)

    for title, manifest in (("Package", result.package_manifest),
                            ("Destructive Changes", result.destructive_manifest)):
        table = format_manifest(manifest, title)
        if table is not None:
            console.print(table)

    for command in result.skipped_commands:
        console.print(f"[yellow]Would have run:[/yellow] {escape(command)}", highlight=False)


def format_manifest(manifest: Optional[Manifest], title: str) -> Optional[Table]:
    """Create a table listing manifest members by type

    Returns:
        Rich Table, or None for an empty manifest
    """
    if manifest is None or manifest.is_empty:
        return None

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Type", style="cyan")
    table.add_column("Members", style="green")

    for entry in manifest:
        table.add_row(entry.metadata_type, ", ".join(entry.members))

    return table
