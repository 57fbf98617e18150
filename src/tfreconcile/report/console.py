"""Rich console summary of a reconciliation run."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tfreconcile.engine.models import CATEGORY_ORDER, Category
from tfreconcile.report.renderer import ReportData

CATEGORY_STYLES = {
    Category.INFO: "dim",
    Category.OK: "green",
    Category.WARNING: "yellow",
    Category.ERROR: "red",
    Category.POTENTIAL_IMPORT: "cyan",
    Category.DANGEROUS: "bold red",
    Category.REGION_MISMATCH: "magenta",
}

# Categories listed row by row in the findings table
DETAIL_CATEGORIES = (
    Category.WARNING,
    Category.ERROR,
    Category.REGION_MISMATCH,
    Category.POTENTIAL_IMPORT,
    Category.DANGEROUS,
)


def print_summary(data: ReportData, console: Console) -> None:
    """Print header, counts, findings, commands and integrity status."""
    version = data.format_version if data.format_version is not None else "unknown"
    console.print(Panel(
        f"State: [cyan]{escape(data.state)}[/cyan] (version {version}, terraform {escape(data.tool_version or 'unknown')})\n"
        f"Region: [cyan]{data.region}[/cyan]  Concurrency: {data.concurrency}",
        title="Terraform State Reconciliation",
        style="bold blue",
    ))

    counts = Table(show_header=True, header_style="bold")
    counts.add_column("Category")
    counts.add_column("Count", justify="right")
    for category in CATEGORY_ORDER:
        style = CATEGORY_STYLES[category]
        counts.add_row(f"[{style}]{category.value}[/{style}]", str(len(data.results.bucket(category))))
    console.print(counts)

    findings = [
        result
        for category in DETAIL_CATEGORIES
        for result in data.results.bucket(category)
    ]
    if findings:
        table = Table(title="Findings", show_header=True, header_style="bold")
        table.add_column("Category")
        table.add_column("Address", style="cyan")
        table.add_column("Detail", overflow="fold")
        for result in findings:
            style = CATEGORY_STYLES[result.category]
            table.add_row(f"[{style}]{result.category.value}[/{style}]", escape(result.address), escape(result.message))
        console.print(table)

    if data.results.commands:
        console.print(Panel(
            escape("\n".join(data.results.commands)),
            title=f"Suggested remediation commands ({len(data.results.commands)})",
            style="yellow",
        ))

    if data.results.command_logs:
        logs = Table(title="Command execution", show_header=True, header_style="bold")
        logs.add_column("Command", overflow="fold")
        logs.add_column("Exit", justify="right")
        logs.add_column("Error", style="red", overflow="fold")
        for log in data.results.command_logs:
            logs.add_row(escape(log.command), str(log.exit_code), escape(log.error or ""))
        console.print(logs)

    changed = "[yellow]YES[/yellow]" if data.content_changed else "[green]NO[/green]"
    integrity = [f"State file content changed: {changed}"]
    if data.original.path:
        integrity.append(f"Original backup: {escape(data.original.path)}")
    if data.new.path:
        integrity.append(f"New state backup: {escape(data.new.path)}")
    if data.report.path:
        integrity.append(f"Report: {escape(data.report.path)}")
    if data.published:
        integrity.append(f"Published updated state to {escape(data.state)}")
    for warning in data.degraded:
        integrity.append(f"[yellow]Backup warning:[/yellow] {escape(warning)}")
    console.print(Panel("\n".join(integrity), title="Integrity"))

    if data.application_error:
        console.print(f"\n[red]Application error:[/red] {escape(data.application_error)}")
