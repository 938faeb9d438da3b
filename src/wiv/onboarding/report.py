"""Rich rendering of provisioning summaries."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from wiv.onboarding.types import ApiOutcome, ProjectReport, ProjectState, ProvisioningSummary

console = Console()

_STATE_STYLE = {
    ProjectState.DONE: "[green]done[/green]",
    ProjectState.PARTIALLY_FAILED: "[red]partially failed[/red]",
}


def _apis_cell(report: ProjectReport) -> str:
    if not report.api_results:
        return "-"
    active = sum(1 for r in report.api_results if r.outcome.active)
    skipped = sum(1 for r in report.api_results if r.outcome is ApiOutcome.SKIPPED_BILLING_REQUIRED)
    cell = f"{active}/{len(report.api_results)}"
    if skipped:
        cell += f" [yellow]({skipped} skipped)[/yellow]"
    return cell


def _quota_cell(report: ProjectReport) -> str:
    if report.quota is None:
        return "-"
    if report.quota.success:
        return f"[green]{report.quota.winning_strategy.value}[/green]"
    if report.quota.skipped_reason:
        return "[yellow]skipped[/yellow]"
    return f"[yellow]not set ({len(report.quota.attempts)} attempts)[/yellow]"


def summary_table(summary: ProvisioningSummary) -> Table:
    table = Table(title="Projects")
    table.add_column("Project", style="cyan")
    table.add_column("State")
    table.add_column("APIs")
    table.add_column("Quota")
    table.add_column("Roles")
    table.add_column("Error", overflow="fold")

    for report in summary.reports:
        table.add_row(
            report.project_id,
            _STATE_STYLE.get(report.state, report.state.value),
            _apis_cell(report),
            _quota_cell(report),
            str(len(report.bound_roles)) if report.bound_roles else "-",
            report.error or "",
        )
    return table


def print_summary(summary: ProvisioningSummary, *, out: Optional[Console] = None) -> None:
    """Print the per-project table and the aggregate counts."""
    out = out or console
    out.print()
    out.print(summary_table(summary))

    style = "green" if summary.failed == 0 and not summary.cancelled else "yellow"
    lines = [
        f"Total projects: {summary.total_projects}",
        f"Successful: {summary.succeeded}",
        f"Failed: {summary.failed}",
    ]
    if summary.cancelled:
        lines.append(f"Not processed (cancelled): {summary.total_projects - summary.processed}")
    out.print(Panel.fit("\n".join(lines), title="Summary", border_style=style))

    if summary.failed_project_ids:
        out.print("[bold red]Failed projects:[/bold red]")
        for project_id in summary.failed_project_ids:
            out.print(f"  - {project_id}")
        out.print(
            "[dim]Note: Some projects may have failed due to insufficient permissions, "
            "missing billing, or project status.[/dim]"
        )


__all__ = ["print_summary", "summary_table"]
