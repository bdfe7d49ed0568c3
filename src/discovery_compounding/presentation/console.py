"""Rich console dashboard for the discovery orchestrator.

Renders status, cycle summaries, discoveries, threads and the activity feed
as ``rich`` tables.  Used by the CLI; no transport or UI logic lives here.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from discovery_compounding.domain.entities import Discovery, DiscoveryThread
from discovery_compounding.domain.enums import DiscoveryStatus
from discovery_compounding.domain.values import ActivityMessage, CycleSummary
from discovery_compounding.measurement.metrics import novelty_summary
from discovery_compounding.services.orchestrator import SystemStatus

_STATUS_STYLE = {
    DiscoveryStatus.VALIDATED: "green",
    DiscoveryStatus.REJECTED: "red",
    DiscoveryStatus.PENDING: "yellow",
}


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


class ConsoleDashboard:
    """Console presentation layer for orchestrator state.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout``.
    width:
        Optional fixed console width (useful for tests).
    """

    def __init__(self, file: Any = None, width: int | None = None) -> None:
        self._console = Console(file=file or sys.stdout, width=width)

    @property
    def console(self) -> Console:
        return self._console

    # -- public API --------------------------------------------------------

    def print_status(self, status: SystemStatus) -> None:
        """Print running state, counts, metrics and per-role state."""
        c = self._console
        state = "[green]running[/green]" if status.running else "[red]stopped[/red]"
        c.print(f"[bold]Orchestrator[/bold] {state}  cycle {status.cycle_count}  phase {status.phase}")

        table = Table(title="Discoveries", show_header=True)
        for key in ("total", "validated", "pending", "rejected"):
            table.add_column(key.capitalize(), justify="right")
        table.add_row(*(str(status.discovery_counts.get(k, 0)) for k in ("total", "validated", "pending", "rejected")))
        c.print(table)

        metrics = status.derived_metrics
        c.print(
            f"  rate={metrics.get('discovery_rate', 0.0):.2f}/h  "
            f"avg novelty={metrics.get('avg_novelty', 0.0):.2f}  "
            f"acceptance={metrics.get('acceptance_rate', 0.0):.0%}  "
            f"queue={status.queue.get('pending', 0)} pending"
        )

        roles = Table(title="Roles", show_header=True)
        roles.add_column("Role", style="bold")
        roles.add_column("State")
        for role, text in status.per_role_state.items():
            roles.add_row(role, text)
        c.print(roles)

    def print_cycle_summary(self, summary: CycleSummary) -> None:
        if summary.skipped:
            self._console.print(f"[dim]Cycle {summary.cycle}: no pending topics[/dim]")
            return
        self._console.print(
            f"[bold]Cycle {summary.cycle}[/bold] '{summary.topic_text}': "
            f"{summary.candidates} candidate(s), [green]{summary.accepted} accepted[/green], "
            f"[red]{summary.rejected} rejected[/red], {summary.connections} connection(s), "
            f"{summary.new_topics} new topic(s) ({summary.duration:.1f}s)"
        )
        for error in summary.errors:
            self._console.print(f"  [yellow]! {error}[/yellow]")

    def print_discoveries(self, discoveries: Sequence[Discovery]) -> None:
        if not discoveries:
            self._console.print("[dim]No discoveries yet[/dim]")
            return
        table = Table(title="Recent Discoveries", show_header=True)
        table.add_column("ID", style="cyan")
        table.add_column("Status")
        table.add_column("Novelty", justify="right")
        table.add_column("Finding")
        table.add_column("Sources", justify="right")
        for d in discoveries:
            style = _STATUS_STYLE[d.status]
            table.add_row(
                d.discovery_id,
                f"[{style}]{d.status.value}[/{style}]",
                f"{d.novelty_score:.1f}",
                _truncate(d.finding, 80),
                str(len(d.sources)),
            )
        self._console.print(table)

        scores = [d.novelty_score for d in discoveries if d.status is not DiscoveryStatus.PENDING]
        summary = novelty_summary(scores)
        if summary["count"]:
            self._console.print(
                f"  novelty mean={summary['mean']:.2f} median={summary['median']:.2f} "
                f"p90={summary['p90']:.2f}"
            )

    def print_threads(self, threads: Sequence[DiscoveryThread]) -> None:
        if not threads:
            self._console.print("[dim]No threads yet[/dim]")
            return
        table = Table(title="Threads", show_header=True)
        table.add_column("ID", style="cyan")
        table.add_column("Topic")
        table.add_column("Discoveries", justify="right")
        table.add_column("Depth", justify="right")
        for t in threads:
            table.add_row(t.thread_id, _truncate(t.topic_text, 60), str(len(t)), str(t.depth))
        self._console.print(table)

    def print_activity(self, messages: Sequence[ActivityMessage]) -> None:
        for m in messages:
            self._console.print(f"[dim]{m.kind.value:>12}[/dim] [bold]{m.role}[/bold]: {m.content}")
