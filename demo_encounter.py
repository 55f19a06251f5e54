"""
End-to-end walkthrough of the encounter engine on the demo ward.

This script runs:
1. The workbench worklist (alerts first, lowest score first)
2. A routine check
3. A re-check with a notable improvement
4. A failed re-check that escalates into an intervention adjustment
5. A critical reading that must be acknowledged

Run with: uv run python demo_encounter.py
"""

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory import seed_demo_ward
from adapters.simulated import OximeterProfile, SimulatedOximeterSource
from carecore.config import get_config
from carecore.domain.models import CaptureTag, EncounterSummary
from carecore.services import (
    SessionWorkflow,
    WorkflowState,
    WorklistEntry,
    order_worklist,
    tier_counts,
)

console = Console()


def show_summary(summary: EncounterSummary) -> None:
    table = Table(title=f"Encounter {summary.resident_id} ({summary.capture_tag.value})")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Score", str(summary.score_record.score))
    table.add_row("Tier", summary.tier.label)
    table.add_row("Diagnosis", summary.diagnosis)
    if summary.score_change is not None:
        table.add_row("Change since last check", f"{summary.score_change:+d}")
    if summary.improvement is not None:
        table.add_row("Against reference", f"{summary.improvement:+d}")
    if summary.notable_improvement:
        table.add_row("Notable improvement", "yes")
    if summary.confirmation_message:
        table.add_row("Adjustment", summary.confirmation_message)
    for task in summary.tasks:
        table.add_row(f"Task ({task.kind.value})", task.description)

    console.print(table)


async def run_encounter(
    workflow: SessionWorkflow,
    source: SimulatedOximeterSource,
    resident_id: str,
    tag: CaptureTag,
) -> None:
    workflow.start(resident_id, tag)

    captured = await source.capture(resident_id, tag)
    if captured.is_err():
        console.print(f"Acquisition failed: {captured.unwrap_err()}", style="red")
        workflow.cancel()
        return

    classified = workflow.submit_reading(captured.unwrap())
    if classified.is_err():
        fault = classified.unwrap_err()
        console.print(Panel(fault.message, title=fault.code, style="red"))
        workflow.acknowledge_fault("demo caregiver")
        workflow.cancel()
        console.print("Encounter discarded after acknowledgement", style="yellow")
        return

    if workflow.proceed() is WorkflowState.ESCALATING:
        assert workflow.escalation is not None
        report = workflow.escalation
        console.print(
            Panel(
                f"Score {report.reference_score} -> {report.current_score} "
                f"(-{report.drop_percentage}%), compliance {report.audit.rate:g}%",
                title="Intervention not working",
                style="yellow",
            )
        )
        options = Table(title="Recommended adjustments")
        options.add_column("#", style="cyan")
        options.add_column("Option", style="magenta")
        options.add_column("Preferred", style="green")
        for index, solution in enumerate(report.solutions, start=1):
            options.add_row(str(index), solution.title, "yes" if solution.is_preferred else "")
        console.print(options)
        workflow.confirm()

    assert workflow.summary is not None
    show_summary(workflow.summary)


async def run_demo() -> None:
    console.print(Panel("Point-of-care encounter engine - demo ward", style="bold blue"))
    policy = get_config().policy
    repository, catalog = seed_demo_ward()

    entries = [
        WorklistEntry(resident=r, score=repository.latest_score(r.resident_id) or 0)
        for r in repository.list_residents()
    ]
    worklist = Table(title="Workbench")
    worklist.add_column("Bed", style="cyan")
    worklist.add_column("Resident", style="white")
    worklist.add_column("Score", style="magenta")
    worklist.add_column("Tier", style="green")
    worklist.add_column("Alert", style="red")
    for entry in order_worklist(entries):
        worklist.add_row(
            entry.resident.bed_number,
            entry.resident.name,
            str(entry.score),
            entry.tier(policy).label,
            entry.resident.alert or "",
        )
    console.print(worklist)
    counts = tier_counts(entries, policy)
    console.print(", ".join(f"{tier.label}: {count}" for tier, count in counts.items()))

    scenarios = [
        ("r-203", CaptureTag.ROUTINE, OximeterProfile(score=72)),
        ("r-201", CaptureTag.RECHECK, OximeterProfile(score=78)),
        ("r-205", CaptureTag.RECHECK, OximeterProfile(score=65)),
        ("r-202", CaptureTag.ROUTINE, OximeterProfile(spo2=86.0, score=70)),
    ]
    for resident_id, tag, profile in scenarios:
        console.print(f"\n{'=' * 60}")
        source = SimulatedOximeterSource("bedside-oximeter", profile=profile)
        workflow = SessionWorkflow(repository, catalog, policy)
        await run_encounter(workflow, source, resident_id, tag)


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\nDemo stopped by user", style="yellow")
