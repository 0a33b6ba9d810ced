"""Interactive review of duplicate news groups.

Walks through each duplicate group found by the detector.  For each group
the operator can keep the suggested primary and delete the rest, pick a
different item to keep, or skip the group.

Usage:
    newsdesk review-duplicates [--threshold 0.85] [--days 14] [--include-processed]
"""

from __future__ import annotations

import questionary
import typer
from rich.console import Console
from rich.panel import Panel

from newsdesk.cli.client import find_groups, resolve_group
from newsdesk.similarity.duplicates import DuplicateGroup, GroupMember

console = Console()

_RISK_COLORS = {"high": "red", "medium": "yellow", "low": "green"}

KEEP_PRIMARY = "Keep primary, delete the others"
PICK_PRIMARY = "Choose which item to keep"
SKIP = "Skip (review later)"


def _member_line(member: GroupMember, label: str) -> str:
    item = member.item
    source = item.source_name or "unknown source"
    created = item.created_at.strftime("%Y-%m-%d %H:%M") if item.created_at else "?"
    line = f"[bold]{label}[/bold] {item.title}\n  [dim]{source} · {created} · {item.id}[/dim]"
    if member.reasons:
        line += (
            f"\n  [dim]{member.similarity:.0%} similar, "
            f"{member.confidence:.0%} confidence: {', '.join(member.reasons)}[/dim]"
        )
    return line


def _group_panel(group: DuplicateGroup, index: int, total: int) -> Panel:
    color = _RISK_COLORS.get(group.risk_level, "blue")
    lines = [
        f"[{color}]Risk: {group.risk_level}[/{color}] · "
        f"Recommended: {group.recommended_action} · "
        f"Avg similarity: {group.avg_similarity:.0%}",
        "",
        _member_line(group.primary, "PRIMARY"),
    ]
    lines += [_member_line(m, f"DUP {n}") for n, m in enumerate(group.duplicates, start=1)]
    return Panel("\n".join(lines), title=f"Group {index}/{total}", border_style=color)


def review_duplicates(
    threshold: float = typer.Option(
        None, "--threshold", min=0.0, max=1.0, help="Similarity threshold (default from settings)."
    ),
    days: int = typer.Option(
        None, "--days", min=1, max=365, help="Only consider news created in the last N days."
    ),
    include_processed: bool = typer.Option(
        False, "--include-processed", help="Also consider news already marked processed."
    ),
) -> None:
    """Review duplicate news groups and delete the redundant items."""
    groups, stats = find_groups(threshold, days, include_processed)

    if not groups:
        console.print(Panel(
            f"[green]No duplicates found among {stats['total_checked']} item(s).[/green]",
            title="Newsdesk",
            border_style="green",
        ))
        return

    console.print(
        f"\n[bold]{len(groups)} duplicate group(s), "
        f"{stats['total_duplicate_items']} redundant item(s)[/bold]\n"
    )

    resolved = deleted = skipped = 0

    for index, group in enumerate(groups, start=1):
        console.print(_group_panel(group, index, len(groups)))

        action = questionary.select(
            "What would you like to do?",
            choices=[KEEP_PRIMARY, PICK_PRIMARY, SKIP],
        ).ask()

        # None on Ctrl+C or EOF
        if action is None:
            console.print("\n[yellow]Review interrupted.[/yellow]")
            break

        members = [group.primary, *group.duplicates]
        if action == KEEP_PRIMARY:
            keep = group.primary
        elif action == PICK_PRIMARY:
            choice = questionary.select(
                "Keep which item?",
                choices=[questionary.Choice(m.item.title, value=m) for m in members],
            ).ask()
            if choice is None:
                console.print("[yellow]Selection cancelled, skipping.[/yellow]")
                skipped += 1
                continue
            keep = choice
        else:
            skipped += 1
            continue

        delete_ids = [m.item.id for m in members if m.item.id != keep.item.id]
        result = resolve_group(keep.item.id, delete_ids)
        resolved += 1
        deleted += result["deleted_count"]
        console.print(
            f"[green]Kept '{keep.item.title}', deleted {result['deleted_count']} item(s).[/green]\n"
        )

    console.print(Panel(
        f"[bold green]Duplicate review complete![/bold green]\n\n"
        f"Groups resolved: {resolved}\n"
        f"Items deleted:   {deleted}\n"
        f"Groups skipped:  {skipped}",
        title="Session Summary",
        border_style="green",
    ))
