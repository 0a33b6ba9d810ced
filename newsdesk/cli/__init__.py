"""Newsdesk CLI: maintenance commands for operators.

Entry point registered in pyproject.toml:
    newsdesk = "newsdesk.cli:app"

Commands:
    newsdesk review-duplicates   interactively resolve duplicate news groups
    newsdesk recompute-trending  recompute news trending scores
    newsdesk publish-scheduled   publish articles whose schedule has passed
    newsdesk cleanup-tags        delete old unused tags
    newsdesk award-popularity    award popularity milestone points to authors
"""

import typer
from rich.console import Console

from newsdesk.cli.client import (
    run_award_popularity,
    run_cleanup_tags,
    run_publish_scheduled,
    run_recompute_trending,
)
from newsdesk.cli.review import review_duplicates

app = typer.Typer(
    name="newsdesk",
    help="Newsdesk CLI: content maintenance jobs",
    no_args_is_help=True,
)

console = Console()

app.command("review-duplicates")(review_duplicates)


@app.command("recompute-trending")
def recompute_trending() -> None:
    """Recompute trending scores of recent news."""
    result = run_recompute_trending()
    console.print(f"[green]Trending scores updated for {result['updated']} item(s).[/green]")


@app.command("publish-scheduled")
def publish_scheduled() -> None:
    """Publish articles whose scheduled time has passed."""
    result = run_publish_scheduled()
    console.print(f"[green]Published {result['published_count']} scheduled article(s).[/green]")


@app.command("cleanup-tags")
def cleanup_tags(
    older_than_days: int = typer.Option(
        None, "--older-than-days", min=0, help="Minimum tag age (default from settings)."
    ),
) -> None:
    """Delete unused tags older than the configured age."""
    result = run_cleanup_tags(older_than_days)
    console.print(f"[green]Deleted {result['deleted_count']} unused tag(s).[/green]")


@app.command("award-popularity")
def award_popularity() -> None:
    """Award points for newly reached popularity milestones."""
    result = run_award_popularity()
    console.print(
        f"[green]Checked {result['checked']} item(s): {result['awarded_count']} award(s), "
        f"{result['points_awarded']} point(s).[/green]"
    )
