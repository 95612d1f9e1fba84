"""Rich-based display functions for cleaninbox."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Prompt
from rich.table import Table

from .cleaner import summarize
from .constants import SUBJECT_DISPLAY_LIMIT
from .dates import format_date_short
from .models import (
    Action,
    ClassificationResult,
    CleaningAction,
    NormalizedMessage,
    UnsubscribeOutcome,
    UserEntitlement,
)

console = Console()

_ACTION_COLORS = {
    Action.SKIPPED_PROTECTED: "cyan",
    Action.DELETED_TOO_OLD: "red",
    Action.DELETED_NEWSLETTER: "red",
    Action.DELETED_SPAM: "red",
    Action.KEPT: "green",
    Action.ERROR: "yellow",
}


def _truncate(text: str, limit: int = SUBJECT_DISPLAY_LIMIT) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def create_progress(description: str) -> Progress:
    """Create a configured Rich Progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold blue]{description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def display_clean_results(
    actions: list[CleaningAction],
    messages: list[NormalizedMessage],
    show_kept: bool = False,
) -> None:
    """Display one row per message with the action taken (or planned)."""
    by_id = {m.id: m for m in messages}

    table = Table(title="Cleaning Results")
    table.add_column("#", justify="right", style="dim")
    table.add_column("From")
    table.add_column("Subject")
    table.add_column("Date")
    table.add_column("Action")

    for idx, action in enumerate(actions, start=1):
        if action.action is Action.KEPT and not show_kept:
            continue
        message = by_id.get(action.message_id)
        color = _ACTION_COLORS[action.action]
        label = action.action.value
        if action.error:
            label = f"{label}: {action.error}"
        table.add_row(
            str(idx),
            message.sender if message else "",
            _truncate(message.subject) if message else "",
            format_date_short(message.date) if message else "",
            f"[{color}]{label}[/{color}]",
        )

    console.print(table)


def display_clean_summary(actions: list[CleaningAction], dry_run: bool) -> None:
    counts = summarize(actions)
    deleted = sum(n for kind, n in counts.items() if kind.is_delete)
    lines = [f"{kind.value}: {counts[kind]}" for kind in Action if counts[kind]]
    verb = "Would delete" if dry_run else "Deleted"
    lines.append("")
    lines.append(f"[bold]{verb} {deleted} of {len(actions)} messages.[/bold]")
    if dry_run:
        lines.append("[yellow][DRY RUN] Use --execute to actually delete messages.[/yellow]")
    console.print(Panel("\n".join(lines), title="Summary"))


def confirm_delete(count: int) -> bool:
    """Prompt the user to confirm deleting *count* messages."""
    console.print(Panel(f"[bold]{count} messages will be deleted.[/bold]", title="Confirm Delete"))
    answer = Prompt.ask('[bold red]Type "DELETE" to confirm[/bold red]', console=console)
    return answer == "DELETE"


def display_unsubscribe(outcome: UnsubscribeOutcome) -> None:
    if not outcome.links:
        console.print("[yellow]No unsubscribe links found.[/yellow]")
        return

    table = Table(title="Unsubscribe Links")
    table.add_column("#", justify="right", style="dim")
    table.add_column("URL")
    table.add_column("Result")

    results = {r.url: r for r in outcome.results or []}
    for idx, url in enumerate(outcome.links, start=1):
        result = results.get(url)
        if result is None:
            status = "[dim]not attempted[/dim]"
        elif result.ok:
            status = f"[green]{result.status}[/green]"
        elif result.status is not None:
            status = f"[red]{result.status}[/red]"
        else:
            status = f"[red]{result.error}[/red]"
        table.add_row(str(idx), url, status)

    console.print(table)


def display_classification(message: NormalizedMessage, result: ClassificationResult) -> None:
    lines = [
        f"[bold]From:[/bold] {message.sender_name} <{message.sender}>",
        f"[bold]Subject:[/bold] {message.subject}",
        f"[bold]Date:[/bold] {format_date_short(message.date)}",
        f"[bold]Newsletter:[/bold] {'yes' if result.is_newsletter else 'no'}",
        f"[bold]Spam:[/bold] {'yes' if result.is_spam else 'no'}",
    ]
    if result.unsubscribe_links:
        lines.append("")
        lines.append("[bold]Unsubscribe links:[/bold]")
        for link in result.unsubscribe_links:
            lines.append(f"  - {link}")
    console.print(Panel("\n".join(lines), title="Classification"))


def display_user(user: UserEntitlement) -> None:
    expiry = format_date_short(user.subscription_expiry) if user.subscription_expiry else "-"
    lines = [
        f"[bold]Id:[/bold] {user.id}",
        f"[bold]Email:[/bold] {user.email}",
        f"[bold]Premium level:[/bold] {user.premium_level}",
        f"[bold]Subscription valid:[/bold] {'yes' if user.subscription_valid else 'no'}",
        f"[bold]Expires:[/bold] {expiry}",
    ]
    console.print(Panel("\n".join(lines), title="User"))
