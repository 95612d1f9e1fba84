"""CLI entry point for cleaninbox."""

from __future__ import annotations

import asyncio
import os
import time
from datetime import datetime
from pathlib import Path

import click

from . import constants
from .classifier import classify
from .cleaner import clean_emails
from .config import load_rules
from .display import (
    confirm_delete,
    console,
    create_progress,
    display_classification,
    display_clean_results,
    display_clean_summary,
    display_unsubscribe,
    display_user,
)
from .entitlements import EntitlementStore, SqliteUserStore
from .errors import CleanInboxError
from .log import configure_logging
from .models import CleanOptions, JobEvent, JobEventKind
from .parser import from_mime
from .pipeline import fetch_messages, make_cleaning_job, make_deleter
from .report import export_actions, save_clean_log
from .scheduler import Scheduler
from .unsubscribe import unsubscribe_from_email


def _provider_options(func):
    options = [
        click.option(
            "--provider",
            type=click.Choice(["gmail", "outlook", "imap"]),
            default="gmail",
            show_default=True,
            help="Mailbox backend.",
        ),
        click.option("--imap-host", default=None, help="IMAP server (imap provider)."),
        click.option("--imap-user", default=None, help="IMAP username (imap provider)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _clean_options(func):
    options = [
        click.option("-q", "--query", default=None, help="Provider search query (Gmail q, Graph $filter, IMAP SEARCH)."),
        click.option("-m", "--max-messages", default=None, type=int, help="Maximum messages to fetch."),
        click.option("--max-age-days", default=None, type=float, help="Delete messages older than this."),
        click.option("--newsletters", is_flag=True, help="Delete newsletters."),
        click.option("--spam", is_flag=True, help="Delete messages flagged as spam."),
        click.option("--except", "except_senders", multiple=True, help="Protected sender (repeatable)."),
        click.option("--rules", "rules_path", default=None, type=click.Path(dir_okay=False), help="Keyword rules JSON file."),
        click.option("--execute", is_flag=True, help="Actually delete messages (default is dry-run)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_provider(provider: str, imap_host: str | None, imap_user: str | None):
    if provider == "gmail":
        from .auth import get_gmail_service
        from .gmail_client import GmailProvider

        try:
            return GmailProvider(get_gmail_service())
        except FileNotFoundError as e:
            raise click.ClickException(str(e)) from e

    if provider == "outlook":
        from .outlook_client import OutlookProvider

        token = os.environ.get(constants.ENV_OUTLOOK_TOKEN)
        if not token:
            raise click.ClickException(f"Set {constants.ENV_OUTLOOK_TOKEN} to a Graph access token.")
        return OutlookProvider(token)

    from .imap_client import ImapProvider

    password = os.environ.get(constants.ENV_IMAP_PASSWORD)
    if not imap_host or not imap_user or not password:
        raise click.ClickException(
            f"IMAP needs --imap-host, --imap-user and {constants.ENV_IMAP_PASSWORD}."
        )
    return ImapProvider(imap_host, imap_user, password)


def _user_store() -> EntitlementStore:
    return EntitlementStore(SqliteUserStore(db_path=constants.USERS_DB_PATH))


def _require_feature(user_email: str | None, feature: str) -> None:
    if not user_email:
        return
    entitlements = _user_store()
    try:
        user = entitlements.get_or_create_user(user_email)
        if not entitlements.can_use(user.id, feature):
            raise click.ClickException(f"{user_email} does not have access to {feature!r}.")
    finally:
        entitlements.store.close()


@click.group()
@click.version_option(version="0.1.0", prog_name="cleaninbox")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log verbosity.",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
def cli(log_level: str, json_logs: bool) -> None:
    """cleaninbox - clean newsletters, spam and old mail from your inbox."""
    configure_logging(log_level, json_output=json_logs)


@cli.command()
@_provider_options
@_clean_options
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation with --execute.")
@click.option("--show-kept", is_flag=True, help="Also list messages that are kept.")
@click.option("--report", default=None, type=click.Path(dir_okay=False), help="Export the action log to this file.")
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), default="csv", help="Report format.")
def clean(
    provider: str,
    imap_host: str | None,
    imap_user: str | None,
    query: str | None,
    max_messages: int | None,
    max_age_days: float | None,
    newsletters: bool,
    spam: bool,
    except_senders: tuple[str, ...],
    rules_path: str | None,
    execute: bool,
    yes: bool,
    show_kept: bool,
    report: str | None,
    fmt: str,
) -> None:
    """Delete old mail, newsletters and spam from a mailbox."""
    try:
        rules = load_rules(rules_path)
    except CleanInboxError as e:
        raise click.ClickException(str(e)) from e

    options = CleanOptions(
        delete_newsletters=newsletters,
        delete_spam=spam,
        max_age_days=max_age_days,
        except_senders=frozenset(except_senders),
    )
    mailbox = _build_provider(provider, imap_host, imap_user)
    now = datetime.now().astimezone()

    async def _run():
        with create_progress("Fetching messages") as progress:
            task = progress.add_task("fetching", total=None)

            def on_message(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            messages = await fetch_messages(mailbox, query=query, max_results=max_messages, callback=on_message)

        planned = await clean_emails(messages, options, make_deleter(mailbox, dry_run=True), now=now, rules=rules)
        display_clean_results(planned, messages, show_kept=show_kept)

        if not execute:
            return planned, True

        to_delete = sum(1 for a in planned if a.action.is_delete)
        if to_delete == 0:
            return planned, True
        if not yes and not confirm_delete(to_delete):
            console.print("[dim]Cancelled.[/dim]")
            return planned, True

        done = await clean_emails(messages, options, make_deleter(mailbox, dry_run=False), now=now, rules=rules)
        return done, False

    try:
        actions, dry_run = asyncio.run(_run())
    except CleanInboxError as e:
        raise click.ClickException(str(e)) from e

    display_clean_summary(actions, dry_run=dry_run)
    save_clean_log(actions, provider=provider, dry_run=dry_run, path=constants.CLEAN_LOG_PATH)
    if report:
        export_actions(actions, format=fmt, output_path=report)
        console.print(f"Results saved to {report}")


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--auto", "auto_unsubscribe", is_flag=True, help="Request every unsubscribe link found.")
@click.option("--user", "user_email", default=None, help="Check this user's entitlement first.")
def unsubscribe(html_file: str, auto_unsubscribe: bool, user_email: str | None) -> None:
    """Find unsubscribe links in an HTML email body and optionally follow them."""
    if auto_unsubscribe:
        _require_feature(user_email, "auto_unsubscribe")

    html = Path(html_file).read_text(encoding="utf-8", errors="replace")
    outcome = asyncio.run(unsubscribe_from_email(html, auto_unsubscribe=auto_unsubscribe))
    display_unsubscribe(outcome)


@cli.command(name="classify")
@click.argument("eml_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--rules", "rules_path", default=None, type=click.Path(dir_okay=False), help="Keyword rules JSON file.")
def classify_cmd(eml_file: str, rules_path: str | None) -> None:
    """Classify a saved .eml message."""
    try:
        rules = load_rules(rules_path)
    except CleanInboxError as e:
        raise click.ClickException(str(e)) from e

    message = from_mime(Path(eml_file).name, Path(eml_file).read_bytes())
    display_classification(message, classify(message, rules))


@cli.command()
@_provider_options
@_clean_options
@click.option("--every", "every_minutes", default=60.0, type=float, show_default=True, help="Minutes between runs.")
@click.option("--user", "user_email", default=None, help="Check this user's entitlement first.")
def schedule(
    provider: str,
    imap_host: str | None,
    imap_user: str | None,
    query: str | None,
    max_messages: int | None,
    max_age_days: float | None,
    newsletters: bool,
    spam: bool,
    except_senders: tuple[str, ...],
    rules_path: str | None,
    execute: bool,
    every_minutes: float,
    user_email: str | None,
) -> None:
    """Run the clean command periodically until interrupted."""
    _require_feature(user_email, "scheduled_clean")
    try:
        rules = load_rules(rules_path)
    except CleanInboxError as e:
        raise click.ClickException(str(e)) from e

    options = CleanOptions(
        delete_newsletters=newsletters,
        delete_spam=spam,
        max_age_days=max_age_days,
        except_senders=frozenset(except_senders),
    )
    mailbox = _build_provider(provider, imap_host, imap_user)

    def on_result(actions) -> None:
        display_clean_summary(actions, dry_run=not execute)
        save_clean_log(actions, provider=provider, dry_run=not execute, path=constants.CLEAN_LOG_PATH)

    def on_event(event: JobEvent) -> None:
        if event.kind is JobEventKind.FAILED:
            console.print(f"[red]Run of {event.job_id} failed: {event.exception}[/red]")

    job = make_cleaning_job(
        mailbox,
        options,
        on_result=on_result,
        query=query,
        max_results=max_messages,
        dry_run=not execute,
        rules=rules,
    )

    with Scheduler() as scheduler:
        scheduler.add_listener(on_event)
        scheduler.add_job(f"clean-{provider}", job, int(every_minutes * 60 * 1000))
        console.print(f"[bold]Cleaning every {every_minutes:g} minutes. Press Ctrl+C to stop.[/bold]")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("[dim]Stopping.[/dim]")


@cli.command()
def auth() -> None:
    """Test Gmail authentication."""
    from .auth import check_auth

    try:
        address = check_auth()
    except (FileNotFoundError, CleanInboxError) as e:
        raise click.ClickException(str(e)) from e
    console.print(f"Authenticated as {address}")


@cli.group(name="users")
def users_group() -> None:
    """Manage premium entitlements."""


@users_group.command(name="show")
@click.argument("email")
def users_show(email: str) -> None:
    """Show (creating if needed) the user registered under EMAIL."""
    entitlements = _user_store()
    try:
        display_user(entitlements.get_or_create_user(email))
    finally:
        entitlements.store.close()


@users_group.command(name="set")
@click.argument("email")
@click.option("--level", type=click.IntRange(0, 2), default=None, help="Premium level (0-2).")
@click.option("--valid/--invalid", default=None, help="Subscription validity.")
@click.option("--expires", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Expiry date.")
def users_set(email: str, level: int | None, valid: bool | None, expires: datetime | None) -> None:
    """Update the subscription of the user registered under EMAIL."""
    entitlements = _user_store()
    try:
        user = entitlements.get_or_create_user(email)
        user = entitlements.update_subscription(user.id, level=level, valid=valid, expiry=expires)
        display_user(user)
    finally:
        entitlements.store.close()
