"""Pipeline orchestration - fetch messages from a provider, normalize, clean."""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol

from .classifier import ClassifierRules
from .cleaner import clean_emails
from .filters import FilterPredicate
from .log import get_logger
from .models import CleaningAction, CleanOptions, NormalizedMessage

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class MailProvider(Protocol):
    """The four verbs every mail backend provides."""

    name: str

    async def list_messages(self, query: str | None = None, max_results: int | None = None) -> list[str]: ...

    async def get_message(self, message_id: str) -> NormalizedMessage: ...

    async def delete_message(self, message_id: str) -> None: ...

    async def mark_read(self, message_id: str, read: bool = True) -> None: ...


async def fetch_messages(
    provider: MailProvider,
    query: str | None = None,
    max_results: int | None = None,
    predicate: FilterPredicate | None = None,
    callback: ProgressCallback | None = None,
) -> list[NormalizedMessage]:
    """List message IDs, fetch each one in turn and keep those matching *predicate*."""
    ids = await provider.list_messages(query=query, max_results=max_results)
    logger.info("messages_listed", provider=provider.name, count=len(ids), query=query or "")

    messages: list[NormalizedMessage] = []
    for done, message_id in enumerate(ids, start=1):
        message = await provider.get_message(message_id)
        if predicate is None or predicate(message):
            messages.append(message)
        if callback:
            callback(done, len(ids))

    return messages


def make_deleter(provider: MailProvider, dry_run: bool = True) -> Callable[[NormalizedMessage], Awaitable[None]]:
    """Return the delete collaborator used by ``clean_emails``.

    In dry-run mode nothing is deleted; the decision is only logged.
    """

    async def _delete(message: NormalizedMessage) -> None:
        if dry_run:
            logger.debug("dry_run_delete", message_id=message.id)
            return
        await provider.delete_message(message.id)

    return _delete


async def run_cleaning(
    provider: MailProvider,
    options: CleanOptions,
    query: str | None = None,
    max_results: int | None = None,
    predicate: FilterPredicate | None = None,
    dry_run: bool = True,
    rules: ClassifierRules | None = None,
    callback: ProgressCallback | None = None,
) -> list[CleaningAction]:
    """Fetch, normalize and clean a mailbox in one pass."""
    messages = await fetch_messages(
        provider, query=query, max_results=max_results, predicate=predicate, callback=callback
    )
    actions = await clean_emails(messages, options, make_deleter(provider, dry_run), rules=rules)
    logger.info("cleaning_finished", provider=provider.name, messages=len(actions), dry_run=dry_run)
    return actions


def make_cleaning_job(
    provider: MailProvider,
    options: CleanOptions,
    on_result: Callable[[list[CleaningAction]], None] | None = None,
    **kwargs,
) -> Callable[[], Awaitable[None]]:
    """Wrap ``run_cleaning`` as a zero-argument coroutine function for the Scheduler."""

    async def _job() -> None:
        actions = await run_cleaning(provider, options, **kwargs)
        if on_result:
            on_result(actions)

    return _job
