"""Cleaning workflow - decide per message whether to keep or delete it."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable

from .classifier import ClassifierRules, is_newsletter
from .dates import utcnow
from .log import get_logger
from .models import Action, CleaningAction, CleanOptions, NormalizedMessage

logger = get_logger(__name__)

DeleteFn = Callable[[NormalizedMessage], Awaitable[None]]


def _decide(
    message: NormalizedMessage,
    options: CleanOptions,
    now: datetime,
    rules: ClassifierRules | None,
) -> Action:
    """Return the first matching rule for a message.

    Order: protected sender, age, newsletter, spam, kept.
    """
    if message.sender.lower() in options.except_senders:
        return Action.SKIPPED_PROTECTED

    if options.max_age_days and now - message.date > timedelta(days=options.max_age_days):
        return Action.DELETED_TOO_OLD

    if options.delete_newsletters and is_newsletter(
        message.subject, message.sender, message.html_body, rules
    ):
        return Action.DELETED_NEWSLETTER

    if options.delete_spam and message.is_spam:
        return Action.DELETED_SPAM

    return Action.KEPT


async def clean_emails(
    messages: Iterable[NormalizedMessage],
    options: CleanOptions,
    delete: DeleteFn,
    now: datetime | None = None,
    rules: ClassifierRules | None = None,
) -> list[CleaningAction]:
    """Apply the cleaning rules to every message, deleting matches.

    Returns one action per input message, in input order. A failing delete
    is recorded as an ``error`` action and the batch carries on.
    """
    now = now or utcnow()
    results: list[CleaningAction] = []

    for message in messages:
        action = _decide(message, options, now, rules)

        if action.is_delete:
            try:
                await delete(message)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "delete_failed",
                    message_id=message.id,
                    reason=action.value,
                    error=str(exc),
                )
                results.append(CleaningAction(message.id, Action.ERROR, error=str(exc)))
                continue

        logger.info("message_cleaned", message_id=message.id, action=action.value)
        results.append(CleaningAction(message.id, action))

    return results


def summarize(actions: Iterable[CleaningAction]) -> Counter:
    """Count actions by kind."""
    return Counter(a.action for a in actions)
