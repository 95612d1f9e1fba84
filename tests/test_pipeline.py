"""Tests for the pipeline module."""

import pytest

from cleaninbox.filters import from_sender
from cleaninbox.models import Action, CleanOptions
from cleaninbox.pipeline import fetch_messages, make_cleaning_job, make_deleter, run_cleaning
from conftest import make_message


class FakeProvider:
    """In-memory MailProvider."""

    name = "fake"

    def __init__(self, messages, fail_delete=()):
        self.messages = {m.id: m for m in messages}
        self.fail_delete = set(fail_delete)
        self.deleted = []
        self.queries = []

    async def list_messages(self, query=None, max_results=None):
        self.queries.append(query)
        ids = list(self.messages)
        return ids[:max_results] if max_results else ids

    async def get_message(self, message_id):
        return self.messages[message_id]

    async def delete_message(self, message_id):
        if message_id in self.fail_delete:
            raise RuntimeError("server said no")
        self.deleted.append(message_id)

    async def mark_read(self, message_id, read=True):
        self.messages[message_id].is_read = read


@pytest.fixture
def provider(newsletter_message, personal_message, old_message):
    return FakeProvider([newsletter_message, personal_message, old_message])


@pytest.mark.asyncio
async def test_fetch_messages_with_predicate_and_progress(provider):
    progress = []
    messages = await fetch_messages(
        provider,
        query="in:inbox",
        predicate=from_sender("corp.com"),
        callback=lambda done, total: progress.append((done, total)),
    )
    assert [m.id for m in messages] == ["msg_old_001"]
    assert progress == [(1, 3), (2, 3), (3, 3)]
    assert provider.queries == ["in:inbox"]


@pytest.mark.asyncio
async def test_fetch_messages_max_results(provider):
    messages = await fetch_messages(provider, max_results=2)
    assert len(messages) == 2


@pytest.mark.asyncio
async def test_dry_run_deleter_never_calls_provider(provider, newsletter_message):
    await make_deleter(provider)(newsletter_message)
    assert provider.deleted == []

    await make_deleter(provider, dry_run=False)(newsletter_message)
    assert provider.deleted == ["msg_nl_001"]


@pytest.mark.asyncio
async def test_run_cleaning_dry_run(provider):
    options = CleanOptions(delete_newsletters=True, except_senders={"bob@corp.com"})
    actions = await run_cleaning(provider, options)
    assert [a.action for a in actions] == [
        Action.DELETED_NEWSLETTER,
        Action.KEPT,
        Action.SKIPPED_PROTECTED,
    ]
    assert provider.deleted == []


@pytest.mark.asyncio
async def test_run_cleaning_executes_and_records_failures(newsletter_message, spam_message):
    provider = FakeProvider([newsletter_message, spam_message], fail_delete={"msg_sp_001"})
    options = CleanOptions(delete_newsletters=True, delete_spam=True)

    actions = await run_cleaning(provider, options, dry_run=False)

    assert provider.deleted == ["msg_nl_001"]
    assert actions[1].action == Action.ERROR
    assert actions[1].error == "server said no"


@pytest.mark.asyncio
async def test_cleaning_job_reports_results():
    provider = FakeProvider([make_message("a", subject="Monthly newsletter")])
    results = []
    job = make_cleaning_job(
        provider, CleanOptions(delete_newsletters=True), on_result=results.append, dry_run=False
    )

    await job()

    assert provider.deleted == ["a"]
    assert results[0][0].action == Action.DELETED_NEWSLETTER
