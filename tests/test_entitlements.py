"""Tests for the entitlements module."""

from datetime import datetime, timezone

import pytest

from cleaninbox.entitlements import EntitlementStore, InMemoryUserStore, SqliteUserStore
from cleaninbox.errors import ValidationError


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """EntitlementStore over each available backend."""
    if request.param == "memory":
        yield EntitlementStore(InMemoryUserStore())
    else:
        backend = SqliteUserStore(tmp_path / "users.db")
        yield EntitlementStore(backend)
        backend.close()


def test_new_user_defaults(store):
    user = store.get_or_create_user("new@example.com")
    assert user.email == "new@example.com"
    assert user.premium_level == 0
    assert user.subscription_valid is False
    assert user.subscription_expiry is None
    assert user.preferences == {}


def test_same_email_same_user(store):
    first = store.get_or_create_user("a@x.com")
    second = store.get_or_create_user("a@x.com")
    assert first.id == second.id


def test_email_is_normalized(store):
    first = store.get_or_create_user("Alice@Example.com ")
    second = store.get_or_create_user("alice@example.com")
    assert first.id == second.id
    assert second.email == "alice@example.com"


def test_distinct_emails_distinct_ids(store):
    assert store.get_or_create_user("a@x.com").id != store.get_or_create_user("b@x.com").id


def test_has_access_requires_valid_subscription(store):
    user = store.get_or_create_user("a@x.com")
    store.update_subscription(user.id, level=2, valid=False)
    assert store.has_access(user.id, 1) is False

    store.update_subscription(user.id, valid=True)
    assert store.has_access(user.id, 1) is True
    assert store.has_access(user.id, 2) is True


def test_has_access_level_too_low(store):
    user = store.get_or_create_user("a@x.com")
    store.update_subscription(user.id, level=1, valid=True)
    assert store.has_access(user.id, 2) is False
    assert store.has_access(user.id, 0) is True


def test_partial_update_keeps_other_fields(store):
    user = store.get_or_create_user("a@x.com")
    expiry = datetime(2026, 1, 1, tzinfo=timezone.utc)
    store.update_subscription(user.id, level=2, valid=True, expiry=expiry)

    updated = store.update_subscription(user.id, valid=False)

    assert updated.premium_level == 2
    assert updated.subscription_valid is False
    assert updated.subscription_expiry == expiry
    assert store.get_user(user.id).premium_level == 2


def test_invalid_level_rejected(store):
    user = store.get_or_create_user("a@x.com")
    with pytest.raises(ValidationError):
        store.update_subscription(user.id, level=3)
    assert store.get_user(user.id).premium_level == 0


def test_unknown_user(store):
    assert store.get_user("nope") is None
    assert store.update_subscription("nope", level=1) is None
    assert store.has_access("nope", 0) is False
    assert store.update_preferences("nope", {"a": 1}) is None
    assert store.get_preferences("nope") is None


def test_preferences_shallow_merge(store):
    user = store.get_or_create_user("a@x.com")
    store.update_preferences(user.id, {"auto_unsubscribe": True, "except": ["boss@corp.com"]})
    store.update_preferences(user.id, {"auto_unsubscribe": False})

    assert store.get_preferences(user.id) == {
        "auto_unsubscribe": False,
        "except": ["boss@corp.com"],
    }


def test_can_use_features(store):
    user = store.get_or_create_user("a@x.com")
    store.update_subscription(user.id, level=1, valid=True)
    assert store.can_use(user.id, "clean") is True
    assert store.can_use(user.id, "auto_unsubscribe") is True
    assert store.can_use(user.id, "scheduled_clean") is False

    with pytest.raises(ValidationError):
        store.can_use(user.id, "teleport")


def test_sqlite_store_persists(tmp_path):
    db_path = tmp_path / "users.db"
    with SqliteUserStore(db_path) as backend:
        store = EntitlementStore(backend)
        user = store.get_or_create_user("keep@x.com")
        store.update_subscription(user.id, level=1, valid=True)
        store.update_preferences(user.id, {"digest": "weekly"})

    with SqliteUserStore(db_path) as backend:
        reloaded = EntitlementStore(backend).get_or_create_user("keep@x.com")

    assert reloaded.id == user.id
    assert reloaded.premium_level == 1
    assert reloaded.subscription_valid is True
    assert reloaded.preferences == {"digest": "weekly"}


def test_in_memory_store_is_per_instance():
    first = EntitlementStore()
    first.get_or_create_user("a@x.com")
    assert len(first.store) == 1
    assert len(EntitlementStore().store) == 0
