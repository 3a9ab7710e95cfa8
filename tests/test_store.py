from __future__ import annotations

from pathlib import Path

import pytest

from agent_chat.db import Database
from agent_chat.errors import StorageError
from agent_chat.models import Message, Role
from agent_chat.store import MessageStore


def test_list_ordered_empty_for_unknown_agent(store: MessageStore):
    assert store.list_ordered(42) == []


def test_append_keeps_insertion_order(store: MessageStore):
    store.append(1, "user", "first")
    store.append(1, Role.ASSISTANT, "second")
    store.append(1, "user", "third")

    assert store.list_ordered(1) == [
        Message(Role.USER, "first"),
        Message(Role.ASSISTANT, "second"),
        Message(Role.USER, "third"),
    ]


def test_histories_are_scoped_by_agent(store: MessageStore):
    store.append(1, "user", "for one")
    store.append(2, "user", "for two")

    assert [m.content for m in store.list_ordered(1)] == ["for one"]
    assert [m.content for m in store.list_ordered(2)] == ["for two"]


def test_trim_keeps_most_recent(store: MessageStore):
    for i in range(5):
        store.append(1, "user", f"m{i}")
    store.append(2, "user", "other agent")

    removed = store.trim(1, 2)

    assert removed == 3
    assert [m.content for m in store.list_ordered(1)] == ["m3", "m4"]
    assert store.count(2) == 1


def test_trim_zero_removes_everything(store: MessageStore):
    store.append(1, "user", "a")
    store.append(1, "assistant", "b")
    store.trim(1, 0)
    assert store.list_ordered(1) == []


def test_delete_all_is_idempotent(store: MessageStore):
    store.append(1, "user", "a")
    store.delete_all(1)
    store.delete_all(1)
    assert store.list_ordered(1) == []


def test_unknown_role_rejected(store: MessageStore):
    with pytest.raises(ValueError):
        store.append(1, "narrator", "nope")


def test_closed_connection_raises_storage_error(db: Database):
    store = MessageStore(db)
    db.close()
    with pytest.raises(StorageError):
        store.append(1, "user", "lost")
    with pytest.raises(StorageError):
        store.list_ordered(1)


def test_file_database_persists_across_connections(tmp_path: Path):
    path = tmp_path / "nested" / "chat.db"
    first = Database(str(path))
    MessageStore(first).append(7, "user", "remember me")
    first.close()

    second = Database(str(path))
    try:
        assert MessageStore(second).list_ordered(7) == [Message(Role.USER, "remember me")]
    finally:
        second.close()
