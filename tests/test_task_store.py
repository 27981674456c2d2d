# tests/test_task_store.py

from __future__ import annotations

from dataclasses import replace
import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from aura_tasks.core.errors import StorageError
from aura_tasks.tasks.task_models import Task
from aura_tasks.tasks.task_store import TaskStore

CREATED = datetime(2025, 1, 9, 20, 0, 0, 123456)


def _task(title: str, when: str, description: str = "") -> Task:
    return Task(title=title, time=datetime.fromisoformat(when), description=description, created=CREATED)


@pytest.mark.asyncio
async def test_insert_then_list_round_trip(store: TaskStore) -> None:
    task = _task("Vet visit", "2025-01-10T11:00:00", "take the cat")
    task_id = await store.insert(task)
    assert task_id > 0

    listed = await store.list_sorted()
    assert len(listed) == 1
    assert listed[0].id == task_id
    assert replace(listed[0], id=None) == task


@pytest.mark.asyncio
async def test_ids_are_unique(store: TaskStore) -> None:
    ids = [await store.insert(_task(f"t{i}", "2025-01-10T09:00:00")) for i in range(5)]
    assert len(set(ids)) == 5


@pytest.mark.asyncio
async def test_list_sorted_by_time_then_insertion(store: TaskStore) -> None:
    late = await store.insert(_task("late", "2025-01-10T18:00:00"))
    tie_a = await store.insert(_task("tie a", "2025-01-10T10:00:00"))
    early = await store.insert(_task("early", "2025-01-10T07:00:00"))
    tie_b = await store.insert(_task("tie b", "2025-01-10T10:00:00"))

    assert [t.id for t in await store.list_sorted()] == [early, tie_a, tie_b, late]


@pytest.mark.asyncio
async def test_update_overwrites_but_keeps_created(store: TaskStore) -> None:
    task_id = await store.insert(_task("Old", "2025-01-10T09:00:00"))
    stored = await store.get(task_id)
    assert stored is not None

    await store.update(replace(stored, title="New", time=datetime(2025, 1, 11, 9, 0), description="d"))

    got = await store.get(task_id)
    assert got is not None
    assert (got.title, got.time, got.description) == ("New", datetime(2025, 1, 11, 9, 0), "d")
    assert got.created == CREATED


@pytest.mark.asyncio
async def test_update_unknown_id_is_rejected(store: TaskStore) -> None:
    with pytest.raises(StorageError):
        await store.update(replace(_task("Ghost", "2025-01-10T09:00:00"), id=999))
    assert await store.list_sorted() == []


@pytest.mark.asyncio
async def test_update_without_id_is_rejected(store: TaskStore) -> None:
    with pytest.raises(StorageError):
        await store.update(_task("No id", "2025-01-10T09:00:00"))


@pytest.mark.asyncio
async def test_insert_with_id_is_rejected(store: TaskStore) -> None:
    with pytest.raises(StorageError):
        await store.insert(replace(_task("Has id", "2025-01-10T09:00:00"), id=3))


@pytest.mark.asyncio
async def test_delete_is_idempotent(store: TaskStore) -> None:
    task_id = await store.insert(_task("Bye", "2025-01-10T09:00:00"))
    await store.delete(task_id)
    await store.delete(task_id)
    await store.delete(12345)
    assert await store.get(task_id) is None
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_data_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "tasks.sqlite3"
    first = TaskStore(db)
    task_id = await first.insert(_task("Durable", "2025-01-10T09:00:00"))

    second = TaskStore(db)
    listed = await second.list_sorted()
    assert [t.id for t in listed] == [task_id]
    assert listed[0].title == "Durable"


def test_unavailable_medium_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", "utf-8")
    with pytest.raises(StorageError):
        TaskStore(blocker / "tasks.sqlite3")


@pytest.mark.asyncio
async def test_malformed_stored_time_raises_storage_error(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = TaskStore(db)
    task_id = await store.insert(_task("Corrupt", "2025-01-10T09:00:00"))

    conn = sqlite3.connect(str(db))
    try:
        conn.execute("UPDATE tasks SET time = 'half past nine' WHERE id = ?", (task_id,))
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(StorageError, match="Malformed task record"):
        await store.list_sorted()
    with pytest.raises(StorageError):
        await store.get(task_id)
