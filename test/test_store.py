import json

import pytest

import store as store_module
import worker
from errors import CorruptStateError, NotFoundError, PersistenceError, ValidationError
from models import Task
from storage import read_tasks
from store import TaskStore


def read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.mark.asyncio
async def test_open_missing_file_creates_empty_list(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        assert store.list() == []
        assert tasks_file.exists()
        assert read_json(tasks_file) == []
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_open_corrupt_file_is_fatal(tasks_file):
    tasks_file.write_text("not valid json", encoding="utf-8")
    with pytest.raises(CorruptStateError):
        await TaskStore.open(tasks_file)
    # The corrupt file is left alone for inspection.
    assert tasks_file.read_text(encoding="utf-8") == "not valid json"


@pytest.mark.asyncio
async def test_open_rejects_duplicate_ids(tasks_file):
    tasks_file.write_text(
        '[{"id": 1, "text": "a", "completed": false}, {"id": 1, "text": "b", "completed": false}]',
        encoding="utf-8",
    )
    with pytest.raises(CorruptStateError):
        await TaskStore.open(tasks_file)


@pytest.mark.asyncio
async def test_open_existing_file_does_not_rewrite_it(tasks_file):
    tasks_file.write_text('[{"id": 3, "text": "from disk", "completed": true}]', encoding="utf-8")
    store = await TaskStore.open(tasks_file)
    try:
        assert store.list() == [Task(id=3, text="from disk", completed=True)]
        assert store.writer.commits == 0
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_create_update_delete_scenario(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        created = await store.create("buy milk")
        assert created.text == "buy milk"
        assert created.completed is False
        assert store.list() == [created]

        updated = await store.update(created.id, completed=True)
        assert updated.id == created.id
        assert updated.completed is True
        assert store.list()[0].completed is True

        deleted = await store.delete(created.id)
        assert deleted == Task(id=created.id, text="buy milk", completed=True)
        assert store.list() == []
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_file_matches_memory_after_every_operation(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        first = await store.create("  first  ")
        assert read_tasks(tasks_file) == store.list()
        second = await store.create("second")
        assert read_tasks(tasks_file) == store.list()
        await store.update(first.id, text="first, edited")
        assert read_tasks(tasks_file) == store.list()
        await store.update(second.id, completed=True)
        assert read_tasks(tasks_file) == store.list()
        await store.delete(first.id)
        assert read_tasks(tasks_file) == store.list()
        assert read_json(tasks_file) == [{"id": second.id, "text": "second", "completed": True}]
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_create_trims_text(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        task = await store.create("   call mom \n")
        assert task.text == "call mom"
    finally:
        await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
async def test_create_blank_text_never_mutates_or_writes(tasks_file, text):
    store = await TaskStore.open(tasks_file)
    try:
        commits = store.writer.commits
        with pytest.raises(ValidationError):
            await store.create(text)
        assert store.list() == []
        assert store.writer.commits == commits
        assert store.writer.pending == 0
        assert read_json(tasks_file) == []
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_rapid_creates_get_distinct_ids(tasks_file, monkeypatch):
    monkeypatch.setattr(store_module.time, "time_ns", lambda: 1_700_000_000_000_000_000)
    store = await TaskStore.open(tasks_file)
    try:
        a = await store.create("a")
        b = await store.create("b")
        c = await store.create("c")
        assert len({a.id, b.id, c.id}) == 3
        assert a.id < b.id < c.id
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_ids_continue_past_loaded_ids(tasks_file):
    future_id = 10 ** 15
    tasks_file.write_text(f'[{{"id": {future_id}, "text": "a", "completed": false}}]', encoding="utf-8")
    store = await TaskStore.open(tasks_file)
    try:
        task = await store.create("b")
        assert task.id == future_id + 1
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_update_applies_only_valid_fields(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        task = await store.create("original")
        commits = store.writer.commits

        updated = await store.update(task.id, completed="yes", text="   ")
        assert updated == Task(id=task.id, text="original", completed=False)
        # A no-op update still goes through a write cycle.
        assert store.writer.commits == commits + 1

        updated = await store.update(task.id, completed=True, text=" renamed ")
        assert updated == Task(id=task.id, text="renamed", completed=True)

        updated = await store.update(task.id, completed=False)
        assert updated.text == "renamed"
        assert updated.completed is False
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_update_unknown_id(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        with pytest.raises(NotFoundError):
            await store.update(404, completed=True)
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_delete_unknown_id_leaves_store_and_file_unchanged(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        task = await store.create("keep me")
        before = tasks_file.read_text(encoding="utf-8")
        commits = store.writer.commits

        with pytest.raises(NotFoundError):
            await store.delete(task.id + 1)

        assert store.list() == [task]
        assert store.writer.commits == commits
        assert tasks_file.read_text(encoding="utf-8") == before
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_persistence_failure_keeps_memory_change(tasks_file, monkeypatch):
    store = await TaskStore.open(tasks_file)

    def broken_write(path, tasks):
        raise OSError("disk full")

    monkeypatch.setattr(worker, "write_tasks", broken_write)
    with pytest.raises(PersistenceError):
        await store.create("unsaved")

    assert [t.text for t in store.list()] == ["unsaved"]
    assert read_json(tasks_file) == []
    with pytest.raises(PersistenceError):
        await store.close()


@pytest.mark.asyncio
async def test_open_survives_failed_initial_write(tasks_file, monkeypatch):
    calls = []
    real_write = worker.write_tasks

    def flaky_write(path, tasks):
        calls.append(tasks)
        if len(calls) == 1:
            raise OSError("not yet")
        real_write(path, tasks)

    monkeypatch.setattr(worker, "write_tasks", flaky_write)
    store = await TaskStore.open(tasks_file)
    try:
        assert not tasks_file.exists()
        task = await store.create("later")
        assert read_tasks(tasks_file) == [task]
    finally:
        await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [False, 0, [], {}])
async def test_create_falsy_non_string_is_blank(tasks_file, text):
    store = await TaskStore.open(tasks_file)
    try:
        with pytest.raises(ValidationError):
            await store.create(text)
        assert store.list() == []
        task = await store.create(42)
        assert task.text == "42"
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_create_rejects_unencodable_text(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        commits = store.writer.commits
        with pytest.raises(ValidationError):
            await store.create("bad \ud800 text")
        assert store.list() == []
        assert store.writer.commits == commits
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_update_rejects_unencodable_text(tasks_file):
    store = await TaskStore.open(tasks_file)
    try:
        task = await store.create("ok")
        commits = store.writer.commits

        with pytest.raises(ValidationError):
            await store.update(task.id, completed=True, text="\ud800")
        assert store.get(task.id) == Task(id=task.id, text="ok", completed=False)
        assert store.writer.commits == commits

        later = await store.create("later")
        assert read_tasks(tasks_file) == [task, later]
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_open_empty_file_starts_empty(tasks_file):
    tasks_file.write_text("", encoding="utf-8")
    store = await TaskStore.open(tasks_file)
    try:
        assert store.list() == []
        await store.create("first")
        assert [t["text"] for t in read_json(tasks_file)] == ["first"]
    finally:
        await store.close()
