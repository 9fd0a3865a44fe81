"""
Tests for SqlTaskStore against an in-memory SQLite database
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from goalify.domain.errors import StoreError
from goalify.domain.task import DefaultTaskTemplate, TaskInstance, KIND_ADHOC, KIND_TEMPLATE, completion_key
from goalify.infrastructure.db.models import TaskInstanceModel
from goalify.infrastructure.store import SqlTaskStore

OTHER_ACCOUNT = 2


@pytest.fixture
def sql_store(session_factory):
    return SqlTaskStore(session_factory)


def _row(name, date, order=1, color="#3b82f6"):
    template = DefaultTaskTemplate(id=0, owner_id=0, name=name, order=order, color=color)
    return TaskInstance.from_template_row(template, date)


class TestDefaultTasks:
    @pytest.mark.asyncio
    async def test_insert_and_list_in_order(self, sql_store, sample_account_id):
        created = await sql_store.insert_default_tasks(sample_account_id, [
            DefaultTaskTemplate.new_row("Studio", 2, "#22c55e"),
            DefaultTaskTemplate.new_row("Corsa", 1, "#ef4444", enabled=False),
        ])
        await sql_store.insert_default_tasks(OTHER_ACCOUNT, [DefaultTaskTemplate.new_row("Altro", 1, "#3b82f6")])

        listed = await sql_store.list_default_tasks(sample_account_id)

        assert all(t.id for t in created)
        assert [t.name for t in listed] == ["Corsa", "Studio"]
        assert listed[0].enabled is False and listed[0].owner_id == sample_account_id

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sql_store, sample_account_id):
        [template] = await sql_store.insert_default_tasks(
            sample_account_id, [DefaultTaskTemplate.new_row("Corsa", 1, "#ef4444")],
        )

        await sql_store.update_default_task(sample_account_id, template.id, {"name": "Nuoto", "order": 4})
        [updated] = await sql_store.list_default_tasks(sample_account_id)
        assert (updated.name, updated.order) == ("Nuoto", 4)

        await sql_store.delete_default_task(sample_account_id, template.id)
        assert await sql_store.list_default_tasks(sample_account_id) == []

    @pytest.mark.asyncio
    async def test_rows_of_another_account_are_not_touched(self, sql_store, sample_account_id):
        [template] = await sql_store.insert_default_tasks(
            sample_account_id, [DefaultTaskTemplate.new_row("Corsa", 1, "#ef4444")],
        )

        with pytest.raises(StoreError):
            await sql_store.update_default_task(OTHER_ACCOUNT, template.id, {"name": "x"})
        with pytest.raises(StoreError):
            await sql_store.delete_default_task(OTHER_ACCOUNT, template.id)

        assert len(await sql_store.list_default_tasks(sample_account_id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, sql_store, sample_account_id):
        with pytest.raises(StoreError):
            await sql_store.update_default_task(sample_account_id, 1, {"owner_id": 5})


class TestTasks:
    @pytest.mark.asyncio
    async def test_upsert_returns_only_new_rows(self, sql_store, sample_account_id, db_session):
        first = await sql_store.upsert_tasks(sample_account_id, [_row("Corsa", "2024-01-15")])
        second = await sql_store.upsert_tasks(sample_account_id, [
            _row("Corsa", "2024-01-15"),
            _row("Studio", "2024-01-15", order=2),
        ])

        assert [t.name for t in first] == ["Corsa"]
        assert [t.name for t in second] == ["Studio"]
        assert second[0].date == "2024-01-15" and second[0].kind == KIND_TEMPLATE
        assert db_session.query(TaskInstanceModel).count() == 2

    @pytest.mark.asyncio
    async def test_same_name_and_date_is_allowed_for_different_accounts(self, sql_store, sample_account_id):
        await sql_store.upsert_tasks(sample_account_id, [_row("Corsa", "2024-01-15")])
        created = await sql_store.upsert_tasks(OTHER_ACCOUNT, [_row("Corsa", "2024-01-15")])

        assert len(created) == 1
        assert created[0].owner_id == OTHER_ACCOUNT

    @pytest.mark.asyncio
    async def test_upsert_nothing(self, sql_store, sample_account_id):
        assert await sql_store.upsert_tasks(sample_account_id, []) == []

    @pytest.mark.asyncio
    async def test_list_filters_and_orders_newest_first(self, sql_store, sample_account_id):
        created = await sql_store.upsert_tasks(sample_account_id, [
            _row("Corsa", "2024-01-10"),
            _row("Corsa", "2024-01-12"),
            _row("Corsa", "2024-01-14"),
            _row("Studio", "2024-01-12", order=2),
        ])
        done = next(t for t in created if t.date == "2024-01-12" and t.name == "Corsa")
        await sql_store.update_task(sample_account_id, done.id, {
            "completed": True,
            "completed_at": datetime(2024, 1, 12, 8, tzinfo=timezone.utc),
        })

        window = await sql_store.list_tasks(sample_account_id, start_date="2024-01-12")
        assert [(t.date, t.name) for t in window] == [
            ("2024-01-14", "Corsa"), ("2024-01-12", "Corsa"), ("2024-01-12", "Studio"),
        ]

        completed = await sql_store.list_tasks(
            sample_account_id, start_date="2024-01-01", end_date="2024-01-31", completed=True,
        )
        assert [t.id for t in completed] == [done.id]
        assert completed[0].completed_at is not None

        assert await sql_store.list_tasks(OTHER_ACCOUNT) == []

    @pytest.mark.asyncio
    async def test_completion_time_is_stored_as_utc_instant(self, sql_store, sample_account_id):
        [task] = await sql_store.upsert_tasks(sample_account_id, [_row("Corsa", "2024-01-15")])
        rome = datetime(2024, 1, 15, 10, 0, tzinfo=ZoneInfo("Europe/Rome"))

        await sql_store.update_task(sample_account_id, task.id, {"completed": True, "completed_at": rome})

        [stored] = await sql_store.list_tasks(sample_account_id)
        assert completion_key(stored) == "2024-01-15T09:00:00+00:00"

    @pytest.mark.asyncio
    async def test_find_task(self, sql_store, sample_account_id):
        await sql_store.upsert_tasks(sample_account_id, [
            TaskInstance.adhoc_row("2024-01-20", "Dentista", "#ef4444", 3),
        ])

        found = await sql_store.find_task(sample_account_id, "Dentista", "2024-01-20")

        assert found.kind == KIND_ADHOC and found.order == 3
        assert await sql_store.find_task(sample_account_id, "Dentista", "2024-01-21") is None
        assert await sql_store.find_task(OTHER_ACCOUNT, "Dentista", "2024-01-20") is None

    @pytest.mark.asyncio
    async def test_update_task_of_another_account_fails(self, sql_store, sample_account_id):
        [task] = await sql_store.upsert_tasks(sample_account_id, [_row("Corsa", "2024-01-15")])

        with pytest.raises(StoreError):
            await sql_store.update_task(OTHER_ACCOUNT, task.id, {"completed": True})

        [unchanged] = await sql_store.list_tasks(sample_account_id)
        assert unchanged.completed is False
