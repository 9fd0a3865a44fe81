"""
Tests for derived read views: current task, all-completed, by-date, completed ranges
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from goalify.domain.task import TaskInstance, KIND_ADHOC, KIND_TEMPLATE

TODAY = "2024-01-15"


def _task(id, name, order=1, date=TODAY, kind=KIND_TEMPLATE, completed=False, enabled=True, completed_at=None):
    return TaskInstance(
        id=id, owner_id=1, name=name, date=date, order=order, color="#3b82f6",
        kind=kind, completed=completed, enabled=enabled,
        completed_at=completed_at if completed_at or not completed else datetime(2024, 1, 1),
    )


class TestCurrentTask:
    def test_template_beats_adhoc_regardless_of_order(self, manager):
        manager.tasks = (
            _task(1, "B", order=2),
            _task(2, "A", order=1, kind=KIND_ADHOC),
        )
        assert manager.get_current_task().name == "B"

    def test_lowest_order_first(self, manager):
        manager.tasks = (_task(1, "second", order=2), _task(2, "first", order=1))
        assert manager.get_current_task().name == "first"

    def test_skips_completed_disabled_and_other_days(self, manager):
        manager.tasks = (
            _task(1, "done", order=1, completed=True),
            _task(2, "off", order=2, enabled=False),
            _task(3, "yesterday", order=0, date="2024-01-14"),
            _task(4, "next", order=4),
        )
        assert manager.get_current_task().name == "next"

    def test_none_when_nothing_pending(self, manager):
        manager.tasks = (_task(1, "done", completed=True),)
        assert manager.get_current_task() is None

    def test_adhoc_is_offered_once_defaults_are_done(self, manager):
        manager.tasks = (
            _task(1, "B", order=2, completed=True),
            _task(2, "A", order=1, kind=KIND_ADHOC),
        )
        assert manager.get_current_task().name == "A"


class TestAllCompleted:
    def test_empty_day_is_not_done(self, manager):
        manager.tasks = ()
        assert manager.is_all_completed() is False

    def test_single_completed(self, manager):
        manager.tasks = (_task(1, "A", completed=True),)
        assert manager.is_all_completed() is True

    def test_disabled_instances_are_ignored(self, manager):
        manager.tasks = (_task(1, "A", completed=True), _task(2, "B", enabled=False))
        assert manager.is_all_completed() is True

    def test_only_disabled_instances_is_not_done(self, manager):
        manager.tasks = (_task(1, "A", enabled=False),)
        assert manager.is_all_completed() is False

    def test_pending_instance(self, manager):
        manager.tasks = (_task(1, "A", completed=True), _task(2, "B"))
        assert manager.is_all_completed() is False

    def test_other_days_do_not_count(self, manager):
        manager.tasks = (_task(1, "A", completed=True), _task(2, "B", date="2024-01-14"))
        assert manager.is_all_completed() is True


class TestTasksByDate:
    def test_today_sorted_by_kind_then_order(self, manager):
        manager.tasks = (
            _task(1, "adhoc", order=1, kind=KIND_ADHOC),
            _task(2, "c", order=3),
            _task(3, "a", order=1),
            _task(4, "other day", date="2024-01-16"),
        )
        assert [t.name for t in manager.get_today_tasks()] == ["a", "c", "adhoc"]

    def test_by_date_includes_completed_and_disabled(self, manager):
        manager.tasks = (
            _task(1, "a", date="2024-01-10", completed=True),
            _task(2, "b", order=2, date="2024-01-10", enabled=False),
        )
        assert [t.name for t in manager.get_tasks_by_date("2024-01-10")] == ["a", "b"]

    def test_unknown_date_is_empty(self, manager):
        assert manager.get_tasks_by_date("1999-01-01") == []


class TestCompletedTasks:
    def test_range_is_inclusive(self, manager):
        manager.tasks = (
            _task(1, "before", date="2024-01-09", completed=True),
            _task(2, "first", date="2024-01-10", completed=True),
            _task(3, "last", date="2024-01-20", completed=True),
            _task(4, "after", date="2024-01-21", completed=True),
            _task(5, "pending", date="2024-01-15"),
        )
        names = {t.name for t in manager.get_completed_tasks("2024-01-10", "2024-01-20")}
        assert names == {"first", "last"}

    def test_sorted_by_completion_time_descending(self, manager):
        manager.tasks = (
            _task(1, "early", date="2024-01-12", completed=True, completed_at=datetime(2024, 1, 12, 7)),
            _task(2, "late", date="2024-01-12", completed=True, completed_at=datetime(2024, 1, 12, 21)),
            _task(3, "mid", date="2024-01-11", completed=True, completed_at=datetime(2024, 1, 13, 9)),
        )
        result = manager.get_completed_tasks("2024-01-01", "2024-01-31")
        assert [t.name for t in result] == ["mid", "late", "early"]

    def test_sorted_by_instant_when_offsets_differ(self, manager):
        manager.tasks = (
            _task(1, "Corsa", completed=True, completed_at=datetime(2024, 1, 15, 10, 0, tzinfo=ZoneInfo("Europe/Rome"))),
            _task(2, "Studio", completed=True, completed_at=datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)),
        )
        result = manager.get_completed_tasks("2024-01-01", "2024-01-31")
        assert [t.name for t in result] == ["Studio", "Corsa"]

    def test_by_name(self, manager):
        manager.tasks = (
            _task(1, "Corsa", date="2024-01-12", completed=True, completed_at=datetime(2024, 1, 12, 8)),
            _task(2, "Studio", date="2024-01-12", completed=True, completed_at=datetime(2024, 1, 12, 9)),
            _task(3, "Corsa", date="2024-01-13", completed=True, completed_at=datetime(2024, 1, 13, 8)),
        )
        result = manager.get_completed_tasks_by_name("Corsa", "2024-01-01", "2024-01-31")
        assert [t.id for t in result] == [3, 1]


class TestLoadHistoricalTasks:
    @pytest.mark.asyncio
    async def test_fetches_completed_outside_window(self, manager, store, sample_account_id):
        store.add_default(sample_account_id, "Corsa", 1)
        old = store.add_task(sample_account_id, "Corsa", "2023-06-01", completed=True,
                             completed_at=datetime(2023, 6, 1, 8))
        store.add_task(sample_account_id, "Studio", "2023-06-02")
        await manager.initialize()
        assert old.id not in {t.id for t in manager.tasks}

        result = await manager.load_historical_tasks("2023-06-30", "2023-05-01")

        assert result.ok
        assert [t.id for t in result.value] == [old.id]
        assert manager.get_completed_tasks("2023-05-01", "2023-06-30") == [old]
        assert manager.initialized and not manager.loading

    @pytest.mark.asyncio
    async def test_does_not_duplicate_cached_rows(self, manager, store, sample_account_id):
        store.add_default(sample_account_id, "Corsa", 1)
        store.add_task(sample_account_id, "Corsa", "2024-01-10", completed=True)
        await manager.initialize()
        count = len(manager.tasks)

        result = await manager.load_historical_tasks("2024-01-01", "2024-01-15")

        assert result.value == []
        assert len(manager.tasks) == count

    @pytest.mark.asyncio
    async def test_failure_sets_error_and_clears_loading(self, manager, store, sample_account_id):
        store.add_default(sample_account_id, "Corsa", 1)
        await manager.initialize()
        store.fail_next("list_tasks")

        result = await manager.load_historical_tasks("2023-01-01", "2023-12-31")

        assert not result
        assert manager.error and not manager.loading
        assert manager.initialized
