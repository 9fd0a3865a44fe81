"""
SqlTaskStore - TaskStore port on top of SQLAlchemy

Each call opens a short-lived session (see session_scope) and runs in a worker
thread so the event loop keeps serving other operations while the database works.
"""
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from goalify.domain.errors import StoreError
from goalify.domain.task import DefaultTaskTemplate, TaskInstance
from goalify.infrastructure.db.models import DefaultTaskModel, TaskInstanceModel
from goalify.infrastructure.db.session import get_session_factory, session_scope

logger = logging.getLogger(__name__)

T = TypeVar("T")

# domain field -> ORM attribute
_DEFAULT_TASK_COLUMNS = {
    "name": "name",
    "order": "sort_order",
    "color": "color",
    "enabled": "is_enabled",
}
_TASK_COLUMNS = {
    "name": "name",
    "date": "date",
    "kind": "task_type",
    "completed": "is_completed",
    "note": "note",
    "completed_at": "completed_at",
    "order": "sort_order",
    "color": "color",
    "enabled": "is_enabled",
}
_TASK_CONFLICT_TARGET = ["account_id", "name", "date"]


def _default_task_from_row(row: DefaultTaskModel) -> DefaultTaskTemplate:
    return DefaultTaskTemplate(
        id=row.id,
        owner_id=row.account_id,
        name=row.name,
        order=row.sort_order,
        color=row.color,
        enabled=row.is_enabled,
    )


def _task_from_row(row: TaskInstanceModel) -> TaskInstance:
    return TaskInstance(
        id=row.id,
        owner_id=row.account_id,
        name=row.name,
        date=row.date.isoformat(),
        order=row.sort_order,
        color=row.color,
        kind=row.task_type,
        completed=row.is_completed,
        note=row.note,
        completed_at=row.completed_at,
        enabled=row.is_enabled,
    )


def _to_columns(changes: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    values = {}
    for key, value in changes.items():
        if key not in mapping:
            raise StoreError(f"Unknown field: {key}")
        if key == "date" and isinstance(value, str):
            value = date.fromisoformat(value)
        if isinstance(value, datetime) and value.tzinfo is not None:
            # stored in UTC; SQLite keeps no offset
            value = value.astimezone(timezone.utc)
        values[mapping[key]] = value
    return values


def _insert_for(db: Session):
    """Dialect-specific INSERT supporting ON CONFLICT"""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


class SqlTaskStore:
    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def _run(self, fn: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._run_sync, fn)

    def _run_sync(self, fn: Callable[[Session], T]) -> T:
        try:
            with session_scope(self._session_factory) as db:
                return fn(db)
        except SQLAlchemyError as e:
            logger.error("Task store call failed: %s", e)
            raise StoreError("the database rejected the request") from e

    # === default_tasks ===

    async def list_default_tasks(self, owner_id: int) -> list[DefaultTaskTemplate]:
        def query(db: Session) -> list[DefaultTaskTemplate]:
            rows = db.query(DefaultTaskModel).filter(
                DefaultTaskModel.account_id == owner_id,
            ).order_by(DefaultTaskModel.sort_order, DefaultTaskModel.id).all()
            return [_default_task_from_row(r) for r in rows]

        return await self._run(query)

    async def insert_default_tasks(self, owner_id: int, rows: list[dict]) -> list[DefaultTaskTemplate]:
        def insert(db: Session) -> list[DefaultTaskTemplate]:
            models = [
                DefaultTaskModel(account_id=owner_id, **_to_columns(row, _DEFAULT_TASK_COLUMNS))
                for row in rows
            ]
            db.add_all(models)
            db.flush()
            return [_default_task_from_row(m) for m in models]

        return await self._run(insert)

    async def update_default_task(self, owner_id: int, task_id: int, changes: dict) -> None:
        values = _to_columns(changes, _DEFAULT_TASK_COLUMNS)

        def update(db: Session) -> None:
            count = db.query(DefaultTaskModel).filter(
                DefaultTaskModel.id == task_id,
                DefaultTaskModel.account_id == owner_id,
            ).update(values, synchronize_session=False)
            if count == 0:
                raise StoreError(f"default task #{task_id} does not exist")

        await self._run(update)

    async def delete_default_task(self, owner_id: int, task_id: int) -> None:
        def delete(db: Session) -> None:
            count = db.query(DefaultTaskModel).filter(
                DefaultTaskModel.id == task_id,
                DefaultTaskModel.account_id == owner_id,
            ).delete(synchronize_session=False)
            if count == 0:
                raise StoreError(f"default task #{task_id} does not exist")

        await self._run(delete)

    # === tasks ===

    async def list_tasks(
        self,
        owner_id: int,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        completed: bool | None = None,
    ) -> list[TaskInstance]:
        def query(db: Session) -> list[TaskInstance]:
            q = db.query(TaskInstanceModel).filter(TaskInstanceModel.account_id == owner_id)
            if start_date is not None:
                q = q.filter(TaskInstanceModel.date >= date.fromisoformat(start_date))
            if end_date is not None:
                q = q.filter(TaskInstanceModel.date <= date.fromisoformat(end_date))
            if completed is not None:
                q = q.filter(TaskInstanceModel.is_completed == completed)
            rows = q.order_by(TaskInstanceModel.date.desc(), TaskInstanceModel.sort_order).all()
            return [_task_from_row(r) for r in rows]

        return await self._run(query)

    async def upsert_tasks(self, owner_id: int, rows: list[dict]) -> list[TaskInstance]:
        if not rows:
            return []
        values = [
            {"account_id": owner_id, **_to_columns(row, _TASK_COLUMNS)}
            for row in rows
        ]

        def upsert(db: Session) -> list[TaskInstance]:
            stmt = _insert_for(db)(TaskInstanceModel).values(values)
            stmt = stmt.on_conflict_do_nothing(index_elements=_TASK_CONFLICT_TARGET)
            # RETURNING yields only the rows this statement inserted
            created = db.scalars(stmt.returning(TaskInstanceModel)).all()
            return [_task_from_row(r) for r in created]

        created = await self._run(upsert)
        if len(created) < len(rows):
            logger.info(
                "Upsert for account_id=%s skipped %d existing row(s)",
                owner_id, len(rows) - len(created),
            )
        return created

    async def find_task(self, owner_id: int, name: str, date_iso: str) -> TaskInstance | None:
        def query(db: Session) -> TaskInstance | None:
            row = db.query(TaskInstanceModel).filter(
                TaskInstanceModel.account_id == owner_id,
                TaskInstanceModel.name == name,
                TaskInstanceModel.date == date.fromisoformat(date_iso),
            ).first()
            return _task_from_row(row) if row else None

        return await self._run(query)

    async def update_task(self, owner_id: int, task_id: int, changes: dict) -> None:
        values = _to_columns(changes, _TASK_COLUMNS)

        def update(db: Session) -> None:
            count = db.query(TaskInstanceModel).filter(
                TaskInstanceModel.id == task_id,
                TaskInstanceModel.account_id == owner_id,
            ).update(values, synchronize_session=False)
            if count == 0:
                raise StoreError(f"task #{task_id} does not exist")

        await self._run(update)
