"""
Ports (interfaces) used by the task state manager.

Adapters: goalify.infrastructure.store.SqlTaskStore and goalify.auth.SessionAuthProvider.
"""
from dataclasses import dataclass
from typing import Any, Dict, Protocol

from goalify.domain.task import DefaultTaskTemplate, TaskInstance

Row = Dict[str, Any]
# Domain field names: name, order, color, enabled, date, kind, completed, note, completed_at


@dataclass(frozen=True)
class UserIdentity:
    id: int
    email: str | None = None


class AuthProvider(Protocol):
    async def get_current_user(self) -> UserIdentity | None: ...


class TaskStore(Protocol):
    """
    Row-oriented persistence over `default_tasks` and `tasks`.

    Every call is scoped to `owner_id`. Updates and deletes that match no row
    raise StoreError, as does any failure of the underlying service.
    """

    async def list_default_tasks(self, owner_id: int) -> list[DefaultTaskTemplate]: ...

    async def insert_default_tasks(self, owner_id: int, rows: list[Row]) -> list[DefaultTaskTemplate]: ...

    async def update_default_task(self, owner_id: int, task_id: int, changes: Row) -> None: ...

    async def delete_default_task(self, owner_id: int, task_id: int) -> None: ...

    async def list_tasks(
        self,
        owner_id: int,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        completed: bool | None = None,
    ) -> list[TaskInstance]:
        """Newest date first."""
        ...

    async def upsert_tasks(self, owner_id: int, rows: list[Row]) -> list[TaskInstance]:
        """
        Insert rows, silently skipping any that collide on (owner, name, date).

        Returns only the rows this call actually persisted.
        """
        ...

    async def find_task(self, owner_id: int, name: str, date: str) -> TaskInstance | None: ...

    async def update_task(self, owner_id: int, task_id: int, changes: Row) -> None: ...
