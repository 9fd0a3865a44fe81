"""
Task domain entities - default task templates and dated task instances

Entities are immutable: every change produces a new value via dataclasses.replace,
so a collection snapshot taken before a mutation stays valid for rollback.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Any

# Instance kinds
KIND_TEMPLATE = "TEMPLATE"  # materialized from a default task
KIND_ADHOC = "ADHOC"        # one-off task attached to a specific date

MAX_TASK_NAME_LENGTH = 200
MAX_NOTE_LENGTH = 1000

TASK_COLORS = (
    "#ef4444", "#f97316", "#f59e0b", "#eab308", "#84cc16",
    "#22c55e", "#10b981", "#14b8a6", "#06b6d4", "#0ea5e9",
    "#3b82f6", "#6366f1", "#8b5cf6", "#a855f7", "#d946ef",
    "#ec4899", "#f43f5e", "#78716c", "#64748b", "#6b7280",
    "#dc2626", "#ea580c", "#d97706", "#ca8a04", "#65a30d",
)

# Seeded for a user who has no default tasks yet
INITIAL_DEFAULTS = (
    {"name": "Ore Sonno", "order": 1, "color": "#3b82f6"},
    {"name": "Peso", "order": 2, "color": "#22c55e"},
    {"name": "Creme Corpo", "order": 3, "color": "#f59e0b"},
    {"name": "Mandare CV", "order": 4, "color": "#ef4444"},
    {"name": "Corsa", "order": 5, "color": "#8b5cf6"},
    {"name": "Studio", "order": 6, "color": "#06b6d4"},
    {"name": "KCAL", "order": 7, "color": "#ec4899"},
    {"name": "Bicchieri d'acqua", "order": 8, "color": "#14b8a6"},
    {"name": "Ottimizzazione Workflow", "order": 9, "color": "#6366f1"},
)


@dataclass(frozen=True)
class DefaultTaskTemplate:
    """
    Recurring habit definition.

    Only enabled templates spawn an instance for the day. Edits never touch
    instances that were already materialized.
    """
    id: int
    owner_id: int
    name: str
    order: int
    color: str
    enabled: bool = True

    @staticmethod
    def new_row(name: str, order: int, color: str, enabled: bool = True) -> Dict[str, Any]:
        """Row payload for the store; id and owner are assigned there."""
        return {"name": name, "order": order, "color": color, "enabled": enabled}

    def with_changes(self, **changes) -> "DefaultTaskTemplate":
        return replace(self, **changes)


@dataclass(frozen=True)
class TaskInstance:
    """
    One occurrence of a task on one calendar date (ISO YYYY-MM-DD).
    """
    id: int
    owner_id: int
    name: str
    date: str
    order: int
    color: str
    kind: str = KIND_TEMPLATE
    completed: bool = False
    note: str | None = None
    completed_at: datetime | None = None
    enabled: bool = True

    @property
    def is_template(self) -> bool:
        return self.kind == KIND_TEMPLATE

    @staticmethod
    def from_template_row(template: DefaultTaskTemplate, date: str) -> Dict[str, Any]:
        """Row payload materializing `template` for `date`."""
        return {
            "name": template.name,
            "date": date,
            "kind": KIND_TEMPLATE,
            "completed": False,
            "order": template.order,
            "color": template.color,
            "enabled": template.enabled,
        }

    @staticmethod
    def adhoc_row(date: str, name: str, color: str, order: int) -> Dict[str, Any]:
        return {
            "name": name,
            "date": date,
            "kind": KIND_ADHOC,
            "completed": False,
            "order": order,
            "color": color,
            "enabled": True,
        }

    def complete(self, note: str | None, completed_at: datetime) -> "TaskInstance":
        return replace(self, completed=True, note=note, completed_at=completed_at)


def presentation_key(task: TaskInstance) -> tuple[int, int]:
    """Sort key: template instances before ad-hoc ones, then by order."""
    return (0 if task.is_template else 1, task.order)


def completion_key(task: TaskInstance) -> str:
    """
    Sort key for history: completion time in UTC when known, else the date.

    Naive timestamps (SQLite drops the offset) are taken as UTC.
    """
    if task.completed_at is None:
        return task.date
    at = task.completed_at
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return at.astimezone(timezone.utc).isoformat()
