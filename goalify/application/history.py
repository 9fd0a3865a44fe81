"""
History views - aggregates over completed task instances for the calendar and the graph
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable

from goalify.domain.task import DefaultTaskTemplate, TaskInstance
from goalify.utils.dates import iter_days, normalize_range


@dataclass(frozen=True)
class DaySummary:
    date: str
    total: int
    by_task: Dict[str, int] = field(default_factory=dict)


def unique_task_names(tasks: Iterable[TaskInstance]) -> list[str]:
    return sorted({t.name for t in tasks})


def task_colors(
    default_tasks: Iterable[DefaultTaskTemplate],
    tasks: Iterable[TaskInstance],
) -> Dict[str, str]:
    """Name -> color. A default task's current color wins over colors copied into instances."""
    colors = {t.name: t.color for t in default_tasks}
    for task in tasks:
        colors.setdefault(task.name, task.color)
    return colors


def daily_series(tasks: Iterable[TaskInstance], start_date: str, end_date: str) -> list[DaySummary]:
    """
    One entry per calendar day in [start_date, end_date], including empty days.

    Only completed instances are counted; reversed bounds are swapped.
    """
    start_date, end_date = normalize_range(start_date, end_date)
    per_day: Dict[str, Counter] = {}
    for task in tasks:
        if task.completed:
            per_day.setdefault(task.date, Counter())[task.name] += 1

    series = []
    for day in iter_days(start_date, end_date):
        counts = per_day.get(day, Counter())
        series.append(DaySummary(date=day, total=sum(counts.values()), by_task=dict(counts)))
    return series
