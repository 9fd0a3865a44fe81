"""
Materialize today's tasks for one user and print the day's list

Usage:
    python run_daily_tasks.py EMAIL PASSWORD [--history DAYS]

With --history, also prints completions per day for the last DAYS days.
Safe to run from cron next to open sessions: duplicates are absorbed by the store.
"""
import asyncio
import logging
import sys

import psycopg

from goalify.application.history import daily_series, task_colors, unique_task_names
from goalify.application.task_state import TaskStateManager
from goalify.bootstrap import build_tracker
from goalify.domain.errors import UnauthenticatedError
from goalify.infrastructure.db.session import check_db_connection
from goalify.utils.dates import window_start


async def history_lines(manager: TaskStateManager, days: int) -> list[str]:
    """Completion summary for the `days` days before today, today included."""
    today = manager.today()
    start = window_start(today, days - 1)
    result = await manager.load_historical_tasks(start, today)
    if not result:
        return [f"✗ ERROR: {manager.error}"]

    done = manager.get_completed_tasks(start, today)
    colors = task_colors(manager.default_tasks, done)
    lines = [f"History {start} .. {today}:"]
    for day in daily_series(done, start, today):
        detail = ", ".join(f"{name} x{count}" for name, count in sorted(day.by_task.items()))
        lines.append(f"  {day.date} {day.total:>2}  {detail}".rstrip())
    for name in unique_task_names(done):
        lines.append(f"  {colors[name]} {name}")
    return lines


async def main(email: str, password: str, history_days: int = 0) -> int:
    try:
        check_db_connection()
    except psycopg.OperationalError as e:
        print(f"✗ Database unreachable: {e}")
        return 1

    tracker = build_tracker()
    try:
        tracker.sign_in(email, password)
    except UnauthenticatedError as e:
        print(f"✗ {e.message}")
        return 1

    manager = tracker.manager
    result = await manager.initialize()
    if not result:
        print(f"✗ ERROR: {manager.error}")
        return 1

    today = manager.today()
    print(f"✓ Tasks for {today}:")
    for task in manager.get_today_tasks():
        mark = "x" if task.completed else " "
        print(f"  [{mark}] {task.order:>2} {task.name}")

    current = manager.get_current_task()
    if current:
        print(f"→ Next up: {current.name}")
    elif manager.is_all_completed():
        print("✓ All done for today")

    if history_days > 0:
        for line in await history_lines(manager, history_days):
            print(line)

    tracker.sign_out()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = sys.argv[1:]
    history_days = 0
    if len(args) == 4 and args[2] == "--history" and args[3].isdigit():
        history_days = int(args[3])
        args = args[:2]
    if len(args) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(args[0], args[1], history_days)))
