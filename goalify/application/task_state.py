"""
Task state manager - in-memory mirror of one user's default tasks and task instances.

The remote store is the source of truth. Every mutation is applied to memory first,
then written remotely; when the write fails the affected collection is restored from
its pre-operation snapshot and the error is recorded. Collections are tuples of frozen
entities and are replaced whole, so readers always see a consistent snapshot.

Lifecycle (owned by the composition root, see goalify.bootstrap):
    manager = TaskStateManager(store, auth)
    await manager.initialize()
    ...
    manager.reset()  # on sign-out
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Iterable, Sequence, TypeVar

from goalify.application.optimistic import apply_or_revert
from goalify.application.ports import AuthProvider, TaskStore, UserIdentity
from goalify.config import Settings, get_settings
from goalify.domain.errors import (
    TrackerError, UnauthenticatedError, TaskValidationError, TaskNotFoundError,
    RemoteReadFailed, RemoteWriteFailed, PartialReorderFailure, RemoteTimeout, StoreError,
)
from goalify.domain.task import (
    DefaultTaskTemplate, TaskInstance, INITIAL_DEFAULTS, presentation_key, completion_key,
)
from goalify.utils.dates import now_in, window_start, normalize_range, in_range, to_iso
from goalify.utils.validation import (
    validate_task_name, validate_note, validate_color, validate_order, validate_enabled,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPDATABLE_DEFAULT_FIELDS = ("name", "color", "enabled", "order")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a manager operation; truthy when the operation committed."""
    ok: bool
    value: T | None = None
    error: TrackerError | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: TrackerError) -> "OperationResult":
        return cls(ok=False, error=error)


Listener = Callable[["TaskStateManager"], None]


class TaskStateManager:
    def __init__(
        self,
        store: TaskStore,
        auth: AuthProvider,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.auth = auth
        self.settings = settings or get_settings()
        self._clock = clock or (lambda: now_in(self.settings.TIMEZONE))

        self.tasks: tuple[TaskInstance, ...] = ()
        self.default_tasks: tuple[DefaultTaskTemplate, ...] = ()
        self.loading = False
        self.initialized = False
        self.error: str | None = None

        self._listeners: list[Listener] = []
        self._pending_init: asyncio.Future | None = None
        # bumped by reset(); loads started under an older generation drop their results
        self._generation = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(manager)` after every state change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Drop all cached state, e.g. after sign-out."""
        self._pending_init = None
        self._generation += 1
        self._set(tasks=(), default_tasks=(), loading=False, initialized=False, error=None)

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> str:
        return self._clock().date().isoformat()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> OperationResult[list[TaskInstance]]:
        """
        Load default tasks and recent instances, then materialize today.

        No-op once initialized without error. A call made while another is still
        running waits for that one instead of starting a second load.
        """
        if self.initialized and self.error is None:
            return OperationResult.success([])
        if self._pending_init is None:
            self._pending_init = asyncio.ensure_future(self._initialize())
            self._pending_init.add_done_callback(self._clear_pending_init)
        return await asyncio.shield(self._pending_init)

    def _clear_pending_init(self, future: asyncio.Future) -> None:
        if self._pending_init is future:
            self._pending_init = None

    async def _initialize(self) -> OperationResult[list[TaskInstance]]:
        generation = self._generation
        self._set(loading=True)
        try:
            user = await self._require_user()
            templates = await self._remote(
                self.store.list_default_tasks(user.id), "load your tasks", write=False,
            )
            if not templates:
                rows = [DefaultTaskTemplate.new_row(**seed) for seed in INITIAL_DEFAULTS]
                templates = await self._remote(
                    self.store.insert_default_tasks(user.id, rows),
                    "create the initial tasks", write=True,
                )
                logger.info("Seeded %d default task(s) for user_id=%s", len(templates), user.id)
            since = window_start(self.today(), self.settings.HISTORY_WINDOW_DAYS)
            tasks = await self._remote(
                self.store.list_tasks(user.id, start_date=since), "load your tasks", write=False,
            )
        except TrackerError as e:
            if generation != self._generation:
                return self._discarded()
            self._set(loading=False, initialized=False)
            return self._fail(e)

        if generation != self._generation:
            return self._discarded()
        self._set(
            default_tasks=tuple(sorted(templates, key=lambda t: t.order)),
            tasks=tuple(tasks),
            loading=False,
            initialized=True,
            error=None,
        )
        return await self.initialize_daily_tasks()

    async def initialize_daily_tasks(self) -> OperationResult[list[TaskInstance]]:
        """
        Materialize today's instances from the enabled default tasks.

        Safe to call repeatedly and from several sessions at once: rows are written
        with a conflict-ignoring upsert on (owner, name, date), so a racing session's
        duplicates are dropped by the store.
        """
        today = self.today()
        if any(t.date == today for t in self.tasks):
            return self._succeed([])

        generation = self._generation
        try:
            user = await self._require_user()
            enabled = [t for t in self.default_tasks if t.enabled]
            if not enabled:
                return self._succeed([])
            rows = [TaskInstance.from_template_row(t, today) for t in enabled]
            created = await self._remote(
                self.store.upsert_tasks(user.id, rows), "create today's tasks", write=True,
            )
            if len(created) < len(rows):
                # Another session got there first; adopt its rows.
                created = list(created) + await self._remote(
                    self.store.list_tasks(user.id, start_date=today, end_date=today),
                    "load today's tasks", write=False,
                )
        except TrackerError as e:
            if generation != self._generation:
                return self._discarded()
            return self._fail(e)

        if generation != self._generation:
            return self._discarded()
        added = self._merge_tasks(created)
        logger.info("Materialized %d task(s) for user_id=%s on %s", len(added), user.id, today)
        return self._succeed(added)

    # ------------------------------------------------------------------
    # Task instances
    # ------------------------------------------------------------------

    async def complete_task(self, instance_id: int, note: str | None = None) -> OperationResult[TaskInstance]:
        """
        Mark an instance completed with an optional note.

        The result is truthy only when the remote write committed.
        """
        try:
            note = validate_note(note)
            user = await self._require_user()
        except TrackerError as e:
            return self._fail(e)

        current = self._find_task(instance_id)
        if current is None:
            return self._fail(TaskNotFoundError(f"Task #{instance_id} not found"))
        if current.completed:
            return self._succeed(current)

        done = current.complete(note, self.now())
        changes = {"completed": True, "note": note, "completed_at": done.completed_at}
        try:
            await self._optimistic(
                "tasks",
                tuple(done if t.id == instance_id else t for t in self.tasks),
                lambda: self._remote(
                    self.store.update_task(user.id, instance_id, changes),
                    "complete the task", write=True,
                ),
            )
        except TrackerError as e:
            return self._fail(e)
        return self._succeed(done)

    async def add_adhoc_task(self, date: str, name: str, color: str, order: int) -> OperationResult[TaskInstance]:
        """Attach a one-off task to `date`. An existing task with the same name that day is reused."""
        try:
            name = validate_task_name(name)
            color = validate_color(color)
            order = validate_order(order)
        except TaskValidationError as e:
            return self._fail(e)
        date = to_iso(date)

        try:
            user = await self._require_user()
            created = await self._remote(
                self.store.upsert_tasks(user.id, [TaskInstance.adhoc_row(date, name, color, order)]),
                "add the task", write=True,
            )
            if created:
                task = created[0]
            else:
                task = await self._remote(
                    self.store.find_task(user.id, name, date), "add the task", write=False,
                )
                if task is None:
                    raise RemoteWriteFailed("Could not add the task: the server returned no row")
        except TrackerError as e:
            return self._fail(e)

        self._merge_tasks([task])
        return self._succeed(task)

    async def load_historical_tasks(self, start_date: str, end_date: str) -> OperationResult[list[TaskInstance]]:
        """Fetch completed instances in [start_date, end_date], including ones outside the cached window."""
        start_date, end_date = normalize_range(to_iso(start_date), to_iso(end_date))
        generation = self._generation
        self._set(loading=True)
        try:
            user = await self._require_user()
            rows = await self._remote(
                self.store.list_tasks(user.id, start_date=start_date, end_date=end_date, completed=True),
                "load the history", write=False,
            )
        except TrackerError as e:
            if generation != self._generation:
                return self._discarded()
            self._set(loading=False)
            return self._fail(e)

        if generation != self._generation:
            return self._discarded()
        added = self._merge_tasks(rows)
        self._set(loading=False)
        return self._succeed(added)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_task(self) -> TaskInstance | None:
        """First pending, enabled instance of today: default tasks before ad-hoc ones, then by order."""
        today = self.today()
        pending = [t for t in self.tasks if t.date == today and not t.completed and t.enabled]
        if not pending:
            return None
        return sorted(pending, key=presentation_key)[0]

    def is_all_completed(self) -> bool:
        """True when today has enabled instances and all of them are completed."""
        today = self.today()
        enabled = [t for t in self.tasks if t.date == today and t.enabled]
        return len(enabled) > 0 and all(t.completed for t in enabled)

    def get_today_tasks(self) -> list[TaskInstance]:
        return self.get_tasks_by_date(self.today())

    def get_tasks_by_date(self, date: str) -> list[TaskInstance]:
        date = to_iso(date)
        return sorted((t for t in self.tasks if t.date == date), key=presentation_key)

    def get_completed_tasks(self, start_date: str, end_date: str) -> list[TaskInstance]:
        """Completed instances dated within [start_date, end_date], most recent first."""
        done = [t for t in self.tasks if t.completed and in_range(t.date, start_date, end_date)]
        return sorted(done, key=completion_key, reverse=True)

    def get_completed_tasks_by_name(self, name: str, start_date: str, end_date: str) -> list[TaskInstance]:
        return [t for t in self.get_completed_tasks(start_date, end_date) if t.name == name]

    # ------------------------------------------------------------------
    # Default tasks
    # ------------------------------------------------------------------

    async def add_default_task(self, name: str, color: str) -> OperationResult[DefaultTaskTemplate]:
        try:
            name = validate_task_name(name)
            color = validate_color(color)
        except TaskValidationError as e:
            return self._fail(e)

        try:
            user = await self._require_user()
            order = max([t.order for t in self.default_tasks] + [0]) + 1
            created = await self._remote(
                self.store.insert_default_tasks(user.id, [DefaultTaskTemplate.new_row(name, order, color)]),
                "add the task", write=True,
            )
            if not created:
                raise RemoteWriteFailed("Could not add the task: the server returned no row")
        except TrackerError as e:
            return self._fail(e)

        template = created[0]
        self._set(default_tasks=self.default_tasks + (template,))
        return self._succeed(template)

    async def remove_default_task(self, template_id: int) -> OperationResult[None]:
        """Delete a default task. Instances already materialized from it are kept."""
        try:
            user = await self._require_user()
        except TrackerError as e:
            return self._fail(e)
        if self._find_default(template_id) is None:
            return self._fail(TaskNotFoundError(f"Default task #{template_id} not found"))

        try:
            await self._optimistic(
                "default_tasks",
                tuple(t for t in self.default_tasks if t.id != template_id),
                lambda: self._remote(
                    self.store.delete_default_task(user.id, template_id),
                    "remove the task", write=True,
                ),
            )
        except TrackerError as e:
            return self._fail(e)
        return self._succeed()

    async def update_default_task(self, template_id: int, **changes) -> OperationResult[DefaultTaskTemplate]:
        """Partial update; accepts name, color, enabled and order."""
        fields = {key: changes[key] for key in UPDATABLE_DEFAULT_FIELDS if key in changes}
        try:
            if "name" in fields:
                fields["name"] = validate_task_name(fields["name"])
            if "color" in fields:
                fields["color"] = validate_color(fields["color"])
            if "order" in fields:
                fields["order"] = validate_order(fields["order"])
            if "enabled" in fields:
                fields["enabled"] = validate_enabled(fields["enabled"])
            user = await self._require_user()
        except TrackerError as e:
            return self._fail(e)

        current = self._find_default(template_id)
        if current is None:
            return self._fail(TaskNotFoundError(f"Default task #{template_id} not found"))
        if not fields:
            return self._succeed(current)

        updated = current.with_changes(**fields)
        try:
            await self._optimistic(
                "default_tasks",
                tuple(updated if t.id == template_id else t for t in self.default_tasks),
                lambda: self._remote(
                    self.store.update_default_task(user.id, template_id, fields),
                    "update the task", write=True,
                ),
            )
        except TrackerError as e:
            return self._fail(e)
        return self._succeed(updated)

    async def reorder_default_tasks(
        self, sequence: Sequence[DefaultTaskTemplate],
    ) -> OperationResult[list[DefaultTaskTemplate]]:
        """
        Reassign order as the 1-based position in `sequence`.

        Rows whose order changed are written concurrently. If any write fails the
        whole in-memory reorder is rolled back; writes that did succeed stay
        persisted until the next initialize.
        """
        try:
            user = await self._require_user()
        except TrackerError as e:
            return self._fail(e)

        previous = {t.id: t.order for t in self.default_tasks}
        reordered = tuple(t.with_changes(order=position) for position, t in enumerate(sequence, start=1))
        changed = [t for t in reordered if previous.get(t.id) != t.order]

        async def persist() -> None:
            results = await asyncio.gather(
                *(
                    self._remote(
                        self.store.update_default_task(user.id, t.id, {"order": t.order}),
                        "save the new order", write=True,
                    )
                    for t in changed
                ),
                return_exceptions=True,
            )
            failures = [r for r in results if isinstance(r, BaseException)]
            for failure in failures:
                if not isinstance(failure, TrackerError):
                    raise failure
            if failures:
                raise PartialReorderFailure(
                    f"Could not save the new order ({len(failures)} of {len(changed)} updates failed)",
                    failed=len(failures),
                    total=len(changed),
                )

        try:
            await self._optimistic("default_tasks", reordered, persist)
        except TrackerError as e:
            return self._fail(e)
        return self._succeed(list(reordered))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self, key, value)
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Task state listener %r failed", listener)

    async def _optimistic(self, attr: str, tentative: tuple, effect: Callable[[], Awaitable[T]]) -> T:
        generation = self._generation

        def write(value: tuple) -> None:
            # a rollback landing after reset() must not restore the old user's rows
            if generation == self._generation:
                self._set(**{attr: value})

        return await apply_or_revert(
            lambda: getattr(self, attr),
            write,
            tentative,
            effect,
        )

    async def _remote(self, call: Awaitable[T], action: str, *, write: bool) -> T:
        """
        Await a store call with the configured timeout, translating failures.

        A timeout cancels this wait, not the database work behind it (see RemoteTimeout).
        """
        try:
            return await asyncio.wait_for(call, timeout=self.settings.REMOTE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as e:
            raise RemoteTimeout(f"Could not {action}: the server did not respond in time") from e
        except StoreError as e:
            error_cls = RemoteWriteFailed if write else RemoteReadFailed
            raise error_cls(f"Could not {action}: {e}") from e

    async def _require_user(self) -> UserIdentity:
        user = await self.auth.get_current_user()
        if user is None:
            raise UnauthenticatedError()
        return user

    def _find_task(self, instance_id: int) -> TaskInstance | None:
        return next((t for t in self.tasks if t.id == instance_id), None)

    def _find_default(self, template_id: int) -> DefaultTaskTemplate | None:
        return next((t for t in self.default_tasks if t.id == template_id), None)

    def _merge_tasks(self, rows: Iterable[TaskInstance]) -> list[TaskInstance]:
        """Append rows whose id is not cached yet; returns the ones appended."""
        known = {t.id for t in self.tasks}
        added = []
        for row in rows:
            if row.id in known:
                continue
            known.add(row.id)
            added.append(row)
        if added:
            self._set(tasks=self.tasks + tuple(added))
        return added

    def _succeed(self, value: Any = None) -> OperationResult:
        if self.error is not None:
            self._set(error=None)
        return OperationResult.success(value)

    def _fail(self, error: TrackerError) -> OperationResult:
        logger.warning("Task operation failed [%s]: %s", error.code, error.message)
        self._set(error=error.message)
        return OperationResult.failure(error)

    def _discarded(self) -> OperationResult:
        """Result of a load overtaken by reset(); the cleared state is left alone."""
        logger.info("Discarding task load started before sign-out")
        return OperationResult.failure(UnauthenticatedError("Signed out while loading"))
