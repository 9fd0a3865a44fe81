"""
Composition root: builds the store, the auth provider and the task state manager
"""
import logging
from dataclasses import dataclass

from goalify.application.task_state import TaskStateManager
from goalify.auth import SessionAuthProvider
from goalify.config import Settings, get_settings
from goalify.infrastructure.db.session import get_session_factory
from goalify.infrastructure.store import SqlTaskStore

logger = logging.getLogger(__name__)


@dataclass
class Tracker:
    settings: Settings
    auth: SessionAuthProvider
    store: SqlTaskStore
    manager: TaskStateManager

    def sign_in(self, email: str, password: str):
        return self.auth.sign_in(email, password)

    def sign_out(self) -> None:
        """End the session and drop every cached task."""
        self.auth.sign_out()
        self.manager.reset()


def build_tracker(settings: Settings | None = None, session_factory=None) -> Tracker:
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()
    auth = SessionAuthProvider(session_factory)
    store = SqlTaskStore(session_factory)
    manager = TaskStateManager(store, auth, settings=settings)
    logger.debug("Tracker wired (timezone=%s)", settings.TIMEZONE)
    return Tracker(settings=settings, auth=auth, store=store, manager=manager)
