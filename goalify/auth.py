import logging

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from goalify.application.ports import UserIdentity
from goalify.domain.errors import UnauthenticatedError
from goalify.infrastructure.db.models import User
from goalify.infrastructure.db.session import get_session_factory, session_scope

logger = logging.getLogger(__name__)

# pbkdf2_sha256: primary, no native deps
# bcrypt: still verified for hashes imported from elsewhere
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated=["bcrypt"])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


class SessionAuthProvider:
    """
    In-process session: remembers who signed in until sign_out().

    The task state manager only ever sees the UserIdentity returned by
    get_current_user().
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()
        self._user: UserIdentity | None = None

    def sign_in(self, email: str, password: str) -> UserIdentity:
        with session_scope(self._session_factory) as db:
            user = get_user_by_email(db, email.strip().lower())
            if user is None or not verify_password(password, user.password_hash):
                logger.info("Sign-in rejected for %s", email)
                raise UnauthenticatedError("Wrong email or password")
            self._user = UserIdentity(id=user.id, email=user.email)
        return self._user

    def sign_out(self) -> None:
        self._user = None

    async def get_current_user(self) -> UserIdentity | None:
        return self._user
