# -----------------------------------------------------------------------------
# Accounts & sessions
# Purpose: registration, login/logout and "who is this token" on top of the
# user and session stores. Passwords are stored only as salted bcrypt hashes.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import uuid
from typing import Any, Dict

import bcrypt

from .errors import BadRequest, Conflict, InternalError, NotFound, Unauthorized
from .stores import FavoritesStore, SessionStore, UserStore
from .types import SessionRecord, User

logger = logging.getLogger(__name__)

# Same message for unknown user and wrong password (no username enumeration)
INVALID_CREDENTIALS = "Ungültiger Benutzername oder Passwort"

# bcrypt only reads the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class AccountService:
    def __init__(self, users: UserStore, sessions: SessionStore,
                 favorites: FavoritesStore, bcrypt_rounds: int = 10):
        self.users = users
        self.sessions = sessions
        self.favorites = favorites
        self.bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: bytes | None = None

    # ---------------- password helpers ----------------

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(_secret(password),
                             bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode("ascii")

    @staticmethod
    def check_password(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_secret(password), password_hash.encode("ascii"))
        except ValueError:
            # malformed stored hash
            return False

    def _burn_dummy_check(self, password: str) -> None:
        # Equalize timing for unknown usernames
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"physik-dummy", bcrypt.gensalt(rounds=self.bcrypt_rounds))
        self.check_password(password, self._dummy_hash.decode("ascii"))

    # ---------------- operations ----------------

    def register(self, username: str | None, password: str | None, email: str | None) -> str:
        """Create a user with an empty favorites set. Returns the new user id."""
        if not username or not password or not email:
            raise BadRequest("Alle Felder müssen ausgefüllt werden")
        if self.users.get_by_username(username) is not None:
            raise Conflict("Benutzername ist bereits vergeben")
        try:
            password_hash = self.hash_password(password)
        except ValueError as e:
            logger.exception("Password hashing failed during registration")
            raise InternalError("Serverfehler bei der Registrierung") from e
        user = User(id=str(uuid.uuid4()), username=username, password_hash=password_hash, email=email)
        # add() re-checks atomically; a concurrent registration loses here
        self.users.add(user)
        self.favorites.init_user(user.id)
        logger.info("Registered user %s (%s)", user.username, user.id)
        return user.id

    def login(self, username: str | None, password: str | None) -> tuple[User, SessionRecord]:
        user = self.users.get_by_username(username) if username else None
        if user is None:
            self._burn_dummy_check(password or "")
            logger.warning("Login failed: unknown user")
            raise Unauthorized(INVALID_CREDENTIALS)
        if not password or not self.check_password(password, user.password_hash):
            logger.warning("Login failed for user %s", user.username)
            raise Unauthorized(INVALID_CREDENTIALS)
        self.sessions.purge_expired()
        session = self.sessions.create(user.id, user.username)
        logger.info("User %s logged in", user.username)
        return user, session

    def logout(self, token: str | None) -> None:
        session = self.sessions.get(token)
        self.sessions.destroy(token)
        if session is not None:
            logger.info("User %s logged out", session.username)

    def require_session(self, token: str | None) -> SessionRecord:
        session = self.sessions.get(token)
        if session is None:
            raise Unauthorized("Nicht angemeldet")
        return session

    def current_user(self, token: str | None) -> User:
        session = self.require_session(token)
        user = self.users.get_by_id(session.user_id)
        if user is None:
            raise NotFound("Benutzer nicht gefunden")
        return user

    def status(self, token: str | None) -> Dict[str, Any]:
        session = self.sessions.get(token)
        if session is None:
            return {"isLoggedIn": False}
        return {"isLoggedIn": True, "username": session.username}
