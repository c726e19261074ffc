# -----------------------------------------------------------------------------
# In-process stores
# Purpose:
#   Abstract store interfaces plus the in-memory implementations used by the
#   API. Every collection is guarded by its own lock so concurrent requests
#   (FastAPI worker threads) cannot lose updates. Nothing is persisted: a
#   restart starts from the forum seed and no users.
# -----------------------------------------------------------------------------

from __future__ import annotations
import itertools
import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional

from .errors import Conflict, NotFound
from .types import ForumReply, ForumTopic, SessionRecord, User


class UserStore(ABC):
    @abstractmethod
    def add(self, user: User) -> None: ...
    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[User]: ...
    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]: ...


class SessionStore(ABC):
    @abstractmethod
    def create(self, user_id: str, username: str) -> SessionRecord: ...
    @abstractmethod
    def get(self, token: str | None) -> Optional[SessionRecord]: ...
    @abstractmethod
    def destroy(self, token: str | None) -> None: ...
    @abstractmethod
    def purge_expired(self) -> int: ...


class FavoritesStore(ABC):
    @abstractmethod
    def init_user(self, user_id: str) -> None: ...
    @abstractmethod
    def add(self, user_id: str, formula_id: str) -> None: ...
    @abstractmethod
    def remove(self, user_id: str, formula_id: str) -> None: ...
    @abstractmethod
    def list_ids(self, user_id: str) -> List[str]: ...


class ForumStore(ABC):
    @abstractmethod
    def list_topics(self) -> List[ForumTopic]: ...
    @abstractmethod
    def get_topic(self, topic_id: int) -> ForumTopic: ...
    @abstractmethod
    def create_topic(self, title: str, category: str, author: str, date: str, content: str) -> ForumTopic: ...
    @abstractmethod
    def add_reply(self, topic_id: int, reply: ForumReply) -> ForumReply: ...


class InMemoryUserStore(UserStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, User] = {}
        self._by_name: Dict[str, User] = {}

    def add(self, user: User) -> None:
        # Atomic check-and-insert; usernames are case-sensitive
        with self._lock:
            if user.username in self._by_name:
                raise Conflict("Benutzername ist bereits vergeben")
            self._by_id[user.id] = user
            self._by_name[user.username] = user

    def get_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._by_id.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return self._by_name.get(username)


class InMemorySessionStore(SessionStore):
    """
    Token -> session record with a fixed lifetime from creation.
    `clock` returns epoch seconds and is injectable for tests.
    """
    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionRecord] = {}

    def create(self, user_id: str, username: str) -> SessionRecord:
        now = self._clock()
        rec = SessionRecord(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            username=username,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with self._lock:
            self._sessions[rec.token] = rec
        return rec

    def get(self, token: str | None) -> Optional[SessionRecord]:
        if not token:
            return None
        now = self._clock()
        with self._lock:
            rec = self._sessions.get(token)
            if rec is not None and rec.expired(now):
                del self._sessions[token]
                return None
            return rec

    def destroy(self, token: str | None) -> None:
        # Idempotent
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [t for t, rec in self._sessions.items() if rec.expired(now)]
            for t in stale:
                del self._sessions[t]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class InMemoryFavoritesStore(FavoritesStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._favorites: Dict[str, List[str]] = {}

    def init_user(self, user_id: str) -> None:
        with self._lock:
            self._favorites.setdefault(user_id, [])

    def add(self, user_id: str, formula_id: str) -> None:
        with self._lock:
            ids = self._favorites.setdefault(user_id, [])
            if formula_id in ids:
                raise Conflict("Formel ist bereits in Favoriten")
            ids.append(formula_id)

    def remove(self, user_id: str, formula_id: str) -> None:
        with self._lock:
            ids = self._favorites.get(user_id, [])
            if formula_id not in ids:
                raise NotFound("Formel nicht in Favoriten gefunden")
            ids.remove(formula_id)

    def list_ids(self, user_id: str) -> List[str]:
        with self._lock:
            return list(self._favorites.get(user_id, []))


class InMemoryForumStore(ForumStore):
    """
    Forum threads in creation order. New ids come from a counter that starts
    after the highest seeded id and is advanced under the lock.
    """
    def __init__(self, seed: Iterable[ForumTopic] = ()):
        self._lock = threading.Lock()
        self._topics: List[ForumTopic] = list(seed)
        start = max((t.id for t in self._topics), default=0) + 1
        self._ids = itertools.count(start)

    def list_topics(self) -> List[ForumTopic]:
        with self._lock:
            return list(self._topics)

    def _find(self, topic_id: int) -> ForumTopic:
        topic = next((t for t in self._topics if t.id == topic_id), None)
        if topic is None:
            raise NotFound("Forenthema nicht gefunden")
        return topic

    def get_topic(self, topic_id: int) -> ForumTopic:
        with self._lock:
            return self._find(topic_id)

    def create_topic(self, title: str, category: str, author: str, date: str, content: str) -> ForumTopic:
        with self._lock:
            topic = ForumTopic(id=next(self._ids), title=title, category=category,
                               author=author, date=date, content=content)
            self._topics.append(topic)
            return topic

    def add_reply(self, topic_id: int, reply: ForumReply) -> ForumReply:
        with self._lock:
            self._find(topic_id).replies.append(reply)
            return reply
