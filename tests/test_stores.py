import threading

import pytest

from physik.errors import Conflict, NotFound
from physik.stores import (InMemoryFavoritesStore, InMemoryForumStore,
                           InMemorySessionStore, InMemoryUserStore)
from physik.types import ForumReply, ForumTopic, User


class FakeClock:
    def __init__(self, now=1000.0): self.now = now
    def __call__(self): return self.now


def test_user_store_rejects_duplicate_username():
    store = InMemoryUserStore()
    store.add(User(id="1", username="anna", password_hash="x", email="a@x"))
    with pytest.raises(Conflict):
        store.add(User(id="2", username="anna", password_hash="y", email="b@x"))
    assert store.get_by_username("anna").id == "1"
    assert store.get_by_id("2") is None
    # usernames are case-sensitive
    store.add(User(id="3", username="Anna", password_hash="z", email="c@x"))


def test_session_expires_after_ttl():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    rec = store.create("u1", "anna")
    assert store.get(rec.token) == rec
    clock.now += 59
    assert store.get(rec.token) is not None
    clock.now += 1
    assert store.get(rec.token) is None
    assert len(store) == 0


def test_session_tokens_are_unique_and_destroy_is_idempotent():
    store = InMemorySessionStore(ttl_seconds=60)
    a = store.create("u1", "anna")
    b = store.create("u1", "anna")
    assert a.token != b.token
    store.destroy(a.token)
    store.destroy(a.token)
    store.destroy(None)
    assert store.get(a.token) is None
    assert store.get(b.token) is not None
    assert store.get(None) is None


def test_purge_expired():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=10, clock=clock)
    store.create("u1", "anna")
    clock.now += 5
    store.create("u2", "ben")
    clock.now += 6
    assert store.purge_expired() == 1
    assert len(store) == 1


def test_favorites_store():
    store = InMemoryFavoritesStore()
    store.init_user("u1")
    assert store.list_ids("u1") == []
    store.add("u1", "ohms-law")
    with pytest.raises(Conflict):
        store.add("u1", "ohms-law")
    with pytest.raises(NotFound):
        store.remove("u1", "momentum")
    store.remove("u1", "ohms-law")
    assert store.list_ids("u1") == []
    assert store.list_ids("unknown") == []


def _seed():
    return [ForumTopic(id=1, title="a", category="basic", author="x", date="2025-01-01", content="c"),
            ForumTopic(id=4, title="b", category="basic", author="y", date="2025-01-02", content="d")]


def test_forum_ids_continue_after_seed():
    store = InMemoryForumStore(_seed())
    topic = store.create_topic("neu", "basic", "z", "2025-02-01", "inhalt")
    assert topic.id == 5
    assert [t.id for t in store.list_topics()] == [1, 4, 5]
    with pytest.raises(NotFound):
        store.get_topic(2)


def test_forum_ids_unique_under_concurrency():
    store = InMemoryForumStore(_seed())

    def worker():
        for _ in range(50):
            store.create_topic("t", "basic", "a", "2025-01-01", "c")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads: t.start()
    for t in threads: t.join()
    ids = [t.id for t in store.list_topics()]
    assert len(ids) == len(set(ids)) == 2 + 8 * 50


def test_forum_reply_appends():
    store = InMemoryForumStore(_seed())
    store.add_reply(1, ForumReply(author="r", date="2025-01-03", content="ok"))
    assert [r.content for r in store.get_topic(1).replies] == ["ok"]
    with pytest.raises(NotFound):
        store.add_reply(99, ForumReply(author="r", date="2025-01-03", content="ok"))
