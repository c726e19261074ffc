import pytest

from physik.config import DEFAULT_CATALOG_DIR
from physik.errors import BadRequest, CatalogError, NotFound
from physik.forum import FORUM_SEED_FILE, ForumService, load_forum_seed, parse_topic_id
from physik.stores import InMemoryForumStore


@pytest.fixture
def forum():
    seed = load_forum_seed(DEFAULT_CATALOG_DIR / FORUM_SEED_FILE)
    return ForumService(InMemoryForumStore(seed), today=lambda: "2025-04-01")


def test_seed_threads(forum):
    topics = forum.list_topics()
    assert [t.id for t in topics] == [1, 2, 3, 4]
    first = forum.get_topic("1")
    assert first.author == "PhysikFan"
    assert first.replies and first.replies[0].author == "PhysikLehrer"
    assert forum.get_topic(2).replies == []


def test_create_topic_gets_next_id_and_today(forum):
    topic = forum.create_topic("Frage", "basic", "Lea", "Wie funktioniert ein Hebel?")
    assert topic.id == 5
    assert topic.date == "2025-04-01"
    assert topic.replies == []
    assert forum.get_topic(5) is topic


def test_create_topic_requires_all_fields(forum):
    with pytest.raises(BadRequest) as exc:
        forum.create_topic("Frage", "", "Lea", "Text")
    assert exc.value.message == "Alle Felder mÃ¼ssen ausgefÃ¼llt werden"


def test_add_reply(forum):
    reply = forum.add_reply("2", "Max", "Siehe Lorentz-Transformation.")
    assert reply.date == "2025-04-01"
    assert forum.get_topic(2).replies[-1] == reply
    with pytest.raises(BadRequest) as exc:
        forum.add_reply("2", "Max", "")
    assert exc.value.message == "Autor und Inhalt sind erforderlich"
    with pytest.raises(NotFound):
        forum.add_reply("99", "Max", "Hallo")


@pytest.mark.parametrize("raw", ["abc", "1.5", None, "1_0", " 3 ", "+3", "٣", "", True])
def test_non_integer_topic_id_is_not_found(raw):
    with pytest.raises(NotFound):
        parse_topic_id(raw)


def test_missing_seed_file_means_no_threads(tmp_path):
    assert load_forum_seed(tmp_path / "missing.yaml") == []


def test_malformed_seed_entry(tmp_path):
    path = tmp_path / "forum.yaml"
    path.write_text("topics:\n  - {id: 1, title: ohne Rest}\n", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_forum_seed(path)


def test_plain_topic_ids_parse():
    assert parse_topic_id("3") == 3
    assert parse_topic_id("03") == 3
    assert parse_topic_id(4) == 4
