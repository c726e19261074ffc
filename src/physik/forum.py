# -----------------------------------------------------------------------------
# Forum: list/read threads, open a thread, append a reply.
# Threads are seeded from forum_seed.yaml in the catalog directory.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List

import yaml

from .errors import BadRequest, CatalogError, NotFound
from .stores import ForumStore
from .types import ForumReply, ForumTopic

logger = logging.getLogger(__name__)

FORUM_SEED_FILE = "forum_seed.yaml"
_TOPIC_ID = re.compile(r"[0-9]+")


def _utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def load_forum_seed(path: str | Path) -> List[ForumTopic]:
    """
    Read seed threads. Expected shape:
      topics:
        - {id: 1, title, category, author, date, content,
           replies: [{author, date, content}]}
    A missing file yields no threads.
    """
    p = Path(path)
    if not p.exists():
        return []
    doc = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    topics: List[ForumTopic] = []
    for td in doc.get("topics") or []:
        try:
            topics.append(ForumTopic(
                id=int(td["id"]),
                title=str(td["title"]),
                category=str(td["category"]),
                author=str(td["author"]),
                date=str(td["date"]),
                content=str(td["content"]),
                replies=[ForumReply(author=str(r["author"]), date=str(r["date"]),
                                    content=str(r["content"]))
                         for r in td.get("replies") or []],
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Malformed forum seed entry: {e}")
    return topics


def parse_topic_id(raw: str | int) -> int:
    # Only plain ASCII digits name a thread ("1_0", " 3 ", "+3" do not)
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if not isinstance(raw, str) or not _TOPIC_ID.fullmatch(raw):
        raise NotFound("Forenthema nicht gefunden")
    return int(raw)


class ForumService:
    def __init__(self, store: ForumStore, today: Callable[[], str] = _utc_today):
        self.store = store
        self._today = today

    def list_topics(self) -> List[ForumTopic]:
        return self.store.list_topics()

    def get_topic(self, topic_id: str | int) -> ForumTopic:
        return self.store.get_topic(parse_topic_id(topic_id))

    def create_topic(self, title: str | None, category: str | None,
                     author: str | None, content: str | None) -> ForumTopic:
        if not title or not category or not author or not content:
            raise BadRequest("Alle Felder müssen ausgefüllt werden")
        topic = self.store.create_topic(title=title, category=category, author=author,
                                        date=self._today(), content=content)
        logger.info("Forum topic %d created by %s", topic.id, author)
        return topic

    def add_reply(self, topic_id: str | int, author: str | None, content: str | None) -> ForumReply:
        if not author or not content:
            raise BadRequest("Autor und Inhalt sind erforderlich")
        reply = self.store.add_reply(parse_topic_id(topic_id),
                                     ForumReply(author=author, date=self._today(), content=content))
        logger.info("Reply added to forum topic %s by %s", topic_id, author)
        return reply
