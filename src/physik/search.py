# -----------------------------------------------------------------------------
# Search over the formula registry and topic index
# Case-insensitive substring match; formulas and topics are matched
# independently and returned in catalog order.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List

from .catalog import Catalog
from .errors import BadRequest
from .types import FormulaDefinition, TopicArticle


@dataclass
class SearchResults:
    formulas: List[FormulaDefinition]
    topics: List[TopicArticle]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formulas": [f.to_dict() for f in self.formulas],
            "topics": [t.to_dict() for t in self.topics],
        }


def _formula_hit(f: FormulaDefinition, q: str) -> bool:
    return q in f.name.lower() or q in f.explanation.lower()


def _topic_hit(t: TopicArticle, q: str) -> bool:
    return (q in t.name.lower()
            or q in t.short_description.lower()
            or q in t.introduction.lower())


def search(catalog: Catalog, query: str | None) -> SearchResults:
    if not query:
        raise BadRequest("Suchbegriff erforderlich")
    q = query.lower()
    return SearchResults(
        formulas=[f for f in catalog.formulas if _formula_hit(f, q)],
        topics=[t for t in catalog.topics if _topic_hit(t, q)],
    )
