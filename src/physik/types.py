# -----------------------------------------------------------------------------
# Types module: Shared dataclasses for the formula collection
# Purpose:
#   Define structured representations for formulas, their variables and
#   solve-variants, topic articles, users, sessions and forum threads used
#   across the catalog, solver, stores and API layer.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class Category(str, Enum):
    MECHANICS = "mechanics"
    ELECTRICITY = "electricity"
    OPTICS = "optics"
    THERMODYNAMICS = "thermodynamics"
    MODERN = "modern"


class Level(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


# Units that mark a variable as angle-valued (degrees at the interface).
ANGLE_UNITS = frozenset({"°"})


@dataclass(frozen=True)
class VariableSpec:
    """
    Metadata for a variable in a formula.
    - symbol: short algebraic name, unique within its formula (e.g. 'v_0')
    - name: German display name
    - unit: display unit string (opaque to the solver except for '°')
    - default_value: suggested input for constants (e.g. '9.81' for g)
    """
    symbol: str
    name: str
    unit: str
    default_value: str | None = None

    @property
    def is_angle(self) -> bool:
        return self.unit in ANGLE_UNITS

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"symbol": self.symbol, "name": self.name, "unit": self.unit}
        if self.default_value is not None:
            out["defaultValue"] = self.default_value
        return out


@dataclass(frozen=True)
class WorkedExample:
    # Display-only problem/solution pair.
    problem: str
    solution: str

    def to_dict(self) -> Dict[str, str]:
        return {"problem": self.problem, "solution": self.solution}


@dataclass(frozen=True)
class SolveVariant:
    """
    One declared way to compute `produces` from exactly the symbols in
    `requires`. The variant only applies while every symbol in `excludes`
    is absent, e.g. "acceleration from s and t when v_0 is not given".
    Example:
        produces: "I", requires: {"U", "R"}, expr: "U / R", unit: "A"
    """
    produces: str
    requires: FrozenSet[str]
    expr: str
    unit: str
    excludes: FrozenSet[str] = frozenset()
    latex: str = ""   # rendered rearrangement, filled in by the catalog loader

    @property
    def key(self) -> Tuple[str, FrozenSet[str], FrozenSet[str]]:
        return (self.produces, self.requires, self.excludes)

    def matches(self, target: str, known: FrozenSet[str] | set) -> bool:
        return (self.produces == target
                and self.requires <= known
                and not (self.excludes & known))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "produces": self.produces,
            "requires": sorted(self.requires),
            "excludes": sorted(self.excludes),
            "unit": self.unit,
            "latex": self.latex,
        }


@dataclass(frozen=True)
class FormulaDefinition:
    """
    Immutable catalog entry.
    Attributes:
        - variables: ordered variable specs (declaration order is display order)
        - variants: ordered solve-variants; the first match wins
        - level: optional difficulty tag
    """
    id: str
    name: str
    latex: str
    category: Category
    variables: Tuple[VariableSpec, ...]
    explanation: str
    examples: Tuple[WorkedExample, ...] = ()
    variants: Tuple[SolveVariant, ...] = ()
    level: Level | None = None

    @property
    def symbols(self) -> List[str]:
        return [v.symbol for v in self.variables]

    def variable(self, symbol: str) -> Optional[VariableSpec]:
        return next((v for v in self.variables if v.symbol == symbol), None)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "latex": self.latex,
            "category": self.category.value,
        }
        if self.level is not None:
            out["level"] = self.level.value
        out.update({
            "variables": [v.to_dict() for v in self.variables],
            "explanation": self.explanation,
            "examples": [e.to_dict() for e in self.examples],
            "variants": [v.to_dict() for v in self.variants],
        })
        return out


@dataclass(frozen=True)
class TopicArticle:
    """
    Static topic article. `explanation` and `examples` are opaque rich-text
    (HTML) strings. Related ids are soft references and may dangle.
    """
    id: str
    name: str
    category: Category
    short_description: str
    introduction: str
    explanation: str = ""
    examples: str = ""
    related_formulas: Tuple[str, ...] = ()
    related_topics: Tuple[str, ...] = ()
    level: Level | None = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
        }
        if self.level is not None:
            out["level"] = self.level.value
        out.update({
            "shortDescription": self.short_description,
            "introduction": self.introduction,
            "explanation": self.explanation,
            "examples": self.examples,
            "relatedFormulas": list(self.related_formulas),
            "relatedTopics": list(self.related_topics),
        })
        return out


@dataclass(frozen=True)
class User:
    id: str
    username: str
    password_hash: str
    email: str

    def to_public(self) -> Dict[str, str]:
        # Never expose the hash
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass(frozen=True)
class SessionRecord:
    token: str
    user_id: str
    username: str
    created_at: float
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class ForumReply:
    author: str
    date: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"author": self.author, "date": self.date, "content": self.content}


@dataclass
class ForumTopic:
    id: int
    title: str
    category: str
    author: str
    date: str
    content: str
    replies: List[ForumReply] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "author": self.author,
            "date": self.date,
            "content": self.content,
            "replies": [r.to_dict() for r in self.replies],
        }
