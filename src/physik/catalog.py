# -----------------------------------------------------------------------------
# Catalog loader & accessor
# Purpose: Parse the YAML formula collection and topic articles into frozen,
# typed objects (Formula Registry + Topic Index) used by the solver, search
# and favorites.
# - Depends on .types for typed payloads and .safe_eval for expression checks.
# - Read-only after construction; there is no mutation API.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import yaml
from sympy import Abs, E, Symbol, acos, asin, atan, cos, exp, latex, log, pi, sin, sqrt, sympify, tan
from sympy.core.sympify import SympifyError

from .errors import CatalogError, NotFound
from .safe_eval import ExpressionError, compile_expression, variable_names
from .types import (Category, FormulaDefinition, Level, SolveVariant, TopicArticle,
                    VariableSpec, WorkedExample)

logger = logging.getLogger(__name__)

FORMULAS_FILE = "formulas.yaml"
TOPICS_FILE = "topics.yaml"

# Function names sympify must map onto sympy functions when rendering LaTeX
_SYMPY_FUNCS = {
    "sqrt": sqrt, "sin": sin, "cos": cos, "tan": tan,
    "asin": asin, "acos": acos, "atan": atan,
    "abs": Abs, "exp": exp, "log": log, "pi": pi, "e": E,
}


def _category(raw: Any, where: str) -> Category:
    try:
        return Category(str(raw))
    except ValueError:
        raise CatalogError(f"{where}: unknown category {raw!r}")


def _level(raw: Any, where: str) -> Level | None:
    if raw is None:
        return None
    try:
        return Level(str(raw))
    except ValueError:
        raise CatalogError(f"{where}: unknown level {raw!r}")


def _symbols(raw: Any) -> frozenset:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset([raw])
    return frozenset(str(s) for s in raw)


def _render_latex(variant: SolveVariant, declared: Iterable[str]) -> str:
    """Render 'produces = expr' as LaTeX with sympy (display only)."""
    local: Dict[str, Any] = dict(_SYMPY_FUNCS)
    local.update({s: Symbol(s) for s in declared})
    try:
        expr = sympify(variant.expr, locals=local)
    except (SympifyError, SyntaxError, TypeError) as e:
        raise CatalogError(f"Cannot parse expression {variant.expr!r}: {e}")
    return f"{latex(Symbol(variant.produces))} = {latex(expr)}"


def _check_variant(formula_id: str, declared: List[str], v: SolveVariant) -> None:
    where = f"formula {formula_id!r}, variant for {v.produces!r}"
    known = set(declared)
    if v.produces not in known:
        raise CatalogError(f"{where}: produces undeclared symbol")
    undeclared = (v.requires | v.excludes) - known
    if undeclared:
        raise CatalogError(f"{where}: undeclared symbols {sorted(undeclared)}")
    if v.produces in v.requires:
        raise CatalogError(f"{where}: requires its own output")
    if v.requires & v.excludes:
        raise CatalogError(f"{where}: symbols both required and excluded")
    try:
        compile_expression(v.expr)
    except ExpressionError as e:
        raise CatalogError(f"{where}: {e}")
    used = variable_names(v.expr)
    if used != set(v.requires):
        raise CatalogError(
            f"{where}: expression uses {sorted(used)} but requires {sorted(v.requires)}")


def _parse_formula(fd: Dict[str, Any]) -> FormulaDefinition:
    if "id" not in fd:
        raise CatalogError(f"Formula without id: {fd.get('name')!r}")
    fid = str(fd["id"])
    where = f"formula {fid!r}"

    variables: List[VariableSpec] = []
    for vs in fd.get("variables") or []:
        default = vs.get("defaultValue")
        variables.append(VariableSpec(
            symbol=str(vs["symbol"]),
            name=str(vs["name"]),
            unit=str(vs.get("unit") or ""),
            default_value=None if default is None else str(default),
        ))
    declared = [v.symbol for v in variables]
    if len(set(declared)) != len(declared):
        raise CatalogError(f"{where}: duplicate variable symbols")

    variants: List[SolveVariant] = []
    seen_keys = set()
    for vd in fd.get("variants") or []:
        variant = SolveVariant(
            produces=str(vd["produces"]),
            requires=_symbols(vd.get("requires")),
            excludes=_symbols(vd.get("excludes")),
            expr=str(vd["expr"]),
            unit=str(vd.get("unit") or ""),
        )
        _check_variant(fid, declared, variant)
        if variant.key in seen_keys:
            raise CatalogError(f"{where}: duplicate variant for {variant.produces!r}")
        seen_keys.add(variant.key)
        variants.append(replace(variant, latex=_render_latex(variant, declared)))

    examples = tuple(
        WorkedExample(problem=str(ex["problem"]), solution=str(ex["solution"]))
        for ex in fd.get("examples") or []
    )
    return FormulaDefinition(
        id=fid,
        name=str(fd["name"]),
        latex=str(fd.get("latex", "")),
        category=_category(fd.get("category"), where),
        level=_level(fd.get("level"), where),
        variables=tuple(variables),
        explanation=str(fd.get("explanation", "")),
        examples=examples,
        variants=tuple(variants),
    )


def _parse_topic(td: Dict[str, Any]) -> TopicArticle:
    tid = str(td["id"])
    where = f"topic {tid!r}"
    return TopicArticle(
        id=tid,
        name=str(td["name"]),
        category=_category(td.get("category"), where),
        level=_level(td.get("level"), where),
        short_description=str(td.get("shortDescription", "")),
        introduction=str(td.get("introduction", "")),
        explanation=str(td.get("explanation", "")),
        examples=str(td.get("examples", "")),
        related_formulas=tuple(str(x) for x in td.get("relatedFormulas") or []),
        related_topics=tuple(str(x) for x in td.get("relatedTopics") or []),
    )


def _unique(items: Iterable[Any], kind: str) -> None:
    seen = set()
    for it in items:
        if it.id in seen:
            raise CatalogError(f"Duplicate {kind} id: {it.id!r}")
        seen.add(it.id)


@dataclass(frozen=True)
class Catalog:
    # Formulas and topics in declaration order
    formulas: Tuple[FormulaDefinition, ...]
    topics: Tuple[TopicArticle, ...] = ()

    @staticmethod
    def from_yaml_dict(formulas_doc: Dict[str, Any], topics_doc: Dict[str, Any] | None = None) -> "Catalog":
        """
        Build a Catalog from pre-parsed YAML documents.
        Expected shapes:
          formulas:
            - id: ohms-law
              name: Ohmsches Gesetz
              latex: 'U = R \\cdot I'
              category: electricity          # mechanics|electricity|optics|thermodynamics|modern
              level: basic                   # optional
              variables:
                - {symbol: U, name: Elektrische Spannung, unit: V}
              explanation: ...
              examples: [{problem: ..., solution: ...}]
              variants:
                - {produces: I, requires: [U, R], unit: A, expr: "U / R"}
                - {produces: a, requires: [s, t], excludes: [v_0], ...}
          topics:
            - {id, name, category, level?, shortDescription, introduction,
               explanation, examples, relatedFormulas, relatedTopics}
        """
        formulas = tuple(_parse_formula(fd) for fd in (formulas_doc or {}).get("formulas") or [])
        topics = tuple(_parse_topic(td) for td in (topics_doc or {}).get("topics") or [])
        _unique(formulas, "formula")
        _unique(topics, "topic")
        return Catalog(formulas=formulas, topics=topics)

    @staticmethod
    def from_yaml_text(formulas_text: str, topics_text: str | None = None) -> "Catalog":
        # yaml.safe_load only: no arbitrary object constructors
        topics_doc = yaml.safe_load(topics_text) if topics_text else None
        return Catalog.from_yaml_dict(yaml.safe_load(formulas_text), topics_doc)

    @staticmethod
    def from_dir(path: str | Path) -> "Catalog":
        """Load formulas.yaml (required) and topics.yaml (optional) from a directory."""
        root = Path(path)
        formulas_path = root / FORMULAS_FILE
        if not formulas_path.exists():
            raise CatalogError(f"Formula catalog not found: {formulas_path}")
        topics_path = root / TOPICS_FILE
        topics_text = topics_path.read_text(encoding="utf-8") if topics_path.exists() else None
        catalog = Catalog.from_yaml_text(formulas_path.read_text(encoding="utf-8"), topics_text)
        logger.info("Catalog loaded from %s: %d formulas, %d topics",
                    root, len(catalog.formulas), len(catalog.topics))
        return catalog

    # ---- Formula Registry ---------------------------------------------------
    def get_all(self) -> List[FormulaDefinition]:
        return list(self.formulas)

    def find(self, formula_id: str) -> FormulaDefinition | None:
        return next((f for f in self.formulas if f.id == formula_id), None)

    def get_by_id(self, formula_id: str) -> FormulaDefinition:
        f = self.find(formula_id)
        if f is None:
            raise NotFound("Formel nicht gefunden")
        return f

    # ---- Topic Index ----------------------------------------------------------
    def get_all_topics(self) -> List[TopicArticle]:
        return list(self.topics)

    def get_topic_by_id(self, topic_id: str) -> TopicArticle:
        t = next((t for t in self.topics if t.id == topic_id), None)
        if t is None:
            raise NotFound("Thema nicht gefunden")
        return t
