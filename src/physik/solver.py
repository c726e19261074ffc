# -----------------------------------------------------------------------------
# Solver: variant dispatch for a single formula
# Responsibilities:
#   • Parse the caller's known values (strings or numbers) into floats;
#     anything unparseable counts as absent
#   • Scan the formula's solve-variants in declaration order and pick the
#     first whose target/requires/excludes match
#   • Evaluate it (degrees in, radians for trig, degrees out) and report
#     solved / non_finite / unsolvable together with a trace
# No symbolic algebra happens here: every rearrangement is declared in the
# catalog.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .catalog import Catalog
from .safe_eval import safe_eval
from .tracer import Tracer
from .types import FormulaDefinition, SolveVariant

logger = logging.getLogger(__name__)

SOLVED = "solved"
NON_FINITE = "non_finite"
UNSOLVABLE = "unsolvable"


def parse_number(raw: Any) -> Optional[float]:
    """
    Lenient numeric parse: returns None for anything that is not a finite
    number (None, booleans, blank or malformed strings, 'nan', 'inf').
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        val = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            val = float(text)
        except ValueError:
            return None
    else:
        return None
    return val if math.isfinite(val) else None


def parse_known_values(raw: Mapping[str, Any] | None) -> Dict[str, float]:
    # Keep only entries that parse; the rest are treated as not supplied.
    out: Dict[str, float] = {}
    for sym, value in (raw or {}).items():
        num = parse_number(value)
        if num is not None:
            out[str(sym)] = num
    return out


@dataclass
class SolverResult:
    # Structured response used by the API layer
    formula_id: str
    target: str
    value: float | None = None
    unit: str | None = None
    variant: SolveVariant | None = None
    trace: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def solved(self) -> bool:
        return self.variant is not None

    @property
    def finite(self) -> bool:
        return self.solved and self.value is not None and math.isfinite(self.value)

    @property
    def status(self) -> str:
        if not self.solved:
            return UNSOLVABLE
        return SOLVED if self.finite else NON_FINITE


class Solver:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    @staticmethod
    def select_variant(formula: FormulaDefinition, target: str,
                       known: Mapping[str, float]) -> Optional[SolveVariant]:
        """First variant (declaration order) producing `target` from what is known."""
        present = frozenset(known)
        return next((v for v in formula.variants if v.matches(target, present)), None)

    @staticmethod
    def evaluate(formula: FormulaDefinition, variant: SolveVariant,
                 known: Mapping[str, float]) -> float:
        """
        Evaluate one variant over parsed values. Angle-valued inputs are
        converted to radians right before evaluation and angle-valued
        outputs back to degrees. inf/nan are returned as-is.
        A variant whose expression is a bare input of the same kind (e.g.
        reflection: beta = alpha) hands that input back unchanged.
        """
        source = variant.expr.strip()
        if source in variant.requires:
            in_spec, out_spec = formula.variable(source), formula.variable(variant.produces)
            if (in_spec is not None and out_spec is not None
                    and in_spec.is_angle == out_spec.is_angle):
                return known[source]

        env: Dict[str, float] = {}
        for sym in variant.requires:
            spec = formula.variable(sym)
            val = known[sym]
            env[sym] = math.radians(val) if spec is not None and spec.is_angle else val
        result = safe_eval(variant.expr, env)
        out_spec = formula.variable(variant.produces)
        if out_spec is not None and out_spec.is_angle:
            result = math.degrees(result)
        return result

    def solve(self, formula_id: str, target: str,
              known_values: Mapping[str, Any] | None) -> SolverResult:
        """
        Resolve the formula (NotFound if unknown), parse inputs, select the
        first matching variant and evaluate it. "No variant matches" is a
        normal outcome reported with status 'unsolvable'.
        """
        formula = self.catalog.get_by_id(formula_id)
        trace = Tracer()

        known = parse_known_values(known_values)
        ignored = sorted(str(k) for k in (known_values or {}) if str(k) not in known)
        trace.add("inputs_parsed", {"accepted": dict(sorted(known.items())), "ignored": ignored})

        variant = self.select_variant(formula, target, known)
        if variant is None:
            trace.add("no_variant", {
                "formula": formula.id,
                "target": target,
                "known": sorted(known),
                "candidates": [v.to_dict() for v in formula.variants if v.produces == target],
            })
            logger.debug("solve %s for %s: unsolvable with %s", formula.id, target, sorted(known))
            return SolverResult(formula_id=formula.id, target=target, trace=trace.steps())

        trace.add("variant_selected", {
            "formula": formula.id,
            "index": formula.variants.index(variant),
            **variant.to_dict(),
        })
        value = self.evaluate(formula, variant, known)
        trace.add("numeric_eval", {
            "expr": variant.expr,
            "inputs": {s: known[s] for s in sorted(variant.requires)},
            "result": value,
            "unit": variant.unit,
        })
        if not math.isfinite(value):
            trace.add("non_finite", {"value": value})
        return SolverResult(formula_id=formula.id, target=target, value=value,
                            unit=variant.unit, variant=variant, trace=trace.steps())

    def solvable_targets(self, formula_id: str, known_values: Mapping[str, Any] | None) -> List[str]:
        """Symbols that some variant can produce from the given inputs, in declaration order."""
        formula = self.catalog.get_by_id(formula_id)
        present = frozenset(parse_known_values(known_values))
        targets: List[str] = []
        for v in formula.variants:
            if v.produces not in targets and v.matches(v.produces, present):
                targets.append(v.produces)
        return targets
