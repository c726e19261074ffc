# -----------------------------------------------------------------------------
# Solve trace
# Ordered record of what a solve did: which inputs were accepted, which
# variant was chosen (or why none was), and the numeric evaluation. Returned
# to API callers next to the result.
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from typing import Any, Dict, List


def _jsonable(value: Any) -> Any:
    # Non-finite floats are not valid JSON; render them as strings.
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class Tracer:
    def __init__(self):
        self._records: List[tuple[str, Dict[str, Any]]] = []

    def add(self, kind: str, detail: Dict[str, Any]) -> None:
        self._records.append((kind, detail))

    def steps(self) -> List[Dict[str, Any]]:
        """JSON-ready list of {kind, detail}."""
        return [{"kind": kind, "detail": _jsonable(detail)} for kind, detail in self._records]
