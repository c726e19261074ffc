# -----------------------------------------------------------------------------
# Safe mathematical evaluator (controlled environment)
# Purpose:
#   Evaluate a solve-variant expression string using only whitelisted
#   operators, functions and constants plus caller-supplied numeric variables.
# Semantics:
#   - Parsed with Python's AST and walked under a strict whitelist; no eval().
#   - IEEE-754 results instead of exceptions: x/0 gives ±inf (0/0 gives nan),
#     sqrt/asin/acos outside their domain give nan, overflow gives inf.
#     Callers decide what a non-finite value means.
# -----------------------------------------------------------------------------

from __future__ import annotations
import ast
import math
from functools import lru_cache
from typing import Callable, Dict, Mapping, Set

_NAN = float("nan")
_INF = float("inf")


def _ieee(fn: Callable[..., float]) -> Callable[..., float]:
    # Wrap a math function so domain errors become nan and overflow becomes inf.
    def wrapped(*args: float) -> float:
        try:
            return float(fn(*args))
        except ValueError:
            return _NAN
        except OverflowError:
            return _INF
    wrapped.__name__ = getattr(fn, "__name__", "fn")
    return wrapped


# Whitelisted functions; only these names are callable from expressions
_ALLOWED_FUNCS: Dict[str, Callable[..., float]] = {
    "sqrt": _ieee(math.sqrt),
    "sin": _ieee(math.sin),
    "cos": _ieee(math.cos),
    "tan": _ieee(math.tan),
    "asin": _ieee(math.asin),
    "acos": _ieee(math.acos),
    "atan": _ieee(math.atan),
    "abs": _ieee(abs),
    "exp": _ieee(math.exp),
    "log": _ieee(math.log),
}
# Whitelisted constants
_ALLOWED_CONSTS = {
    "pi": math.pi,
    "e": math.e,
}

_ALLOWED_BINOPS = (ast.Add, ast.Sub, ast.Mult, ast.Div, ast.Pow)
_ALLOWED_UNARYOPS = (ast.UAdd, ast.USub)


class ExpressionError(ValueError): pass


def _div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return _NAN
        return math.copysign(_INF, a) * math.copysign(1.0, b)
    return a / b


def _pow(a: float, b: float) -> float:
    if a == 0 and b < 0:
        return _INF
    try:
        return math.pow(a, b)
    except ValueError:
        # negative base with fractional exponent
        return _NAN
    except OverflowError:
        return _INF


def _check(node: ast.AST) -> None:
    """Reject any node outside the whitelist (run once per expression)."""
    if isinstance(node, ast.Expression):
        _check(node.body)
    elif isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ExpressionError("Unsupported constant type.")
    elif isinstance(node, ast.Name):
        pass
    elif isinstance(node, ast.BinOp):
        if not isinstance(node.op, _ALLOWED_BINOPS):
            raise ExpressionError("Unsupported operator.")
        _check(node.left)
        _check(node.right)
    elif isinstance(node, ast.UnaryOp):
        if not isinstance(node.op, _ALLOWED_UNARYOPS):
            raise ExpressionError("Unsupported unary operator.")
        _check(node.operand)
    elif isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _ALLOWED_FUNCS:
            raise ExpressionError("Unsupported function.")
        if node.keywords:
            raise ExpressionError("Keyword arguments are not supported.")
        for arg in node.args:
            _check(arg)
    else:
        raise ExpressionError(f"Unsupported expression element: {type(node).__name__}")


@lru_cache(maxsize=None)
def compile_expression(expr: str) -> ast.Expression:
    """
    Parse and whitelist-check an expression once; cached per expression text.
    Raises ExpressionError for syntax errors or disallowed constructs.
    """
    try:
        tree = ast.parse(expr.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {expr!r}") from e
    _check(tree)
    return tree


def variable_names(expr: str) -> Set[str]:
    # Free names of an expression, excluding called function names and constants.
    tree = compile_expression(expr)
    funcs = {n.func.id for n in ast.walk(tree) if isinstance(n, ast.Call)}
    names = {n.id for n in ast.walk(tree) if isinstance(n, ast.Name)}
    return names - funcs - set(_ALLOWED_CONSTS)


def _eval(node: ast.AST, env: Mapping[str, float]) -> float:
    if isinstance(node, ast.Expression):
        return _eval(node.body, env)
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.Name):
        if node.id in env:
            return float(env[node.id])
        if node.id in _ALLOWED_CONSTS:
            return _ALLOWED_CONSTS[node.id]
        raise ExpressionError(f"Unknown variable: {node.id}")
    if isinstance(node, ast.UnaryOp):
        val = _eval(node.operand, env)
        return -val if isinstance(node.op, ast.USub) else +val
    if isinstance(node, ast.BinOp):
        left = _eval(node.left, env)
        right = _eval(node.right, env)
        if isinstance(node.op, ast.Add):  return left + right
        if isinstance(node.op, ast.Sub):  return left - right
        if isinstance(node.op, ast.Mult): return left * right
        if isinstance(node.op, ast.Div):  return _div(left, right)
        return _pow(left, right)
    if isinstance(node, ast.Call):
        args = [_eval(a, env) for a in node.args]
        return _ALLOWED_FUNCS[node.func.id](*args)
    raise ExpressionError(f"Unsupported expression element: {type(node).__name__}")


def safe_eval(expr: str, vars: Mapping[str, float]) -> float:
    """
    Evaluate a numeric expression safely with restricted environment.

    Parameters
    ----------
    expr : str
        A mathematical expression, e.g. "asin(n_1 * sin(alpha) / n_2)"
    vars : Mapping[str, float]
        Variable values to substitute into the expression.

    Returns
    -------
    float
        The evaluated result; may be inf, -inf or nan.
    """
    return _eval(compile_expression(expr), vars)
