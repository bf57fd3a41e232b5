"""Linear hypothesis equations over focal rows.

Rows of a prediction grid are referred to as ``b1, b2, ...`` (1-based), so
``"b1 = b2"`` compares the first two predictions and
``"(b1 - b2) = (b3 - b4)"`` is a difference-in-differences. Equations are
parsed with :mod:`ast`; only linear combinations with numeric coefficients
are accepted.
"""

from __future__ import annotations

import ast
import re
from typing import Tuple

import numpy as np

_B_NAME = re.compile(r"^b(\d+)$")


def _linear(node: ast.AST, n: int) -> Tuple[np.ndarray, float]:
    if isinstance(node, ast.Name):
        match = _B_NAME.match(node.id)
        if match is None:
            raise ValueError(f"Unknown name in hypothesis: {node.id!r} (use b1, b2, ...)")
        idx = int(match.group(1))
        if not 1 <= idx <= n:
            raise ValueError(f"{node.id} is out of range; there are {n} estimates")
        w = np.zeros(n)
        w[idx - 1] = 1.0
        return w, 0.0

    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return np.zeros(n), float(node.value)

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        w, c = _linear(node.operand, n)
        return (-w, -c) if isinstance(node.op, ast.USub) else (w, c)

    if isinstance(node, ast.BinOp):
        lw, lc = _linear(node.left, n)
        rw, rc = _linear(node.right, n)
        if isinstance(node.op, ast.Add):
            return lw + rw, lc + rc
        if isinstance(node.op, ast.Sub):
            return lw - rw, lc - rc
        if isinstance(node.op, ast.Mult):
            if not lw.any():
                return lc * rw, lc * rc
            if not rw.any():
                return rc * lw, rc * lc
        if isinstance(node.op, ast.Div) and not rw.any():
            if rc == 0:
                raise ValueError("Division by zero in hypothesis")
            return lw / rc, lc / rc

    raise ValueError("Hypothesis must be a linear combination of b1, b2, ... with numeric weights")


def hypothesis_weights(expr: str, n: int) -> Tuple[np.ndarray, float]:
    """Weights and constant of ``lhs - rhs`` for an equation over n estimates.

    Args:
        expr: Equation such as "b1 = b2"; without "=" the expression is
            tested against zero
        n: Number of estimates the b-indices refer to

    Returns:
        Tuple of (weights of length n, constant offset)

    Raises:
        ValueError: For syntax errors, unknown names, out-of-range indices or
            nonlinear expressions
    """
    if expr.count("=") > 1:
        raise ValueError(f"Hypothesis may contain at most one '=': {expr!r}")

    if "=" in expr:
        lhs, rhs = expr.split("=")
        source = f"({lhs.strip()}) - ({rhs.strip()})"
    else:
        source = expr

    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid hypothesis {expr!r}: {e.msg}") from e

    weights, constant = _linear(tree.body, n)
    if not weights.any():
        raise ValueError(f"Hypothesis {expr!r} does not reference any estimate")
    return weights, constant
