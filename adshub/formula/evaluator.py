"""Ads Hub — Formula Evaluator.

Walks the expression tree from the parser against a name → value mapping.
Every failure (syntax, unknown name, division by zero, non-finite result)
collapses to ``None``: callers render it as "cannot display", never as 0.
"""

import math
from typing import Callable, Dict, Mapping, Optional

from adshub.core.metric_registry import DEFAULT_PROFILE, FormulaProfile
from adshub.core.logging import get_logger
from adshub.formula.errors import FormulaSyntaxError, UnresolvedVariableError
from adshub.formula.parser import (
    BinaryOp,
    FunctionCall,
    Literal,
    Node,
    UnaryOp,
    Variable,
    parse_formula,
)

logger = get_logger("formula.evaluator")


def _round_half_up(value: float) -> float:
    # 2.5 -> 3, -2.5 -> -2
    return math.floor(value + 0.5)


FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "abs": abs,
    # Calls take a single argument, so min/max return it unchanged
    "min": lambda value: value,
    "max": lambda value: value,
    "round": _round_half_up,
    "floor": math.floor,
    "ceil": math.ceil,
}


def _apply(node: Node, inputs: Mapping[str, float]) -> float:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Variable):
        if node.name not in inputs:
            raise UnresolvedVariableError(node.name)
        return float(inputs[node.name])
    if isinstance(node, UnaryOp):
        operand = _apply(node.operand, inputs)
        return -operand if node.op == "-" else operand
    if isinstance(node, BinaryOp):
        left = _apply(node.left, inputs)
        right = _apply(node.right, inputs)
        if node.op == "+":
            return left + right
        if node.op == "-":
            return left - right
        if node.op == "*":
            return left * right
        return left / right
    if isinstance(node, FunctionCall):
        fn = FUNCTIONS.get(node.name)
        if fn is None:
            raise ValueError(f"Unsupported function {node.name!r}")
        return float(fn(_apply(node.argument, inputs)))
    raise TypeError(f"Unknown node {node!r}")


def evaluate_tree(node: Node, inputs: Mapping[str, float]) -> Optional[float]:
    """Evaluate a parsed formula. Returns None on any failure."""
    try:
        result = _apply(node, inputs)
    except UnresolvedVariableError as e:
        logger.debug(f"Formula evaluation skipped: {e}")
        return None
    except (ArithmeticError, ValueError, TypeError) as e:
        logger.debug(f"Formula evaluation failed: {e}")
        return None
    except RecursionError:
        # Long operator chains build left-deep trees
        logger.debug("Formula evaluation failed: expression tree too deep")
        return None

    if not math.isfinite(result):
        return None
    return result


def evaluate_formula(
    formula: str,
    inputs: Mapping[str, float],
    profile: FormulaProfile = DEFAULT_PROFILE,
) -> Optional[float]:
    """Safely evaluate a formula string with the given metric values."""
    try:
        tree = parse_formula(formula, profile)
    except (FormulaSyntaxError, RecursionError) as e:
        logger.debug(f"Formula not parseable: {e}")
        return None
    return evaluate_tree(tree, inputs)
