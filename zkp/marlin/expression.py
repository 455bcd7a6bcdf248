"""
Constraint operand evaluator
============================

Resolves one constraint operand against a variable binding.

Resolution order:
  1. numeric literal (int / float)       -> returned unchanged
  2. name present in the bindings        -> bound value
  3. string that parses as a number      -> parsed value ("7" -> 7, "2.5" -> 2.5)
  4. anything else                       -> 0  (fallback)

The fallback keeps a malformed or unknown token from aborting a whole
verification run. It is a defined default, not an error. Every fallback is
tagged with source FALLBACK so callers can report it.

Usage:
    >>> evaluate("a", {"a": 3})
    3
    >>> resolve("zz", {}).is_fallback
    True
"""

import logging
import math
from collections import namedtuple

logger = logging.getLogger(__name__)

LITERAL = "literal"
VARIABLE = "variable"
PARSED = "parsed"
FALLBACK = "fallback"

FALLBACK_VALUE = 0


class Evaluation(namedtuple("Evaluation", ["value", "source", "expr"])):
    __slots__ = ()

    @property
    def is_fallback(self):
        return self.source == FALLBACK


def _is_number(expr):
    # bool is an int subclass but is not a numeric operand
    return isinstance(expr, (int, float)) and not isinstance(expr, bool)


def _parse_number(text):
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def to_number(value):
    """Number or numeric string -> number, anything else -> None."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        return _parse_number(value)
    return None


def resolve(expr, bindings):
    """Resolve an operand and report which rule produced the value."""
    if _is_number(expr):
        return Evaluation(expr, LITERAL, expr)
    if isinstance(expr, str):
        if expr in bindings:
            bound = to_number(bindings[expr])
            if bound is not None:
                return Evaluation(bound, VARIABLE, expr)
        else:
            parsed = _parse_number(expr)
            if parsed is not None:
                return Evaluation(parsed, PARSED, expr)
    logger.debug("operand %r did not resolve, using %s", expr, FALLBACK_VALUE)
    return Evaluation(FALLBACK_VALUE, FALLBACK, expr)


def evaluate(expr, bindings):
    return resolve(expr, bindings).value
