"""
Constraint validator
====================

Decides whether a circuit's constraints are satisfied by a variable binding
and explains the verdict.

**Dispatch by circuit type**:
  - multiplication: a × b == c, c being the public output
  - quadratic:      a² + b² == c²  (c derived as √(a²+b²) when not asserted)
  - hash:           non-empty preimage no longer than HASH_PREIMAGE_MAX_LENGTH.
                    This is a stub, not a preimage proof.
  - custom:         every gate left × right == output, with contradiction rules
  - unspecified:    passes with one informational entry (reported as an
                    error when strict=True)

**Custom gate rules** (checked in order, first match wins per gate):
  1. left = 1, right = 1, output = 0    -> contradictory (1 × 1 ≠ 0)
  2. left = 0, output ≠ 0               -> violates zero absorption
  3. left × right ≠ output              -> generic mismatch

Errors are collected, never raised. Every gate is checked even after an
earlier one fails, so one call reports the whole failure set.

**Tolerance**:
  Integer values must match exactly. If any value is a float, the values may
  differ by up to FLOAT_TOLERANCE.

Usage:
    >>> report = validate("multiplication", {"a": 3, "b": 5}, [], output=16)
    >>> report.is_valid
    False
    >>> report.errors
    ['multiplication constraint not satisfied: 3 × 5 = 15, but claimed 16']
"""

import hashlib
import math
from collections import namedtuple
from collections.abc import Mapping

from zkp.marlin.circuit import CircuitType, Constraint, OPERANDS
from zkp.marlin.errors import ErrorKind
from zkp.marlin.expression import resolve, to_number

INTEGER_TOLERANCE = 0
FLOAT_TOLERANCE = 0.001
HASH_PREIMAGE_MAX_LENGTH = 256


ValidationIssue = namedtuple("ValidationIssue", ["kind", "message", "constraint"])

# constraint is 1-based, operand is one of OPERANDS
FallbackRecord = namedtuple("FallbackRecord", ["constraint", "operand", "expr", "kind"],
                            defaults=(ErrorKind.EVALUATION_FALLBACK,))


class ValidationReport:
    """Outcome of one validate() call.

    Attributes:
        circuit_type: CircuitType that was checked
        issues: ValidationIssue list, in check order
        checks: human-readable trace of every check performed
        fallbacks: FallbackRecord list, operands that fell back to 0
        expected_result: computed product / hypotenuse, when the type has one
    """

    def __init__(self, circuit_type):
        self.circuit_type = circuit_type
        self.issues = []
        self.checks = []
        self.fallbacks = []
        self.expected_result = None

    @property
    def is_valid(self):
        return not self.issues

    @property
    def errors(self):
        return [issue.message for issue in self.issues]

    def kinds(self):
        return [issue.kind for issue in self.issues]

    def fail(self, kind, message, constraint=None):
        self.issues.append(ValidationIssue(kind, message, constraint))
        self.checks.append("failed: " + message)

    def passed(self, message):
        self.checks.append("passed: " + message)

    def note(self, message):
        self.checks.append(message)


def fmt(value):
    """Format a number for messages. Integral floats print without '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _tolerance(*values):
    if any(isinstance(v, float) for v in values):
        return FLOAT_TOLERANCE
    return INTEGER_TOLERANCE


def _differs(computed, claimed):
    return abs(computed - claimed) > _tolerance(computed, claimed)


def _number(report, bindings, names, label):
    """First numeric binding among `names`. Records an issue if none exists."""
    for name in names:
        if name in bindings:
            value = to_number(bindings[name])
            if value is None:
                report.fail(ErrorKind.INVALID_CIRCUIT_DATA,
                            "{} '{}' is not a number: {!r}".format(label, name, bindings[name]))
            return value
    report.fail(ErrorKind.INVALID_CIRCUIT_DATA,
                "missing {} '{}'".format(label, names[0]))
    return None


def _output_value(report, bindings, output):
    if output is not None:
        value = to_number(output)
        if value is None:
            report.fail(ErrorKind.INVALID_CIRCUIT_DATA,
                        "public output is not a number: {!r}".format(output))
        return value
    return _number(report, bindings, ("c",), "public output")


def _validate_multiplication(report, bindings, output):
    a = _number(report, bindings, ("a",), "witness value")
    b = _number(report, bindings, ("b",), "witness value")
    c = _output_value(report, bindings, output)
    if a is None or b is None or c is None:
        return

    expected = a * b
    report.expected_result = expected
    report.note("checking multiplication constraint: {} × {} = {}".format(fmt(a), fmt(b), fmt(c)))
    if _differs(expected, c):
        report.fail(ErrorKind.CONSTRAINT_MISMATCH,
                    "multiplication constraint not satisfied: {} × {} = {}, but claimed {}".format(
                        fmt(a), fmt(b), fmt(expected), fmt(c)))
    else:
        report.passed("multiplication constraint satisfied: {} × {} = {}".format(
            fmt(a), fmt(b), fmt(c)))


def _validate_quadratic(report, bindings, output):
    a = _number(report, bindings, ("sideA", "a"), "witness value")
    b = _number(report, bindings, ("sideB", "b"), "witness value")
    if a is None or b is None:
        return

    sum_of_squares = a * a + b * b
    hypotenuse = math.sqrt(sum_of_squares)
    report.expected_result = hypotenuse

    if output is None and "c" not in bindings:
        # c is derived, not asserted
        report.passed("derived c = √({}² + {}²) = {}".format(fmt(a), fmt(b), fmt(hypotenuse)))
        return

    c = _output_value(report, bindings, output)
    if c is None:
        return

    if c < 0:
        report.fail(ErrorKind.CONSTRAINT_MISMATCH,
                    "Pythagorean constraint requires a non-negative c, got {}".format(fmt(c)))
        return

    report.note("checking Pythagorean constraint: {}² + {}² = {}²".format(fmt(a), fmt(b), fmt(c)))
    if isinstance(a, int) and isinstance(b, int) and isinstance(c, int):
        satisfied = sum_of_squares == c * c
    else:
        satisfied = abs(hypotenuse - c) <= FLOAT_TOLERANCE
    if satisfied:
        report.passed("Pythagorean constraint satisfied")
    else:
        report.fail(ErrorKind.CONSTRAINT_MISMATCH,
                    "Pythagorean constraint not satisfied: {}² + {}² = {}, but {}² = {}".format(
                        fmt(a), fmt(b), fmt(sum_of_squares), fmt(c), fmt(c * c)))


def _validate_hash(report, bindings):
    preimage = bindings.get("preimage")
    if isinstance(preimage, (bytes, bytearray)):
        data = bytes(preimage)
    elif preimage is None:
        data = b""
    else:
        data = str(preimage).encode("utf-8")

    if not data:
        report.fail(ErrorKind.INVALID_CIRCUIT_DATA, "hash circuit requires a non-empty preimage")
        return
    if len(data) > HASH_PREIMAGE_MAX_LENGTH:
        report.fail(ErrorKind.INVALID_CIRCUIT_DATA,
                    "preimage length {} exceeds maximum {}".format(
                        len(data), HASH_PREIMAGE_MAX_LENGTH))
        return
    report.passed("preimage accepted ({} bytes, sha256 {}...)".format(
        len(data), hashlib.sha256(data).hexdigest()[:16]))


def _as_constraint(item):
    if isinstance(item, Constraint):
        return item
    if isinstance(item, Mapping):
        return Constraint(item.get("left"), item.get("right"), item.get("output"))
    return Constraint()


def _validate_custom(report, bindings, constraints):
    if not constraints:
        report.fail(ErrorKind.INVALID_CIRCUIT_DATA, "no constraints defined")
        return

    for index, item in enumerate(constraints, start=1):
        constraint = _as_constraint(item)
        missing = constraint.missing_operands()
        if missing:
            report.fail(ErrorKind.INCOMPLETE_CONSTRAINT,
                        "constraint {} is incomplete: missing {}".format(index, ", ".join(missing)),
                        index)
            continue

        values = {}
        for operand in OPERANDS:
            ev = resolve(getattr(constraint, operand), bindings)
            if ev.is_fallback:
                report.fallbacks.append(FallbackRecord(index, operand, ev.expr))
            values[operand] = ev.value
        left, right, out = values["left"], values["right"], values["output"]

        if left == 1 and right == 1 and out == 0:
            report.fail(ErrorKind.CONTRADICTORY_CONSTRAINT,
                        "constraint {} is contradictory: 1 × 1 ≠ 0".format(index), index)
        elif left == 0 and out != 0:
            report.fail(ErrorKind.CONTRADICTORY_CONSTRAINT,
                        "constraint {} contradicts zero absorption: 0 × {} must be 0, not {}".format(
                            index, fmt(right), fmt(out)),
                        index)
        elif _differs(left * right, out):
            report.fail(ErrorKind.CONSTRAINT_MISMATCH,
                        "constraint {} not satisfied: {} × {} = {}, but claimed {}".format(
                            index, fmt(left), fmt(right), fmt(left * right), fmt(out)),
                        index)
        else:
            report.passed("constraint {}: {} × {} = {}".format(
                index, fmt(left), fmt(right), fmt(out)))

    if report.is_valid:
        report.passed("all {} custom constraints satisfied".format(len(constraints)))


def validate(circuit_type, bindings, constraints=None, circuit_data=None, output=None,
             strict=False):
    """Check a circuit against a binding.

    Args:
        circuit_type: CircuitType or its string tag
        bindings: variable name -> value (witness and public input merged)
        constraints: Constraint objects (or left/right/output mappings), used by custom
        circuit_data: optional CircuitDescriptor. For custom circuits its variable
                      values fill in names absent from `bindings` (the
                      prove-time values win), and its constraints are used
                      when `constraints` is None.
        output: claimed public output (c). Defaults to bindings["c"].
        strict: report unknown circuit type tags as errors

    Returns:
        ValidationReport
    """
    ctype = CircuitType.parse(circuit_type)
    report = ValidationReport(ctype)
    bindings = dict(bindings or {})

    if ctype is CircuitType.MULTIPLICATION:
        _validate_multiplication(report, bindings, output)
    elif ctype is CircuitType.QUADRATIC:
        _validate_quadratic(report, bindings, output)
    elif ctype is CircuitType.HASH:
        _validate_hash(report, bindings)
    elif ctype is CircuitType.CUSTOM:
        if circuit_data is not None:
            # caller bindings (prove-time witness) win over stored variable values
            merged = circuit_data.bindings()
            merged.update(bindings)
            bindings = merged
            if constraints is None:
                constraints = circuit_data.constraints
        _validate_custom(report, bindings, constraints)
    else:
        tag = circuit_type.value if isinstance(circuit_type, CircuitType) else circuit_type
        if strict:
            report.fail(ErrorKind.UNKNOWN_CIRCUIT_TYPE, "unknown circuit type '{}'".format(tag))
        else:
            report.passed("circuit type '{}' accepted without constraint checks".format(tag))
    return report


def verify_constraint(a, b, c):
    """Quick a × b == c check with no pipeline stage involved.

    Returns a dict with isValid, actualResult, claimedResult and message.
    """
    report = validate(CircuitType.MULTIPLICATION, {"a": a, "b": b}, output=c)
    actual = report.expected_result
    if report.is_valid:
        message = "constraint satisfied: {} × {} = {}".format(fmt(a), fmt(b), fmt(c))
    elif actual is None:
        message = "; ".join(report.errors)
    else:
        message = "constraint failed: {} × {} = {}, not equal to {}".format(
            fmt(a), fmt(b), fmt(actual), fmt(c))
    return {
        "isValid": report.is_valid,
        "actualResult": actual,
        "claimedResult": c,
        "message": message,
    }
