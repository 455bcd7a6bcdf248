"""
Marlin demo circuits
====================

A circuit is an ordered list of named variables plus an ordered list of
multiplication gates.

**Gate form**:
  Every constraint is one multiplication gate

    left × right = output

  where each operand is an *expression*: a numeric literal (3, 2.5, "7")
  or the name of a variable ("a", "x1").

**Circuit types**:
  | type           | rule checked by the validator          |
  |----------------|----------------------------------------|
  | multiplication | a × b = c  (c is the public output)    |
  | quadratic      | a² + b² = c²                           |
  | hash           | non-empty, bounded preimage (stub)     |
  | custom         | every gate in the constraint list      |

Usage:
    >>> circuit = CircuitDescriptor(
    ...     [Variable("a", PRIVATE, 3), Variable("b", PRIVATE, 5), Variable("c", PUBLIC, 15)],
    ...     [Constraint("a", "b", "c")])
    >>> circuit.bindings()
    {'a': 3, 'b': 5, 'c': 15}
"""

from enum import Enum

from zkp.marlin.errors import InvalidCircuitData

PUBLIC = "public"
PRIVATE = "private"

OPERANDS = ("left", "right", "output")


class CircuitType(Enum):
    MULTIPLICATION = "multiplication"
    QUADRATIC = "quadratic"
    HASH = "hash"
    CUSTOM = "custom"
    # unknown or legacy tag, accepted permissively unless strict
    UNSPECIFIED = "unspecified"

    @classmethod
    def parse(cls, tag):
        """str tag (or CircuitType) -> CircuitType. Unknown tags map to UNSPECIFIED."""
        if isinstance(tag, cls):
            return tag
        if tag is None:
            return cls.UNSPECIFIED
        try:
            return cls(str(tag).strip().lower())
        except ValueError:
            return cls.UNSPECIFIED


class Variable:
    """Named circuit variable. kind is PUBLIC or PRIVATE."""

    __slots__ = ("name", "kind", "value")

    def __init__(self, name, kind=PRIVATE, value=0):
        if kind not in (PUBLIC, PRIVATE):
            raise InvalidCircuitData("variable '{}': unknown kind '{}'".format(name, kind))
        self.name = name
        self.kind = kind
        self.value = value

    def __eq__(self, other):
        if not isinstance(other, Variable):
            return NotImplemented
        return (self.name, self.kind, self.value) == (other.name, other.kind, other.value)

    def __repr__(self):
        return "Variable({!r}, {!r}, {!r})".format(self.name, self.kind, self.value)


class Constraint:
    """One multiplication gate: left × right = output.

    Operands may be None (or ""), in which case the constraint is
    incomplete. The validator reports it and does not evaluate it.
    """

    __slots__ = OPERANDS

    def __init__(self, left=None, right=None, output=None):
        self.left = left
        self.right = right
        self.output = output

    def missing_operands(self):
        """Names of operands that are absent."""
        return [name for name in OPERANDS if _is_missing(getattr(self, name))]

    def is_complete(self):
        return not self.missing_operands()

    def __eq__(self, other):
        if not isinstance(other, Constraint):
            return NotImplemented
        return (self.left, self.right, self.output) == (other.left, other.right, other.output)

    def __repr__(self):
        return "Constraint({!r}, {!r}, {!r})".format(self.left, self.right, self.output)


def _is_missing(operand):
    if operand is None:
        return True
    return isinstance(operand, str) and operand.strip() == ""


class CircuitDescriptor:
    """Immutable circuit description: variables + constraints.

    Variable names must be unique within the circuit.
    """

    def __init__(self, variables, constraints):
        variables = tuple(variables)
        seen = set()
        for v in variables:
            if v.name in seen:
                raise InvalidCircuitData("duplicate variable name '{}'".format(v.name))
            seen.add(v.name)
        self._variables = variables
        self._constraints = tuple(constraints)

    @property
    def variables(self):
        return self._variables

    @property
    def constraints(self):
        return self._constraints

    @property
    def num_constraints(self):
        return len(self._constraints)

    @property
    def num_variables(self):
        return len(self._variables)

    def bindings(self):
        """Variable name -> value mapping used for evaluation."""
        return {v.name: v.value for v in self._variables}

    def public_inputs(self):
        return {v.name: v.value for v in self._variables if v.kind == PUBLIC}

    def witness(self):
        return {v.name: v.value for v in self._variables if v.kind == PRIVATE}
