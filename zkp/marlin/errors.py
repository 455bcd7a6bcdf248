from enum import Enum


class ErrorKind(Enum):
    INCOMPLETE_CONSTRAINT = "IncompleteConstraint"
    CONTRADICTORY_CONSTRAINT = "ContradictoryConstraint"
    CONSTRAINT_MISMATCH = "ConstraintMismatch"
    INVALID_CIRCUIT_DATA = "InvalidCircuitData"
    UNKNOWN_CIRCUIT_TYPE = "UnknownCircuitType"
    # not an error: the evaluator's documented default path
    EVALUATION_FALLBACK = "EvaluationFallback"


class MarlinError(Exception):
    """Base class for errors raised by the Marlin demo."""
    kind = None


class StateError(MarlinError):
    """A pipeline stage was called before its precondition stage ran."""

    def __init__(self, operation, missing):
        self.operation = operation
        self.missing = missing
        super().__init__(
            "cannot run '{}': '{}' has not been run".format(operation, missing))


class InvalidCircuitData(MarlinError):
    kind = ErrorKind.INVALID_CIRCUIT_DATA


class ProcessError(MarlinError):
    """External program exited abnormally or could not be started."""

    def __init__(self, message, exit_code=None, output=""):
        self.exit_code = exit_code
        self.output = output
        super().__init__(message)
