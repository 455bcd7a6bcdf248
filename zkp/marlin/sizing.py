"""
Artifact sizing model
=====================

Deterministic functions from circuit size to the shape of the synthetic
proof and to the simulated latency of each protocol stage.

**Proof shape**:
  proof_size_bytes(n)   = BASE_PROOF_SIZE + floor(√n · PROOF_SIZE_UNIT)
  evaluation_count(n)   = clamp(floor(n / 100), 4, 16)
  commitment_rounds(n)  = [3, 2, 1] commitments per round,
                          rounds 0 and 1 gain one more when n > 10000

**Simulated latency**:
  Setup, Index and Prove cost grows with the size class of the circuit
  (bucket boundaries 100 / 1000 / 10000 constraints). Verify cost grows
  logarithmically in the number of constraints. Only the ordering is
  meaningful. The millisecond values themselves are arbitrary.

  | size class | constraints   | setup | index | prove |
  |------------|---------------|-------|-------|-------|
  | 0          | ≤ 100         |   20  |   10  |   30  |
  | 1          | 101 .. 1000   |   80  |   40  |  120  |
  | 2          | 1001 .. 10000 |  320  |  160  |  480  |
  | 3          | > 10000       | 1280  |  640  | 1920  |

Usage:
    >>> proof_size_bytes(100)
    1344
    >>> commitment_rounds(20000)
    [4, 3, 1]
"""

import math

BASE_PROOF_SIZE = 1024
PROOF_SIZE_UNIT = 32

MIN_EVALUATIONS = 4
MAX_EVALUATIONS = 16
CONSTRAINTS_PER_EVALUATION = 100

BASE_ROUND_SHAPE = (3, 2, 1)
LARGE_CIRCUIT_THRESHOLD = 10000

SIZE_CLASS_THRESHOLDS = (100, 1000, 10000)
SETUP_MS = (20, 80, 320, 1280)
INDEX_MS = (10, 40, 160, 640)
PROVE_MS = (30, 120, 480, 1920)
VERIFY_BASE_MS = 5
VERIFY_LOG_MS = 2


def _check_size(n):
    """Reject negative sizes. Zero is allowed (an empty circuit)."""
    if n < 0:
        raise ValueError("circuit size must be non-negative, got {}".format(n))
    return n


def proof_size_bytes(num_constraints):
    """BASE_PROOF_SIZE + floor(√n · PROOF_SIZE_UNIT). Grows with n, sub-linearly."""
    n = _check_size(num_constraints)
    return BASE_PROOF_SIZE + int(math.floor(math.sqrt(n) * PROOF_SIZE_UNIT))


def evaluation_count(num_constraints):
    """One evaluation per 100 constraints, clamped to [MIN_EVALUATIONS, MAX_EVALUATIONS]."""
    n = _check_size(num_constraints)
    return max(MIN_EVALUATIONS, min(MAX_EVALUATIONS, n // CONSTRAINTS_PER_EVALUATION))


def commitment_rounds(num_constraints):
    """Commitments per round, e.g. [3, 2, 1]."""
    n = _check_size(num_constraints)
    shape = list(BASE_ROUND_SHAPE)
    if n > LARGE_CIRCUIT_THRESHOLD:
        shape[0] += 1
        shape[1] += 1
    return shape


def size_class(size):
    """0..3, the number of thresholds `size` exceeds."""
    n = _check_size(size)
    return sum(1 for t in SIZE_CLASS_THRESHOLDS if n > t)


def setup_time_ms(num_constraints, num_variables=0, num_non_zero=0):
    """Setup latency, bucketed by the largest of the three dimensions."""
    return SETUP_MS[size_class(max(num_constraints, num_variables, num_non_zero))]


def index_time_ms(num_constraints):
    """Index latency for the size class of `num_constraints`."""
    return INDEX_MS[size_class(num_constraints)]


def prove_time_ms(num_constraints):
    """Prove latency for the size class of `num_constraints`."""
    return PROVE_MS[size_class(num_constraints)]


def verify_time_ms(num_constraints):
    """VERIFY_BASE_MS + floor(VERIFY_LOG_MS · log2(n + 1)). Logarithmic in n."""
    n = _check_size(num_constraints)
    return VERIFY_BASE_MS + int(math.floor(VERIFY_LOG_MS * math.log2(n + 1)))


def stage_timings(num_constraints, num_variables=0, num_non_zero=0):
    """All four simulated stage latencies in one dict."""
    return {
        "setup": setup_time_ms(num_constraints, num_variables, num_non_zero),
        "index": index_time_ms(num_constraints),
        "prove": prove_time_ms(num_constraints),
        "verify": verify_time_ms(num_constraints),
    }
