"""
Marlin demo field elements
==========================

Evaluations and prover messages in the demo proof are elements of the bn128
scalar field. They are squeezed from a transcript, not computed from any
polynomial, so they only look like the values a real Marlin prover would send.

Usage:
    >>> from zkp.marlin.field import FR, fr_short
    >>> x = FR(3) * FR(7)       # FR(21)
    >>> fr_short(x)             # '0x00000015'
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128


class FR(FQ):
    """Element of the bn128 scalar field."""
    field_modulus = bn128.curve_order


CURVE_ORDER = bn128.curve_order


def fr_short(val, digits=8):
    """FR -> short '0x' hex string for display (low-order digits only)."""
    h = "%064x" % (int(val) % CURVE_ORDER)
    return "0x" + h[-digits:]
