"""
Marlin demo transcript
======================

SHA-256 based transcript that produces every synthetic byte in the demo.

Each pipeline stage opens a transcript seeded with the pipeline seed,
absorbs its inputs (stage parameters, the previous stage's artifact,
witness values) and then squeezes opaque blobs and field elements out of it.
The same seed and the same inputs always yield the same output, so two runs
of the pipeline are byte-for-byte reproducible.

This is a stand-in for randomness only. Nothing squeezed from it is bound to
an algebraic structure, and it gives no soundness guarantee.

Usage:
    >>> t = Transcript(seed=7)
    >>> t.append_int(b"num_constraints", 10)
    >>> blob = t.challenge_hex(b"srs", 64)
    >>> alpha = t.challenge_scalar(b"alpha")
"""

import hashlib

from zkp.marlin.field import FR, CURVE_ORDER


class Transcript:
    """Seedable, label-separated hash transcript.

    Attributes:
        state: accumulated hash input bytes
    """

    def __init__(self, label=b"marlin", seed=0):
        """Start a transcript under a domain label.

        Args:
            label: domain separator, one per pipeline stage
            seed: any value. It is absorbed through its text form, so ints of
                  any size and strings from the environment are both accepted.
        """
        self.state = bytearray()
        self.state.extend(label)
        self.append_message(b"seed", str(seed))

    def append_message(self, label, data):
        """Absorb raw bytes (or text) under a label."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(4, "big"))
        self.state.extend(data)

    def append_int(self, label, value):
        self.append_message(label, str(int(value)))

    def append_value(self, label, value):
        """Absorb an arbitrary witness value through its text form."""
        self.append_message(label, repr(value))

    def challenge_bytes(self, label, length):
        """Squeeze `length` bytes. The digest is chained back into the state."""
        self.state.extend(label)
        seed = hashlib.sha256(bytes(self.state)).digest()
        out = bytearray()
        counter = 0
        while len(out) < length:
            out.extend(hashlib.sha256(seed + counter.to_bytes(4, "big")).digest())
            counter += 1
        self.state.extend(seed)
        return bytes(out[:length])

    def challenge_hex(self, label, num_chars):
        """Squeeze a hex string of exactly `num_chars` characters."""
        return self.challenge_bytes(label, (num_chars + 1) // 2).hex()[:num_chars]

    def challenge_scalar(self, label):
        """Squeeze an FR element."""
        h = self.challenge_bytes(label, 32)
        return FR(int.from_bytes(h, "big") % CURVE_ORDER)
