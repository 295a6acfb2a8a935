"""128-bit content fingerprints for chunks."""

import hashlib
import struct
from dataclasses import dataclass

_U64_MAX = (1 << 64) - 1
_LAYOUT = struct.Struct("<QQ")


@dataclass(frozen=True, order=True)
class Fingerprint:
    """A 128-bit fingerprint split into its high and low 64-bit halves.

    Ordering compares the high half first, then the low half.
    """

    high: int = 0
    low: int = 0

    def __post_init__(self):
        for name in ("high", "low"):
            value = getattr(self, name)
            if not 0 <= value <= _U64_MAX:
                raise ValueError(f"{name} half out of 64-bit range: {value}")

    @classmethod
    def of(cls, data, seed=0):
        """Fingerprint ``data`` with the given 64-bit seed."""
        if not 0 <= seed <= _U64_MAX:
            raise ValueError(f"seed out of 64-bit range: {seed}")
        digest = hashlib.blake2b(
            bytes(data), digest_size=16, salt=seed.to_bytes(16, "little")
        ).digest()
        value = int.from_bytes(digest, "big")
        return cls(value >> 64, value & _U64_MAX)

    def hex(self):
        """Return 32 lower-case hex digits, high half first."""
        return f"{self.high:016x}{self.low:016x}"

    def to_bytes(self):
        """Serialise as 16 bytes: low half then high half, little-endian."""
        return _LAYOUT.pack(self.low, self.high)

    @classmethod
    def from_bytes(cls, raw):
        """Inverse of :meth:`to_bytes`."""
        if len(raw) != _LAYOUT.size:
            raise ValueError(f"fingerprint needs {_LAYOUT.size} bytes, got {len(raw)}")
        low, high = _LAYOUT.unpack(bytes(raw))
        return cls(high, low)

    def __hash__(self):
        return self.high ^ self.low

    def __str__(self):
        return self.hex()


NONE = Fingerprint()