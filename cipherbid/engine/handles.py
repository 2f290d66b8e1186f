"""
Ciphertext handles.

A handle is an opaque 32-byte reference to an encrypted value held by the
engine. Layout:

    digest[0:30] || fhe_type (1 byte) || version (1 byte)

The type byte lets any holder of a handle know what kind of value it
refers to without learning anything about the value itself.
"""

from dataclasses import dataclass
from enum import IntEnum

from cipherbid.crypto import bytes_to_hex, hex_to_bytes

HANDLE_SIZE = 32
HANDLE_VERSION = 0


class FheType(IntEnum):
    """Encrypted value types used by the auction core."""
    EBOOL = 0
    EUINT32 = 4
    EUINT64 = 5
    EADDRESS = 7

    @property
    def bits(self) -> int:
        return _BITS[self]

    @property
    def modulus(self) -> int:
        return 1 << self.bits


_BITS = {
    FheType.EBOOL: 1,
    FheType.EUINT32: 32,
    FheType.EUINT64: 64,
    FheType.EADDRESS: 160,
}


@dataclass(frozen=True)
class Handle:
    """Opaque reference to a ciphertext."""
    handle_id: bytes

    def __post_init__(self):
        if len(self.handle_id) != HANDLE_SIZE:
            raise ValueError(f"Handle must be {HANDLE_SIZE} bytes, got {len(self.handle_id)}")
        FheType(self.handle_id[30])

    @property
    def fhe_type(self) -> FheType:
        return FheType(self.handle_id[30])

    @classmethod
    def from_digest(cls, digest: bytes, fhe_type: FheType) -> "Handle":
        """Build a handle from a hash digest and a type tag."""
        return cls(digest[:30] + bytes([int(fhe_type), HANDLE_VERSION]))

    def to_bytes(self) -> bytes:
        return self.handle_id

    def to_hex(self) -> str:
        return bytes_to_hex(self.handle_id)

    @classmethod
    def from_hex(cls, value: str) -> "Handle":
        return cls(hex_to_bytes(value))

    def short(self) -> str:
        """Abbreviated form for logs."""
        return self.handle_id.hex()[:12]

    def __repr__(self) -> str:
        return f"Handle({self.fhe_type.name}, 0x{self.short()}...)"


__all__ = ["FheType", "Handle", "HANDLE_SIZE", "HANDLE_VERSION"]
