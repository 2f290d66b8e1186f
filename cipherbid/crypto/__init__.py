"""
Cryptographic primitives for Cipherbid.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Key generation for principals (secp256k1)
- Digital signatures (ECDSA on secp256k1)
- Address derivation and normalization

Design Notes:
-------------
Principals (bidders, the orchestrator itself) are identified by
Ethereum-style addresses: the last 20 bytes of keccak256(public_key).

Keccak-256 is used for:
- Address derivation
- Ciphertext handle identifiers
- Input proof digests

ECDSA signatures back the input proofs issued by the engine's verifier.
"""

import hashlib
import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20

# "No bidder" sentinel
ZERO_ADDRESS = "0x" + "00" * ADDRESS_SIZE


# =============================================================================
# Hashing
# =============================================================================


def sha256(data: bytes) -> bytes:
    """Compute SHA-256 hash."""
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation, handle ids, proof digests.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> str:
        """
        Derive address from public key (Ethereum-style).

        Address = last 20 bytes of keccak256(public_key), hex-encoded with 0x prefix.
        """
        return address_from_public_key(self.public_key)

    @property
    def private_key_hex(self) -> str:
        """Return private key as hex string."""
        return self.private_key.hex()

    @property
    def public_key_hex(self) -> str:
        """Return public key as hex string."""
        return self.public_key.hex()


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")

    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    # P = k * G, returned as (x, y) integers
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


def address_from_public_key(public_key: bytes) -> str:
    """Derive a 0x-prefixed lowercase address from a 64-byte public key."""
    return bytes_to_hex(keccak256(public_key)[-ADDRESS_SIZE:])


# =============================================================================
# Digital Signatures (ECDSA)
# =============================================================================


def sign(message_hash: bytes, private_key: bytes) -> bytes:
    """
    Sign a message hash using ECDSA on secp256k1.

    Args:
        message_hash: 32-byte hash of the message to sign
        private_key: 32-byte private key

    Returns:
        64-byte signature (r || s, each 32 bytes)
    """
    if len(message_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    v, r, s = secp256k1.ecdsa_raw_sign(message_hash, private_key)

    # Low-s normalization (EIP-2)
    if s > SECP256K1_ORDER // 2:
        s = SECP256K1_ORDER - s

    return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")


def verify(message_hash: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Verify an ECDSA signature.

    Args:
        message_hash: 32-byte hash of the signed message
        signature: 64-byte signature (r || s)
        public_key: 64-byte public key (x || y)

    Returns:
        True if signature is valid, False otherwise
    """
    if len(message_hash) != 32:
        return False
    if len(signature) != 64:
        return False
    if len(public_key) != 64:
        return False

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:], byteorder="big")

    if r < 1 or r >= SECP256K1_ORDER:
        return False
    if s < 1 or s >= SECP256K1_ORDER:
        return False

    public_key_point = (
        int.from_bytes(public_key[:32], byteorder="big"),
        int.from_bytes(public_key[32:], byteorder="big"),
    )

    # No recovery id in the signature, so try both (Ethereum v convention)
    for v in (27, 28):
        try:
            recovered = secp256k1.ecdsa_raw_recover(message_hash, (v, r, s))
        except (ValueError, ZeroDivisionError):
            continue
        if recovered == public_key_point:
            return True

    return False


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if len(address) != 2 + 2 * ADDRESS_SIZE:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def normalize_address(address: str) -> str:
    """
    Canonical form of an address (lowercase, 0x-prefixed).

    Raises:
        ValueError: If the string is not a 20-byte hex address
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return address.lower()


def address_to_int(address: str) -> int:
    """Integer value of an address (for encryption as eaddress)."""
    return int(normalize_address(address), 16)


def int_to_address(value: int) -> str:
    """Inverse of address_to_int."""
    return bytes_to_hex(value.to_bytes(ADDRESS_SIZE, byteorder="big"))


__all__ = [
    "SECP256K1_ORDER",
    "ADDRESS_SIZE",
    "ZERO_ADDRESS",
    "sha256",
    "keccak256",
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "sign",
    "verify",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "normalize_address",
    "address_to_int",
    "int_to_address",
]
