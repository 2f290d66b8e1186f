"""
Input Validation - Checks applied at the caller-facing boundary.

Covers the plaintext arguments the orchestrator accepts:
- Start prices (uint32)
- Handle and proof byte strings
"""

from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

HANDLE_SIZE = 32
MAX_PROOF_SIZE = 4096

UINT32_MAX = 2**32 - 1
MAX_AUCTION_ID = 2**256 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int,
    max_val: int,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a valid amount
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_start_price(value: Any) -> Tuple[bool, str]:
    """Validate a plaintext start price (uint32)."""
    return validate_integer(value, "start_price", 0, UINT32_MAX)


def validate_bid_value(value: Any) -> Tuple[bool, str]:
    """Validate a plaintext bid before client-side encryption (uint32)."""
    return validate_integer(value, "bid_value", 0, UINT32_MAX)


def validate_external_handle(handle: Any) -> Tuple[bool, str]:
    """Validate an external ciphertext handle."""
    return validate_bytes(handle, "external_handle", expected_length=HANDLE_SIZE)


def validate_proof(proof: Any) -> Tuple[bool, str]:
    """Validate an input proof blob."""
    return validate_bytes(proof, "input_proof", max_length=MAX_PROOF_SIZE)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_integer",
    "validate_start_price",
    "validate_bid_value",
    "validate_external_handle",
    "validate_proof",
    "HANDLE_SIZE",
    "MAX_PROOF_SIZE",
    "UINT32_MAX",
    "MAX_AUCTION_ID",
]
