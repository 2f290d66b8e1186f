"""
Cipherbid Engine Module.

Interface to the encrypted-arithmetic engine:
- Typed ciphertext handles
- Abstract engine capability
- Plaintext-simulating mock engine
- Client-side input encryption and user decryption
"""

from cipherbid.engine.handles import FheType, Handle, HANDLE_SIZE
from cipherbid.engine.base import EncryptedEngine, Plaintext
from cipherbid.engine.mock import MockEngine
from cipherbid.engine.client import EncryptedInput, EncryptedInputBundle, user_decrypt

__all__ = [
    "FheType",
    "Handle",
    "HANDLE_SIZE",
    "EncryptedEngine",
    "Plaintext",
    "MockEngine",
    "EncryptedInput",
    "EncryptedInputBundle",
    "user_decrypt",
]
