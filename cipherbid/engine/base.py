"""
Encrypted Arithmetic Engine interface.

The orchestration core never sees plaintext. Everything it needs is
expressed through this capability interface:

- encrypt(value, type) -> handle            (trivial encryption)
- import_external(handle, proof, ...) -> h  (fails closed on a bad proof or type)
- add(a, b) -> h
- compare_greater(a, b) -> ebool
- compare_less_or_equal(a, b) -> ebool
- oblivious_select(cond, if_true, if_false) -> h
- grant_capability(handle, principal)
- request_decrypt(handle, principal) -> plaintext (out-of-band)

Implementations must treat every operation except import_external and
request_decrypt as total over valid handles.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from cipherbid.engine.handles import FheType, Handle

Plaintext = Union[bool, int, str]


class EncryptedEngine(ABC):
    """Abstract encrypted-arithmetic capability."""

    @abstractmethod
    def encrypt(self, value: Plaintext, fhe_type: FheType) -> Handle:
        """Encrypt a plaintext the caller already knows."""

    @abstractmethod
    def import_external(
        self,
        external_handle: bytes,
        proof: bytes,
        contract: str,
        user: str,
        expected_type: Optional[FheType] = None,
    ) -> Handle:
        """
        Accept a caller-supplied ciphertext.

        The proof must bind the handle to (contract, user). When
        expected_type is given, a handle of any other type is refused.

        Raises:
            ImportRejected: If the proof does not verify or the type differs
        """

    @abstractmethod
    def add(self, a: Handle, b: Handle) -> Handle:
        """Encrypted addition (wrapping at the operand width)."""

    @abstractmethod
    def compare_greater(self, a: Handle, b: Handle) -> Handle:
        """Encrypted a > b."""

    @abstractmethod
    def compare_less_or_equal(self, a: Handle, b: Handle) -> Handle:
        """Encrypted a <= b."""

    @abstractmethod
    def oblivious_select(self, condition: Handle, if_true: Handle, if_false: Handle) -> Handle:
        """Return a fresh handle to one operand without revealing which."""

    @abstractmethod
    def grant_capability(self, handle: Handle, principal: str) -> None:
        """Allow principal to use and decrypt handle. Idempotent."""

    @abstractmethod
    def is_granted(self, handle: Handle, principal: str) -> bool:
        """Whether principal holds a grant on handle."""

    @abstractmethod
    def request_decrypt(self, handle: Handle, principal: str) -> Plaintext:
        """
        Decrypt for an authorized principal.

        Raises:
            AccessDenied: If principal holds no grant on handle
        """

    @contextmanager
    def transient_scope(self) -> Iterator[None]:
        """
        Scope of a single orchestrator operation.

        Engines that distinguish transient from persistent allowances
        release the transient ones when the scope exits.
        """
        yield


__all__ = ["EncryptedEngine", "Plaintext"]
