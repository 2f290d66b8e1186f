"""
Client-side counterpart of the engine.

Bidders encrypt locally and hand the orchestrator only handles plus an
input proof; they decrypt results out-of-band once granted.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from cipherbid.engine.base import Plaintext
from cipherbid.engine.handles import FheType, Handle


@dataclass
class EncryptedInputBundle:
    """Handles and the proof that binds them to (contract, user)."""
    handles: List[bytes]
    input_proof: bytes


@dataclass
class EncryptedInput:
    """
    Builder for a batch of encrypted inputs.

    Usage:
        bundle = EncryptedInput(engine, contract, user).add32(150).encrypt()
        manager.bid(auction_id, bundle.handles[0], bundle.input_proof, caller=user)
    """
    engine: object  # must provide register_inputs (see MockEngine)
    contract: str
    user: str
    _values: List[Tuple[Plaintext, FheType]] = field(default_factory=list)

    def add_bool(self, value: bool) -> "EncryptedInput":
        self._values.append((value, FheType.EBOOL))
        return self

    def add32(self, value: int) -> "EncryptedInput":
        self._values.append((value, FheType.EUINT32))
        return self

    def add64(self, value: int) -> "EncryptedInput":
        self._values.append((value, FheType.EUINT64))
        return self

    def add_address(self, address: str) -> "EncryptedInput":
        self._values.append((address, FheType.EADDRESS))
        return self

    def encrypt(self) -> EncryptedInputBundle:
        handles, proof = self.engine.register_inputs(self._values, self.contract, self.user)
        return EncryptedInputBundle(
            handles=[h.handle_id for h in handles],
            input_proof=proof,
        )


def user_decrypt(engine, handle: Union[Handle, bytes], principal: str) -> Plaintext:
    """
    Decrypt a handle on behalf of principal.

    Raises:
        AccessDenied: If principal was never granted the handle
    """
    if not isinstance(handle, Handle):
        handle = Handle(bytes(handle))
    return engine.request_decrypt(handle, principal)


__all__ = ["EncryptedInput", "EncryptedInputBundle", "user_decrypt"]
