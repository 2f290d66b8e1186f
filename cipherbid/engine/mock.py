"""
Mock Engine - Plaintext-simulating encrypted-arithmetic engine.

Stores the plaintext behind every handle in a side table so the
orchestration core can be exercised without a real FHE backend. The
semantics mirror a real engine closely enough to catch orchestration bugs:

- Typed handles (ebool, euint32, euint64, eaddress) with wrapping arithmetic
- Input proofs: caller ciphertexts are registered through a verifier that
  signs (handles, contract, user); import_external checks that binding
- Access control: decryption requires a grant; with an operator bound,
  computation also requires the operator to hold a grant or the handle to
  be transient (produced in the current operation scope)
- Optional persistence through StorageManager

Never use this engine where confidentiality matters.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple

from cipherbid.crypto import (
    KeyPair,
    address_to_int,
    generate_keypair,
    int_to_address,
    hex_to_bytes,
    keccak256,
    normalize_address,
    private_key_to_public_key,
    sign,
    verify,
)
from cipherbid.engine.base import EncryptedEngine, Plaintext
from cipherbid.engine.handles import HANDLE_SIZE, FheType, Handle
from cipherbid.errors import AccessDenied, ImportRejected, UnknownHandle
from cipherbid.utils.logger import get_logger

logger = get_logger("engine")


# =============================================================================
# Constants
# =============================================================================

# Domain separators
DOMAIN_INPUT_PROOF = b"cipherbid.input.v1"
DOMAIN_TRIVIAL = b"trivial"
DOMAIN_INPUT = b"input"
DOMAIN_ADD = b"add"
DOMAIN_GT = b"gt"
DOMAIN_LE = b"le"
DOMAIN_SELECT = b"select"

MAX_INPUTS_PER_PROOF = 255
SIGNATURE_SIZE = 64

_ARITHMETIC_TYPES = (FheType.EUINT32, FheType.EUINT64)

# chain_state key for the verifier key when persisted
META_VERIFIER_KEY = "engine_verifier_key"


class MockEngine(EncryptedEngine):
    """
    In-process engine backed by a plaintext side table.

    Attributes:
        verifier: Keypair that signs input proofs
        operator: Address whose grants gate computation (None = unchecked)
    """

    def __init__(
        self,
        verifier: Optional[KeyPair] = None,
        operator: Optional[str] = None,
        storage_manager=None,
    ):
        """
        Initialize the engine.

        Args:
            verifier: Input-proof signing key. Generated if omitted.
            operator: Bind computation access checks to this address.
            storage_manager: Persistence manager. None = in-memory only.
        """
        self.storage_manager = storage_manager
        self.verifier = verifier or self._load_or_create_verifier()
        self.operator = normalize_address(operator) if operator else None

        # handle_id -> (type, plaintext as int)
        self._values: Dict[bytes, Tuple[FheType, int]] = {}
        # handle_id -> principals
        self._acl: Dict[bytes, Set[str]] = {}
        # Handles usable without a grant until the current scope exits
        self._transient: Set[bytes] = set()
        self._scope_depth = 0
        self._nonce = 0

        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # Setup
    # =========================================================================

    def _load_or_create_verifier(self) -> KeyPair:
        if self.storage_manager is None:
            return generate_keypair()

        stored = self.storage_manager.get_meta(META_VERIFIER_KEY)
        if stored:
            private_key = hex_to_bytes(stored)
            return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))

        keypair = generate_keypair()
        self.storage_manager.set_meta(META_VERIFIER_KEY, keypair.private_key_hex)
        return keypair

    def _load_from_storage(self) -> None:
        for handle_id, fhe_type, value in self.storage_manager.load_ciphertexts():
            self._values[handle_id] = (FheType(fhe_type), value)
        for handle_id, principal in self.storage_manager.load_engine_grants():
            self._acl.setdefault(handle_id, set()).add(principal)
        self._nonce = len(self._values)
        logger.info(f"Loaded {len(self._values)} ciphertexts from storage")

    def bind_operator(self, operator: str) -> None:
        """Enforce computation access checks for operator."""
        self.operator = normalize_address(operator)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _encode(self, value: Plaintext, fhe_type: FheType) -> int:
        if fhe_type == FheType.EADDRESS:
            if isinstance(value, str):
                return address_to_int(value)
        elif fhe_type == FheType.EBOOL:
            if isinstance(value, bool) or value in (0, 1):
                return int(value)
            raise ValueError(f"ebool expects a bool, got {value!r}")

        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{fhe_type.name} expects an int, got {type(value).__name__}")
        if value < 0 or value >= fhe_type.modulus:
            raise ValueError(f"{value} does not fit in {fhe_type.name}")
        return value

    @staticmethod
    def _decode(fhe_type: FheType, value: int) -> Plaintext:
        if fhe_type == FheType.EBOOL:
            return bool(value)
        if fhe_type == FheType.EADDRESS:
            return int_to_address(value)
        return value

    def _new_handle(self, domain: bytes, parts: List[bytes], fhe_type: FheType, value: int) -> Handle:
        self._nonce += 1
        digest = keccak256(domain + b"".join(parts) + self._nonce.to_bytes(8, "big"))
        handle = Handle.from_digest(digest, fhe_type)

        self._values[handle.handle_id] = (fhe_type, value)
        if self.storage_manager:
            self.storage_manager.save_ciphertext(handle.handle_id, int(fhe_type), value)
        return handle

    def _computed(self, domain: bytes, operands: List[Handle], fhe_type: FheType, value: int) -> Handle:
        handle = self._new_handle(domain, [h.handle_id for h in operands], fhe_type, value)
        self._transient.add(handle.handle_id)
        return handle

    def _operand(self, handle: Handle) -> Tuple[FheType, int]:
        entry = self._values.get(handle.handle_id)
        if entry is None:
            raise UnknownHandle(handle.handle_id)

        if self.operator is not None and handle.handle_id not in self._transient:
            if self.operator not in self._acl.get(handle.handle_id, ()):
                raise AccessDenied(handle.handle_id, self.operator)

        return entry

    def _arithmetic_pair(self, a: Handle, b: Handle) -> Tuple[FheType, int, int]:
        type_a, va = self._operand(a)
        type_b, vb = self._operand(b)
        if type_a != type_b:
            raise TypeError(f"Operand types differ: {type_a.name} vs {type_b.name}")
        if type_a not in _ARITHMETIC_TYPES:
            raise TypeError(f"{type_a.name} does not support arithmetic")
        return type_a, va, vb

    # =========================================================================
    # Engine interface
    # =========================================================================

    def encrypt(self, value: Plaintext, fhe_type: FheType) -> Handle:
        encoded = self._encode(value, fhe_type)
        handle = self._new_handle(DOMAIN_TRIVIAL, [bytes([int(fhe_type)])], fhe_type, encoded)
        self._transient.add(handle.handle_id)
        return handle

    def import_external(
        self,
        external_handle: bytes,
        proof: bytes,
        contract: str,
        user: str,
        expected_type: Optional[FheType] = None,
    ) -> Handle:
        handles, signature = self._parse_proof(proof)

        if external_handle not in handles:
            raise ImportRejected("handle not covered by proof", handle=external_handle)

        digest = self._proof_digest(handles, contract, user)
        if not verify(digest, signature, self.verifier.public_key):
            logger.warning(
                f"Input proof verification failed for user {user} on 0x{external_handle.hex()}"
            )
            raise ImportRejected("invalid proof signature", handle=external_handle)

        if external_handle not in self._values:
            raise ImportRejected("unknown input handle", handle=external_handle)

        try:
            handle = Handle(external_handle)
        except ValueError as e:
            raise ImportRejected(str(e), handle=external_handle) from e

        if expected_type is not None and handle.fhe_type != expected_type:
            logger.warning(
                f"Input type mismatch for user {user} on 0x{external_handle.hex()}: "
                f"expected {expected_type.name}, got {handle.fhe_type.name}"
            )
            raise ImportRejected(f"expected {expected_type.name} input", handle=external_handle)

        self._transient.add(handle.handle_id)
        return handle

    def add(self, a: Handle, b: Handle) -> Handle:
        fhe_type, va, vb = self._arithmetic_pair(a, b)
        return self._computed(DOMAIN_ADD, [a, b], fhe_type, (va + vb) % fhe_type.modulus)

    def compare_greater(self, a: Handle, b: Handle) -> Handle:
        _, va, vb = self._arithmetic_pair(a, b)
        return self._computed(DOMAIN_GT, [a, b], FheType.EBOOL, int(va > vb))

    def compare_less_or_equal(self, a: Handle, b: Handle) -> Handle:
        _, va, vb = self._arithmetic_pair(a, b)
        return self._computed(DOMAIN_LE, [a, b], FheType.EBOOL, int(va <= vb))

    def oblivious_select(self, condition: Handle, if_true: Handle, if_false: Handle) -> Handle:
        cond_type, c = self._operand(condition)
        if cond_type != FheType.EBOOL:
            raise TypeError(f"Selector must be EBOOL, got {cond_type.name}")

        type_t, vt = self._operand(if_true)
        type_f, vf = self._operand(if_false)
        if type_t != type_f:
            raise TypeError(f"Branch types differ: {type_t.name} vs {type_f.name}")

        value = c * vt + (1 - c) * vf
        return self._computed(DOMAIN_SELECT, [condition, if_true, if_false], type_t, value)

    def grant_capability(self, handle: Handle, principal: str) -> None:
        if handle.handle_id not in self._values:
            raise UnknownHandle(handle.handle_id)

        principal = normalize_address(principal)
        granted = self._acl.setdefault(handle.handle_id, set())
        if principal in granted:
            return

        granted.add(principal)
        if self.storage_manager:
            self.storage_manager.save_engine_grant(handle.handle_id, principal)

    def is_granted(self, handle: Handle, principal: str) -> bool:
        return normalize_address(principal) in self._acl.get(handle.handle_id, ())

    def request_decrypt(self, handle: Handle, principal: str) -> Plaintext:
        entry = self._values.get(handle.handle_id)
        if entry is None:
            raise UnknownHandle(handle.handle_id)

        principal = normalize_address(principal)
        if principal not in self._acl.get(handle.handle_id, ()):
            raise AccessDenied(handle.handle_id, principal)

        fhe_type, value = entry
        return self._decode(fhe_type, value)

    @contextmanager
    def transient_scope(self) -> Iterator[None]:
        self._scope_depth += 1
        try:
            yield
        finally:
            self._scope_depth -= 1
            if self._scope_depth == 0:
                self._transient.clear()

    # =========================================================================
    # Input registration (client-side counterpart)
    # =========================================================================

    @staticmethod
    def _proof_digest(handles: List[bytes], contract: str, user: str) -> bytes:
        return keccak256(
            DOMAIN_INPUT_PROOF
            + b"".join(handles)
            + hex_to_bytes(normalize_address(contract))
            + hex_to_bytes(normalize_address(user))
        )

    @staticmethod
    def _parse_proof(proof: bytes) -> Tuple[List[bytes], bytes]:
        if not isinstance(proof, (bytes, bytearray)) or len(proof) < 1 + SIGNATURE_SIZE:
            raise ImportRejected("malformed proof")

        count = proof[0]
        expected = 1 + count * HANDLE_SIZE + SIGNATURE_SIZE
        if count == 0 or len(proof) != expected:
            raise ImportRejected("malformed proof")

        body = proof[1:1 + count * HANDLE_SIZE]
        handles = [bytes(body[i:i + HANDLE_SIZE]) for i in range(0, len(body), HANDLE_SIZE)]
        return handles, bytes(proof[-SIGNATURE_SIZE:])

    def register_inputs(
        self,
        values: List[Tuple[Plaintext, FheType]],
        contract: str,
        user: str,
    ) -> Tuple[List[Handle], bytes]:
        """
        Encrypt caller inputs and issue a proof binding them to (contract, user).

        Returns:
            (handles, input_proof)
        """
        if not values:
            raise ValueError("No inputs to register")
        if len(values) > MAX_INPUTS_PER_PROOF:
            raise ValueError(f"At most {MAX_INPUTS_PER_PROOF} inputs per proof")

        binding = hex_to_bytes(normalize_address(contract)) + hex_to_bytes(normalize_address(user))
        handles = [
            self._new_handle(DOMAIN_INPUT, [binding], fhe_type, self._encode(value, fhe_type))
            for value, fhe_type in values
        ]

        handle_ids = [h.handle_id for h in handles]
        signature = sign(self._proof_digest(handle_ids, contract, user), self.verifier.private_key)
        proof = bytes([len(handles)]) + b"".join(handle_ids) + signature

        logger.debug(f"Registered {len(handles)} encrypted inputs for {user}")
        return handles, proof

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict:
        return {
            "ciphertexts": len(self._values),
            "grants": sum(len(p) for p in self._acl.values()),
            "operator": self.operator,
        }


__all__ = ["MockEngine", "DOMAIN_INPUT_PROOF"]
