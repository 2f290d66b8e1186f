"""
Tests for the mock encrypted-arithmetic engine.

Tests cover:
1. Handle layout and typing
2. Arithmetic, comparison and oblivious selection
3. Input proofs (import_external)
4. Decryption access control
5. Operator enforcement and transient scopes
"""

import pytest

from cipherbid.crypto import ZERO_ADDRESS
from cipherbid.engine import (
    EncryptedInput,
    FheType,
    Handle,
    MockEngine,
    user_decrypt,
)
from cipherbid.errors import AccessDenied, ImportRejected, UnknownHandle


CONTRACT = "0x" + "c0" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def engine():
    return MockEngine()


def reveal(engine, handle):
    """Grant a test principal and decrypt."""
    engine.grant_capability(handle, ALICE)
    return engine.request_decrypt(handle, ALICE)


# =============================================================================
# Handle Tests
# =============================================================================


class TestHandles:
    """Tests for handle layout."""

    def test_handle_embeds_type(self, engine):
        h = engine.encrypt(7, FheType.EUINT32)
        assert len(h.handle_id) == 32
        assert h.fhe_type == FheType.EUINT32

    def test_handles_are_unique_per_encryption(self, engine):
        h1 = engine.encrypt(7, FheType.EUINT32)
        h2 = engine.encrypt(7, FheType.EUINT32)
        assert h1 != h2

    def test_hex_round_trip(self, engine):
        h = engine.encrypt(True, FheType.EBOOL)
        assert Handle.from_hex(h.to_hex()) == h

    def test_wrong_size_rejected(self):
        with pytest.raises(ValueError):
            Handle(b"\x00" * 31)

    def test_type_bits(self):
        assert FheType.EUINT32.bits == 32
        assert FheType.EUINT64.modulus == 2**64
        assert FheType.EADDRESS.bits == 160


# =============================================================================
# Arithmetic Tests
# =============================================================================


class TestArithmetic:
    """Tests for homomorphic operations."""

    def test_add(self, engine):
        a = engine.encrypt(40, FheType.EUINT64)
        b = engine.encrypt(2, FheType.EUINT64)
        assert reveal(engine, engine.add(a, b)) == 42

    def test_add_wraps(self, engine):
        a = engine.encrypt(2**32 - 1, FheType.EUINT32)
        b = engine.encrypt(2, FheType.EUINT32)
        assert reveal(engine, engine.add(a, b)) == 1

    def test_add_rejects_mixed_types(self, engine):
        a = engine.encrypt(1, FheType.EUINT32)
        b = engine.encrypt(1, FheType.EUINT64)
        with pytest.raises(TypeError):
            engine.add(a, b)

    def test_add_rejects_bool(self, engine):
        a = engine.encrypt(True, FheType.EBOOL)
        with pytest.raises(TypeError):
            engine.add(a, a)

    @pytest.mark.parametrize("x,y,greater,less_or_equal", [
        (5, 3, True, False),
        (3, 5, False, True),
        (4, 4, False, True),
    ])
    def test_comparisons(self, engine, x, y, greater, less_or_equal):
        a = engine.encrypt(x, FheType.EUINT32)
        b = engine.encrypt(y, FheType.EUINT32)
        gt = engine.compare_greater(a, b)
        le = engine.compare_less_or_equal(a, b)
        assert gt.fhe_type == FheType.EBOOL
        assert reveal(engine, gt) is greater
        assert reveal(engine, le) is less_or_equal

    def test_select_true_branch(self, engine):
        cond = engine.encrypt(True, FheType.EBOOL)
        a = engine.encrypt(10, FheType.EUINT32)
        b = engine.encrypt(20, FheType.EUINT32)
        out = engine.oblivious_select(cond, a, b)
        assert out not in (a, b)
        assert reveal(engine, out) == 10

    def test_select_false_branch_addresses(self, engine):
        cond = engine.encrypt(False, FheType.EBOOL)
        a = engine.encrypt(ALICE, FheType.EADDRESS)
        b = engine.encrypt(ZERO_ADDRESS, FheType.EADDRESS)
        assert reveal(engine, engine.oblivious_select(cond, a, b)) == ZERO_ADDRESS

    def test_select_requires_bool_condition(self, engine):
        cond = engine.encrypt(1, FheType.EUINT32)
        a = engine.encrypt(10, FheType.EUINT32)
        with pytest.raises(TypeError):
            engine.oblivious_select(cond, a, a)

    def test_encrypt_out_of_range(self, engine):
        with pytest.raises(ValueError):
            engine.encrypt(2**32, FheType.EUINT32)
        with pytest.raises(ValueError):
            engine.encrypt(-1, FheType.EUINT64)

    def test_unknown_handle(self, engine):
        stranger = Handle.from_digest(b"\x11" * 32, FheType.EUINT32)
        known = engine.encrypt(1, FheType.EUINT32)
        with pytest.raises(UnknownHandle):
            engine.add(stranger, known)


# =============================================================================
# Input Proof Tests
# =============================================================================


class TestImportExternal:
    """Tests for caller-supplied ciphertexts."""

    def test_valid_import(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(150).encrypt()
        h = engine.import_external(bundle.handles[0], bundle.input_proof, CONTRACT, ALICE)
        assert h.fhe_type == FheType.EUINT32
        assert reveal(engine, h) == 150

    def test_multiple_inputs_in_one_proof(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(1).add64(2).add_bool(True).add_address(BOB).encrypt()
        assert len(bundle.handles) == 4
        h = engine.import_external(bundle.handles[2], bundle.input_proof, CONTRACT, ALICE)
        assert h.fhe_type == FheType.EBOOL
        h = engine.import_external(bundle.handles[3], bundle.input_proof, CONTRACT, ALICE)
        assert reveal(engine, h) == BOB

    def test_tampered_signature_rejected(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(150).encrypt()
        proof = bundle.input_proof[:-1] + bytes([bundle.input_proof[-1] ^ 0x01])
        with pytest.raises(ImportRejected):
            engine.import_external(bundle.handles[0], proof, CONTRACT, ALICE)

    def test_wrong_user_rejected(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(150).encrypt()
        with pytest.raises(ImportRejected):
            engine.import_external(bundle.handles[0], bundle.input_proof, CONTRACT, BOB)

    def test_wrong_contract_rejected(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(150).encrypt()
        other = "0x" + "dd" * 20
        with pytest.raises(ImportRejected):
            engine.import_external(bundle.handles[0], bundle.input_proof, other, ALICE)

    def test_handle_not_in_proof_rejected(self, engine):
        first = EncryptedInput(engine, CONTRACT, ALICE).add32(1).encrypt()
        second = EncryptedInput(engine, CONTRACT, ALICE).add32(2).encrypt()
        with pytest.raises(ImportRejected):
            engine.import_external(second.handles[0], first.input_proof, CONTRACT, ALICE)

    def test_garbage_proof_rejected(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add32(1).encrypt()
        with pytest.raises(ImportRejected):
            engine.import_external(bundle.handles[0], b"\x01" + b"\x00" * 10, CONTRACT, ALICE)

    def test_expected_type_enforced(self, engine):
        bundle = EncryptedInput(engine, CONTRACT, ALICE).add64(150).add32(7).encrypt()
        with pytest.raises(ImportRejected, match="expected EUINT32"):
            engine.import_external(
                bundle.handles[0], bundle.input_proof, CONTRACT, ALICE,
                expected_type=FheType.EUINT32,
            )
        h = engine.import_external(
            bundle.handles[1], bundle.input_proof, CONTRACT, ALICE,
            expected_type=FheType.EUINT32,
        )
        assert reveal(engine, h) == 7

    def test_proof_from_other_engine_rejected(self, engine):
        other = MockEngine()
        bundle = EncryptedInput(other, CONTRACT, ALICE).add32(1).encrypt()
        with pytest.raises(ImportRejected):
            engine.import_external(bundle.handles[0], bundle.input_proof, CONTRACT, ALICE)


# =============================================================================
# Access Control Tests
# =============================================================================


class TestDecryptionAccess:
    """Tests for grant enforcement at decryption."""

    def test_ungranted_decrypt_denied(self, engine):
        h = engine.encrypt(5, FheType.EUINT32)
        with pytest.raises(AccessDenied):
            engine.request_decrypt(h, BOB)

    def test_grant_is_idempotent(self, engine):
        h = engine.encrypt(5, FheType.EUINT32)
        engine.grant_capability(h, BOB)
        engine.grant_capability(h, BOB.upper().replace("0X", "0x"))
        assert engine.is_granted(h, BOB)
        assert engine.stats()["grants"] == 1

    def test_grant_does_not_carry_to_new_handle(self, engine):
        a = engine.encrypt(5, FheType.EUINT32)
        engine.grant_capability(a, BOB)
        b = engine.add(a, a)
        assert not engine.is_granted(b, BOB)

    def test_user_decrypt_accepts_raw_bytes(self, engine):
        h = engine.encrypt(9, FheType.EUINT32)
        engine.grant_capability(h, BOB)
        assert user_decrypt(engine, h.handle_id, BOB) == 9


class TestOperatorEnforcement:
    """Tests for computation access checks."""

    def test_transient_handles_usable_in_scope(self):
        engine = MockEngine(operator=CONTRACT)
        with engine.transient_scope():
            a = engine.encrypt(1, FheType.EUINT32)
            engine.add(a, a)

    def test_expired_handle_needs_grant(self):
        engine = MockEngine(operator=CONTRACT)
        with engine.transient_scope():
            a = engine.encrypt(1, FheType.EUINT32)

        with pytest.raises(AccessDenied):
            engine.add(a, a)

        engine.grant_capability(a, CONTRACT)
        with engine.transient_scope():
            engine.add(a, a)

    def test_nested_scopes_keep_transients(self):
        engine = MockEngine(operator=CONTRACT)
        with engine.transient_scope():
            with engine.transient_scope():
                a = engine.encrypt(1, FheType.EUINT32)
            engine.add(a, a)
