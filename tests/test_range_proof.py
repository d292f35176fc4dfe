"""
ReserveProof - Range Proof Tests
==================================
Unit tests for the surplus range-proof engine.
"""

import pytest

from reserve_proof.constants import MAX_AMOUNT_EXCLUSIVE
from reserve_proof.crypto import range_proof
from reserve_proof.crypto.group import Point, random_scalar
from reserve_proof.crypto.range_proof import (
    ProofParameters,
    RangeProof,
    prove_range,
    prove_surplus,
    verify_range,
    verify_surplus,
)
from reserve_proof.errors import (
    BelowThresholdError,
    InvalidAmountError,
    ParameterError,
    RangeProofInvalidError,
)


class TestRangeProof:
    """Test prove_range / verify_range"""

    @pytest.mark.parametrize("value", [0, 1, 15, 2**32 + 7, MAX_AMOUNT_EXCLUSIVE - 1])
    def test_valid_values_verify(self, params, value):
        """Test proofs verify across the 64-bit range"""
        proof, commitment = prove_range(value, random_scalar(), params)
        verify_range(proof, commitment, params)

    def test_encoding_size(self, params):
        """Test 64-bit proof encodes to 672 bytes"""
        proof, _ = prove_range(5, random_scalar(), params)
        assert len(proof.to_bytes()) == 672
        assert params.rounds == 6

    def test_bytes_roundtrip_verifies(self, params):
        """Test decoded proof still verifies"""
        proof, commitment = prove_range(1234, random_scalar(), params)
        decoded = RangeProof.from_bytes(proof.to_bytes())

        assert decoded == proof
        verify_range(decoded, commitment, params)

    def test_wrong_commitment_rejected(self, params):
        """Test proof for 42 does not verify against commitment to 43"""
        blinding = random_scalar()
        proof, _ = prove_range(42, blinding, params)
        other = params.pedersen.commit(43, blinding)

        with pytest.raises(RangeProofInvalidError) as exc_info:
            verify_range(proof, other, params)
        assert exc_info.value.code == "RANGE_PROOF_INVALID"

    def test_tampered_scalar_rejected(self, params):
        """Test flipping t_x breaks verification"""
        proof, commitment = prove_range(42, random_scalar(), params)
        raw = bytearray(proof.to_bytes())
        raw[4 * 32] ^= 0x01

        with pytest.raises(RangeProofInvalidError):
            verify_surplus(bytes(raw), commitment, params)

    def test_out_of_range_value(self, params):
        """Test values outside [0, 2^64) cannot be proven"""
        with pytest.raises(InvalidAmountError):
            prove_range(MAX_AMOUNT_EXCLUSIVE, random_scalar(), params)
        with pytest.raises(InvalidAmountError):
            prove_range(-1, random_scalar(), params)

    @pytest.mark.parametrize("length", [0, 31, 33, 320, 700])
    def test_malformed_encoding(self, length):
        """Test truncated or misaligned proof bytes"""
        with pytest.raises(RangeProofInvalidError):
            RangeProof.from_bytes(b"\x01" * length)

    def test_wrong_round_count(self, params):
        """Test proof with missing L/R pair is rejected"""
        proof, commitment = prove_range(7, random_scalar(), params)
        raw = proof.to_bytes()
        # drop the last (L, R) pair
        short = raw[:7 * 32 + 10 * 32] + raw[-64:]

        with pytest.raises(RangeProofInvalidError):
            verify_surplus(short, commitment, params)


class TestProofParameters:
    """Test explicit public parameters"""

    def test_default_parameters(self, params):
        """Test protocol defaults"""
        assert params.transcript_label == b"por"
        assert params.bit_width == 64
        assert params.generators.capacity >= 64

    def test_derive_is_deterministic(self, params):
        """Test derived generators equal the defaults"""
        derived = ProofParameters.derive()
        assert derived.pedersen == params.pedersen
        assert derived.generators == params.generators

    def test_label_mismatch_rejected(self, params):
        """Test proof under one label fails under another"""
        other = ProofParameters.derive(transcript_label=b"other-label")
        proof, commitment = prove_range(42, random_scalar(), params)

        with pytest.raises(RangeProofInvalidError):
            verify_range(proof, commitment, other)

    def test_generator_mismatch_rejected(self, params):
        """Test proof under one generator set fails under another"""
        other = ProofParameters.derive(generators_seed=b"alternate-generators")
        proof, commitment = prove_range(42, random_scalar(), params)

        with pytest.raises(RangeProofInvalidError):
            verify_range(proof, commitment, other)

    def test_unsupported_bit_width(self):
        """Test only 64-bit proofs are supported"""
        with pytest.raises(ParameterError):
            ProofParameters.derive(bit_width=32)

    def test_insufficient_capacity(self):
        """Test generator capacity below bit width"""
        with pytest.raises(ParameterError):
            ProofParameters.derive(capacity=16)

    def test_empty_label(self):
        """Test empty transcript label"""
        with pytest.raises(ParameterError):
            ProofParameters.derive(transcript_label=b"")


class TestSurplus:
    """Test prove_surplus / verify_surplus"""

    def test_surplus_roundtrip(self, params):
        """Test total=45, minimum=30 verifies"""
        surplus = prove_surplus(45, 30, params)
        verify_surplus(surplus.proof_bytes(), surplus.commitment_bytes(), params)

    def test_zero_surplus(self, params):
        """Test total == minimum verifies"""
        surplus = prove_surplus(30, 30, params)
        verify_surplus(surplus.proof, surplus.commitment, params)

    def test_commitment_opens_to_surplus_only_with_blinding(self, params):
        """Test surplus commitment differs run to run"""
        first = prove_surplus(45, 30, params)
        second = prove_surplus(45, 30, params)
        assert first.commitment != second.commitment

    def test_below_threshold_never_proves(self, params, monkeypatch):
        """Test total < minimum fails before proof construction"""
        calls = []
        monkeypatch.setattr(range_proof, "prove_range", lambda *args: calls.append(args))

        with pytest.raises(BelowThresholdError) as exc_info:
            prove_surplus(29, 30, params)

        assert exc_info.value.code == "BELOW_THRESHOLD"
        assert calls == []

    def test_invalid_minimum(self, params):
        """Test minimum outside [0, 2^64)"""
        with pytest.raises(InvalidAmountError):
            prove_surplus(45, -1, params)

    def test_malformed_commitment_bytes(self, params):
        """Test invalid surplus commitment encoding"""
        surplus = prove_surplus(45, 30, params)
        with pytest.raises(RangeProofInvalidError):
            verify_surplus(surplus.proof_bytes(), b"\xff" * 32, params)

    def test_identity_commitment_rejected(self, params):
        """Test proof does not verify against the identity"""
        surplus = prove_surplus(45, 30, params)
        with pytest.raises(RangeProofInvalidError):
            verify_surplus(surplus.proof, Point.identity(), params)
