"""
ReserveProof - Verifier Tests
===============================
Unit tests for document verification.
"""

from dataclasses import replace

import pytest

from reserve_proof.crypto.range_proof import ProofParameters
from reserve_proof.domain.verifier import verify_document, verify_with_oracle
from reserve_proof.errors import (
    RangeProofInvalidError,
    RootMismatchError,
    StaleOrFutureHeightError,
)


class TestVerifyDocument:
    """Test verify_document"""

    def test_valid_document(self, one_shot_document, params):
        """Test report for a valid one-shot document"""
        report = verify_document(one_shot_document, current_height=120, params=params)

        assert report.block_height == 100
        assert report.current_height == 120
        assert report.commitment_count == 3
        assert report.min_amount == 30
        assert not report.finalized
        assert report.to_dict()["utxo_root"] == one_shot_document.utxo_root.hex()

    def test_same_height_accepted(self, one_shot_document, params):
        """Test block_height == current height"""
        verify_document(one_shot_document, current_height=100, params=params)

    def test_future_height(self, one_shot_document, params):
        """Test block_height beyond the chain tip"""
        with pytest.raises(StaleOrFutureHeightError) as exc_info:
            verify_document(one_shot_document, current_height=99, params=params)
        assert exc_info.value.details["stage"] == "height"

    def test_mutated_commitments(self, one_shot_document, params):
        """Test reordered commitments -> RootMismatch"""
        c = one_shot_document.commitments
        mutated = replace(one_shot_document, commitments=(c[1], c[0], c[2]))

        with pytest.raises(RootMismatchError) as exc_info:
            verify_document(mutated, current_height=120, params=params)
        assert exc_info.value.code == "ROOT_MISMATCH"

    def test_dropped_commitment(self, one_shot_document, params):
        """Test removed commitment -> RootMismatch"""
        mutated = replace(one_shot_document, commitments=one_shot_document.commitments[:2])

        with pytest.raises(RootMismatchError):
            verify_document(mutated, current_height=120, params=params)

    def test_swapped_surplus_commitment(self, service, address, one_shot_document, params):
        """Test surplus commitment from another run"""
        other = service.generate(address, min_amount=30, height=100)
        mutated = replace(one_shot_document, surplus_commitment=other.surplus_commitment)

        with pytest.raises(RangeProofInvalidError):
            verify_document(mutated, current_height=120, params=params)

    def test_other_parameters_rejected(self, one_shot_document):
        """Test verification under alternate parameters fails"""
        other = ProofParameters.derive(transcript_label=b"other")

        with pytest.raises(RangeProofInvalidError):
            verify_document(one_shot_document, current_height=120, params=other)

    def test_verify_with_oracle(self, one_shot_document, oracle, params):
        """Test height read from the oracle"""
        report = verify_with_oracle(one_shot_document, oracle, params)
        assert report.current_height == oracle.current_height()


def corrupt(data: bytes) -> bytes:
    return bytes([data[0] ^ 0x01]) + data[1:]


class TestCheckOrder:
    """Test checks run height -> root -> range proof, stopping at the first failure"""

    def test_height_before_root(self, one_shot_document, params):
        """Test future height wins over reordered commitments"""
        c = one_shot_document.commitments
        mutated = replace(one_shot_document, commitments=(c[2], c[1], c[0]))

        with pytest.raises(StaleOrFutureHeightError):
            verify_document(mutated, current_height=99, params=params)

    def test_root_before_range_proof(self, one_shot_document, params):
        """Test root mismatch wins over a corrupted range proof"""
        mutated = replace(
            one_shot_document,
            commitments=one_shot_document.commitments[:2],
            range_proof=corrupt(one_shot_document.range_proof),
        )

        with pytest.raises(RootMismatchError):
            verify_document(mutated, current_height=120, params=params)

    def test_all_broken_reports_height(self, one_shot_document, params):
        mutated = replace(
            one_shot_document,
            utxo_root=corrupt(one_shot_document.utxo_root),
            range_proof=corrupt(one_shot_document.range_proof),
        )

        with pytest.raises(StaleOrFutureHeightError):
            verify_document(mutated, current_height=0, params=params)
