"""
ReserveProof - Proof Service
==============================
Pipeline di generazione e verifica del proof-of-reserve.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Modalità:
- one-shot: oracle -> commitment -> root -> range proof -> documento
- split: come one-shot + richiesta di firma (PSBT) e documento Draft;
  la PSBT firmata viene poi unita con attach_signatures()

Il service non fa retry: ogni chiamata all'oracle avviene una volta.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from reserve_proof.constants import SIGNING_TYPE_PSBT_OPRETURN, is_valid_amount
from reserve_proof.crypto.commitments import CommitmentBatch, commit_outputs
from reserve_proof.crypto.range_proof import (
    ProofParameters,
    SurplusProof,
    get_default_parameters,
    prove_surplus,
)
from reserve_proof.domain.models import ProofDocument, UnspentOutput
from reserve_proof.domain.signing import attach_signatures
from reserve_proof.domain.verifier import VerificationReport, verify_with_oracle
from reserve_proof.errors import DocumentFormatError, ProtocolError, format_input_error
from reserve_proof.logging_setup import AuditLogger, get_logger
from reserve_proof.network.oracle import ChainOracle
from reserve_proof.utils.merkle import compute_merkle_root
from reserve_proof.wallet.psbt import PSBT, check_spending_template


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("services.proof")


@dataclass(frozen=True)
class _Prepared:
    outputs: List[UnspentOutput]
    batch: CommitmentBatch
    root: bytes
    surplus: SurplusProof


# ============================================================================
# PROOF SERVICE
# ============================================================================

class ProofService:
    """
    Service di generazione/verifica.

    Attributes:
        oracle: Chain-state oracle
        params: Parametri pubblici del range proof
        audit: Audit logger opzionale

    Examples:
        >>> service = ProofService(BitcoinRPCOracle(url, user, pw))
        >>> document = service.generate("bc1q...", min_amount=30, height=850_000)
        >>> service.verify(document).commitment_count
        3
    """

    def __init__(
        self,
        oracle: ChainOracle,
        params: Optional[ProofParameters] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.oracle = oracle
        self.params = params or get_default_parameters()
        self.audit = audit

    # ========================================================================
    # GENERATION
    # ========================================================================

    def _prepare(self, address: str, min_amount: int, height: int) -> _Prepared:
        if not is_valid_amount(min_amount):
            raise format_input_error("min_amount", min_amount, "integer in [0, 2^64)")
        if not isinstance(height, int) or height < 0:
            raise format_input_error("height", height, "non-negative integer", code="INVALID_HEIGHT")

        outputs = self.oracle.list_unspent(address)
        batch = commit_outputs(outputs, self.params.pedersen)
        root = compute_merkle_root(batch.commitment_bytes())
        surplus = prove_surplus(batch.total, min_amount, self.params)

        return _Prepared(outputs=outputs, batch=batch, root=root, surplus=surplus)

    def _document(self, prepared: _Prepared, min_amount: int, height: int, **extra) -> ProofDocument:
        return ProofDocument(
            block_height=height,
            utxo_root=prepared.root,
            commitments=tuple(prepared.batch.commitment_bytes()),
            range_proof=prepared.surplus.proof_bytes(),
            surplus_commitment=prepared.surplus.commitment_bytes(),
            min_amount=min_amount,
            **extra,
        )

    def generate(self, address: str, min_amount: int, height: int) -> ProofDocument:
        """
        One-shot: documento senza richiesta di firma.

        Raises:
            NoOutputsError, AmountOverflowError, BelowThresholdError, OracleError
        """
        prepared = self._prepare(address, min_amount, height)
        document = self._document(prepared, min_amount, height)

        logger.info(
            "Proof generated",
            extra_data={
                "utxo_root": prepared.root.hex(),
                "block_height": height,
                "commitments": len(prepared.outputs),
            }
        )
        if self.audit:
            self.audit.log_proof_generated(prepared.root.hex(), height, len(prepared.outputs), min_amount)

        return document

    def build_signing_request(self, address: str, min_amount: int, height: int) -> Tuple[str, ProofDocument]:
        """
        Split mode: PSBT da firmare + documento Draft.

        Il template dell'oracle deve spendere esattamente gli output impegnati,
        nell'ordine delle commitment, e includere la root in un OP_RETURN.

        Returns:
            (psbt_base64, draft_document)

        Raises:
            SigningRequestMismatchError: template non coerente
            PSBTFormatError: template non parsabile
        """
        prepared = self._prepare(address, min_amount, height)

        psbt_b64 = self.oracle.create_funded_spending_template(prepared.outputs, prepared.root)
        psbt = PSBT.from_base64(psbt_b64)
        check_spending_template(psbt, prepared.outputs, prepared.root)
        psbt_hash = psbt.unsigned_tx_hash()

        draft = self._document(
            prepared, min_amount, height,
            psbt_hash=psbt_hash,
            signing_type=SIGNING_TYPE_PSBT_OPRETURN,
        )

        logger.info(
            "Signing request built",
            extra_data={"utxo_root": prepared.root.hex(), "psbt_hash": psbt_hash.hex()}
        )
        if self.audit:
            self.audit.log_draft_created(prepared.root.hex(), psbt_hash.hex(), len(prepared.outputs))

        return psbt_b64, draft

    # ========================================================================
    # SIGNING
    # ========================================================================

    def attach_signatures(self, draft: ProofDocument, signed_psbt: Union[str, PSBT]) -> ProofDocument:
        """Draft + PSBT firmata -> documento finale"""
        if draft.psbt_hash is None:
            raise DocumentFormatError(
                "Document is not a signing draft (no psbt_hash)",
                code="NOT_A_DRAFT"
            )

        document = attach_signatures(draft, signed_psbt)

        if self.audit:
            self.audit.log_finalized(document.utxo_root.hex(), len(document.ownership_proofs))
        return document

    # ========================================================================
    # VERIFICATION
    # ========================================================================

    def verify(self, document: ProofDocument) -> VerificationReport:
        """
        Verifica contro l'altezza corrente dell'oracle.

        Raises:
            StaleOrFutureHeightError, RootMismatchError, RangeProofInvalidError
        """
        try:
            report = verify_with_oracle(document, self.oracle, self.params)
        except ProtocolError as e:
            logger.warning(
                f"Proof verification failed: {e.message}",
                extra_data={"code": e.code, "utxo_root": document.utxo_root.hex()}
            )
            if self.audit:
                self.audit.log_verification(document.utxo_root.hex(), document.block_height, False, e.code)
            raise

        if self.audit:
            self.audit.log_verification(document.utxo_root.hex(), document.block_height, True)
        return report


__all__ = [
    "ProofService",
]
