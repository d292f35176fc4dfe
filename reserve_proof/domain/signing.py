"""
ReserveProof - Signing Workflow
=================================
Macchina a stati draft -> firma esterna -> finalize.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Stati:
    Draft ──receive_signed──> AwaitingMerge ──finalize──> Finalized
      │                            │
      └──────── (errore) ──────────┴──> Rejected ──reset──> Draft

Il draft non viene mai modificato: ogni transizione costruisce un nuovo
documento. Un errore porta in Rejected con il draft intatto; reset()
permette di ripetere la firma esterna. Le firme vengono estratte, non
verificate crittograficamente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Union

from reserve_proof.constants import SigningState
from reserve_proof.domain.models import ProofDocument
from reserve_proof.errors import (
    CodecError,
    InvalidStateTransitionError,
    MissingSignatureError,
    ReserveProofException,
    StructureAlteredError,
    TamperedRequestError,
    WorkflowError,
)
from reserve_proof.logging_setup import get_logger
from reserve_proof.wallet.psbt import PSBT

logger = get_logger("domain.signing")


# ============================================================================
# STATES
# ============================================================================

@dataclass(frozen=True)
class Draft:
    """Documento in attesa della PSBT firmata"""
    state: ClassVar[SigningState] = SigningState.DRAFT
    document: ProofDocument


@dataclass(frozen=True)
class AwaitingMerge:
    """PSBT firmata accettata (hash e struttura coerenti), firme non ancora estratte"""
    state: ClassVar[SigningState] = SigningState.AWAITING_MERGE
    document: ProofDocument
    signed_psbt: PSBT = field(compare=False, repr=False)


@dataclass(frozen=True)
class Finalized:
    """Documento con una ownership proof per commitment"""
    state: ClassVar[SigningState] = SigningState.FINALIZED
    document: ProofDocument


@dataclass(frozen=True)
class Rejected:
    """
    Transizione fallita.

    Attributes:
        document: Draft originale, invariato
        error: Errore che ha causato il rifiuto
        failed_from: Stato da cui la transizione è fallita
    """
    state: ClassVar[SigningState] = SigningState.REJECTED
    document: ProofDocument
    error: ReserveProofException = field(compare=False)
    failed_from: SigningState = SigningState.DRAFT


WorkflowState = Union[Draft, AwaitingMerge, Finalized, Rejected]


# ============================================================================
# WORKFLOW
# ============================================================================

class SigningWorkflow:
    """
    Workflow di firma per un singolo draft.

    Examples:
        >>> workflow = SigningWorkflow(draft_document)
        >>> workflow.receive_signed(signed_psbt_b64)
        >>> final_document = workflow.finalize()
        >>> workflow.status
        <SigningState.FINALIZED: 'finalized'>
    """

    def __init__(self, draft: ProofDocument):
        if draft.is_finalized:
            raise InvalidStateTransitionError(
                "Document already carries ownership proofs",
                code="ALREADY_FINALIZED"
            )
        self._state: WorkflowState = Draft(document=draft)

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def status(self) -> SigningState:
        return self._state.state

    @property
    def document(self) -> ProofDocument:
        return self._state.document

    def _require(self, expected: SigningState, action: str) -> None:
        if self.status != expected:
            raise InvalidStateTransitionError(
                f"Cannot {action} from state {self.status.value}",
                code="INVALID_TRANSITION",
                details={"state": self.status.value, "expected": expected.value}
            )

    def _reject(self, error: ReserveProofException, failed_from: SigningState) -> None:
        logger.warning(
            f"Signing workflow rejected: {error.message}",
            extra_data={"code": error.code, "failed_from": failed_from.value}
        )
        self._state = Rejected(document=self._state.document, error=error, failed_from=failed_from)

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def receive_signed(self, signed_psbt: Union[str, PSBT]) -> AwaitingMerge:
        """
        Draft -> AwaitingMerge.

        Controlli, in ordine:
        1. SHA-256 della tx non firmata == psbt_hash del draft (se presente)
        2. numero di input == numero di commitment

        Raises:
            TamperedRequestError: hash diverso
            StructureAlteredError: numero di input diverso
            PSBTFormatError: PSBT non parsabile
            InvalidStateTransitionError: stato corrente non Draft
        """
        self._require(SigningState.DRAFT, "receive signed PSBT")
        draft = self._state.document

        try:
            if isinstance(signed_psbt, str):
                psbt = PSBT.from_base64(signed_psbt)
            else:
                # copia privata: il chiamante può ancora modificare la sua PSBT
                psbt = PSBT.parse(signed_psbt.serialize())

            if draft.psbt_hash is not None:
                actual = psbt.unsigned_tx_hash()
                if actual != draft.psbt_hash:
                    raise TamperedRequestError(
                        "Signed PSBT does not match the signing request",
                        code="TAMPERED_REQUEST",
                        details={
                            "stage": "receive_signed",
                            "expected": draft.psbt_hash.hex(),
                            "actual": actual.hex(),
                        }
                    )

            if psbt.input_count != draft.commitment_count:
                raise StructureAlteredError(
                    "Signed PSBT input count differs from commitment count",
                    code="STRUCTURE_ALTERED",
                    details={
                        "stage": "receive_signed",
                        "inputs": psbt.input_count,
                        "commitments": draft.commitment_count,
                    }
                )
        except (WorkflowError, CodecError) as e:
            self._reject(e, SigningState.DRAFT)
            raise

        self._state = AwaitingMerge(document=draft, signed_psbt=psbt)
        logger.debug("Signed PSBT accepted", extra_data={"inputs": psbt.input_count})
        return self._state

    def finalize(self) -> ProofDocument:
        """
        AwaitingMerge -> Finalized.

        Per ogni input: prima partial signature, altrimenti key-path
        signature taproot, altrimenti MissingSignatureError(index).

        Returns:
            ProofDocument: nuovo documento con ownership_proofs

        Raises:
            MissingSignatureError: input senza firma
            DocumentFormatError: firme non coerenti con le commitment
            InvalidStateTransitionError: stato corrente non AwaitingMerge
        """
        self._require(SigningState.AWAITING_MERGE, "finalize")
        psbt = self._state.signed_psbt
        draft = self._state.document

        proofs: List[bytes] = []
        try:
            for index in range(psbt.input_count):
                partial = psbt.partial_signatures(index)
                if partial:
                    proofs.append(partial[0].signature)
                    continue

                tap_sig = psbt.tap_key_signature(index)
                if tap_sig is not None:
                    proofs.append(tap_sig)
                    continue

                raise MissingSignatureError(index)

            document = draft.with_ownership_proofs(proofs)
        except ReserveProofException as e:
            self._reject(e, SigningState.AWAITING_MERGE)
            raise

        self._state = Finalized(document=document)

        logger.info(
            "Proof finalized",
            extra_data={"utxo_root": document.utxo_root.hex(), "ownership_proofs": len(proofs)}
        )
        return document

    def reset(self) -> Draft:
        """Rejected -> Draft (stesso draft, nuova firma esterna)"""
        self._require(SigningState.REJECTED, "reset")
        self._state = Draft(document=self._state.document)
        return self._state


def attach_signatures(draft: ProofDocument, signed_psbt: Union[str, PSBT]) -> ProofDocument:
    """
    receive_signed + finalize in una chiamata.

    Raises:
        TamperedRequestError, StructureAlteredError, MissingSignatureError,
        PSBTFormatError
    """
    workflow = SigningWorkflow(draft)
    workflow.receive_signed(signed_psbt)
    return workflow.finalize()


__all__ = [
    "Draft",
    "AwaitingMerge",
    "Finalized",
    "Rejected",
    "WorkflowState",
    "SigningWorkflow",
    "attach_signatures",
]
