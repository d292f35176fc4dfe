"""
ReserveProof - Custom Exceptions
==================================
Gerarchia completa di eccezioni per gestione errori granulare.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Tassonomia:
- InputError: input del chiamante (nessun output, overflow, sotto soglia)
- ProtocolError: verifica fallita, il documento non è affidabile
- WorkflowError: transizione di firma fallita, il draft resta valido
"""

from typing import Optional, Any


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class ReserveProofException(Exception):
    """
    Eccezione base per tutte le eccezioni ReserveProof.

    Attributes:
        message (str): Messaggio errore
        code (str): Codice errore (es. "ROOT_MISMATCH")
        details (dict): Dettagli aggiuntivi (stage, input index, ...)
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializza eccezione per CLI/logging"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | Details: {self.details}"
        return f"[{self.code}] {self.message}"


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(ReserveProofException):
    """Errore configurazione sistema"""
    pass


class ParameterError(ConfigError):
    """
    Parametri crittografici pubblici inconsistenti.

    Misconfigurazione fatale, distinta da una prova contraffatta
    (RangeProofInvalidError).
    """
    pass


# ============================================================================
# INPUT ERRORS
# ============================================================================

class InputError(ReserveProofException):
    """Errore input chiamante (mai ritentato, nessuno stato parziale)"""
    pass


class NoOutputsError(InputError):
    """Nessun UTXO da impegnare"""
    pass


class InvalidAmountError(InputError):
    """Valore fuori da [0, 2^64)"""
    pass


class AmountOverflowError(InputError):
    """Somma dei valori oltre 64 bit"""
    pass


class BelowThresholdError(InputError):
    """Totale inferiore al minimo dichiarato"""
    pass


# ============================================================================
# PROTOCOL ERRORS
# ============================================================================

class ProtocolError(ReserveProofException):
    """Verifica fallita: il documento va trattato come non affidabile"""
    pass


class StaleOrFutureHeightError(ProtocolError):
    """block_height del documento oltre l'altezza corrente della chain"""
    pass


class RootMismatchError(ProtocolError):
    """Merkle root ricalcolata diversa da utxo_root"""
    pass


class RangeProofInvalidError(ProtocolError):
    """Range proof malformata o non valida per la commitment"""
    pass


# ============================================================================
# WORKFLOW ERRORS
# ============================================================================

class WorkflowError(ReserveProofException):
    """Transizione di firma fallita; il draft resta nello stato precedente"""
    pass


class TamperedRequestError(WorkflowError):
    """PSBT firmata non corrisponde al draft (hash mismatch)"""
    pass


class StructureAlteredError(WorkflowError):
    """Numero di input della PSBT firmata diverso dalle commitment"""
    pass


class MissingSignatureError(WorkflowError):
    """Input senza partial signature né key-path signature"""

    def __init__(self, index: int, message: Optional[str] = None):
        self.index = index
        super().__init__(
            message or f"Signed PSBT lacks signature for input {index}",
            code="MISSING_SIGNATURE",
            details={"stage": "finalize", "input_index": index},
        )


class InvalidStateTransitionError(WorkflowError):
    """Transizione non ammessa dallo stato corrente"""
    pass


class SigningRequestMismatchError(WorkflowError):
    """Template di spesa non coerente con gli output impegnati"""
    pass


# ============================================================================
# CODEC ERRORS
# ============================================================================

class CodecError(ReserveProofException):
    """Errore encoding/decoding"""
    pass


class PSBTFormatError(CodecError):
    """PSBT o transazione non parsabile"""
    pass


class DocumentFormatError(CodecError):
    """Documento proof JSON malformato"""
    pass


# ============================================================================
# CRYPTO ERRORS
# ============================================================================

class CryptoError(ReserveProofException):
    """Errore crittografico generico"""
    pass


class InvalidPointError(CryptoError):
    """Encoding non valido di un punto della curva"""
    pass


# ============================================================================
# ORACLE ERRORS
# ============================================================================

class OracleError(ReserveProofException):
    """Errore chain-state oracle"""
    pass


class OracleConnectionError(OracleError):
    """Nodo non raggiungibile"""
    pass


class OracleRPCError(OracleError):
    """Errore JSON-RPC restituito dal nodo"""

    def __init__(self, rpc_code: int, message: str):
        self.rpc_code = rpc_code
        super().__init__(
            f"RPC error {rpc_code}: {message}",
            code="RPC_ERROR",
            details={"rpc_code": rpc_code},
        )


# ============================================================================
# QR ERRORS
# ============================================================================

class QRCodeError(ReserveProofException):
    """Errore generazione QR code"""
    pass


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_input_error(
    field: str,
    value: Any,
    expected: str,
    code: Optional[str] = None
) -> InvalidAmountError:
    """
    Helper per creare errori su valori invalidi.

    Args:
        field: Nome campo invalido
        value: Valore ricevuto
        expected: Valore/tipo atteso
        code: Codice errore custom

    Returns:
        InvalidAmountError: Eccezione formattata

    Example:
        >>> raise format_input_error("value", -100, "integer in [0, 2^64)")
    """
    return InvalidAmountError(
        message=f"Invalid field '{field}': expected {expected}, got {value}",
        code=code or "INVALID_AMOUNT",
        details={"field": field, "value": value, "expected": expected}
    )


# ============================================================================
# EXPORT ALL
# ============================================================================

__all__ = [
    # Base
    "ReserveProofException",

    # Config
    "ConfigError",
    "ParameterError",

    # Input
    "InputError",
    "NoOutputsError",
    "InvalidAmountError",
    "AmountOverflowError",
    "BelowThresholdError",

    # Protocol
    "ProtocolError",
    "StaleOrFutureHeightError",
    "RootMismatchError",
    "RangeProofInvalidError",

    # Workflow
    "WorkflowError",
    "TamperedRequestError",
    "StructureAlteredError",
    "MissingSignatureError",
    "InvalidStateTransitionError",
    "SigningRequestMismatchError",

    # Codec
    "CodecError",
    "PSBTFormatError",
    "DocumentFormatError",

    # Crypto
    "CryptoError",
    "InvalidPointError",

    # Oracle
    "OracleError",
    "OracleConnectionError",
    "OracleRPCError",

    # QR
    "QRCodeError",

    # Helpers
    "format_input_error",
]
