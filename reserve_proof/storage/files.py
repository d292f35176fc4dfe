"""
ReserveProof - File Storage
=============================
Persistenza su file di documenti (JSON) e PSBT (base64 testo).

Security Level: MEDIUM
Last Updated: 2026-10-18
Version: 1.0.0
"""

from pathlib import Path
from typing import Union

from reserve_proof.domain.models import ProofDocument
from reserve_proof.errors import DocumentFormatError, PSBTFormatError
from reserve_proof.logging_setup import get_logger

logger = get_logger("storage.files")

PathLike = Union[str, Path]


# ============================================================================
# PROOF DOCUMENTS
# ============================================================================

def save_document(path: PathLike, document: ProofDocument) -> Path:
    """
    Scrive il documento come JSON indentato.

    Returns:
        Path: percorso scritto
    """
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    path.write_text(document.to_json(indent=2) + "\n", encoding="utf-8")
    logger.info(f"Proof document written to {path}", extra_data={"path": str(path)})
    return path


def load_document(path: PathLike) -> ProofDocument:
    """
    Legge un documento JSON.

    Raises:
        DocumentFormatError: file mancante o non UTF-8, JSON o campi malformati
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentFormatError(
            f"Cannot read proof document: {e}",
            code="DOCUMENT_UNREADABLE",
            details={"path": str(path)}
        )
    return ProofDocument.from_json(content)


# ============================================================================
# PSBT
# ============================================================================

def save_psbt(path: PathLike, psbt_base64: str) -> Path:
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    path.write_text(psbt_base64.strip() + "\n", encoding="utf-8")
    logger.info(f"PSBT written to {path}", extra_data={"path": str(path)})
    return path


def load_psbt(path: PathLike) -> str:
    """
    Legge una PSBT base64 (spazi e newline rimossi).

    Raises:
        PSBTFormatError: file mancante, non UTF-8 o vuoto
    """
    path = Path(path)
    try:
        content = "".join(path.read_text(encoding="utf-8").split())
    except (OSError, UnicodeDecodeError) as e:
        raise PSBTFormatError(
            f"Cannot read PSBT file: {e}",
            code="PSBT_UNREADABLE",
            details={"path": str(path)}
        )

    if not content:
        raise PSBTFormatError("PSBT file is empty", code="PSBT_EMPTY", details={"path": str(path)})
    return content


__all__ = [
    "save_document",
    "load_document",
    "save_psbt",
    "load_psbt",
]
