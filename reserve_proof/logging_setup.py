"""
ReserveProof - Logging System
===============================
Sistema logging strutturato JSON per audit e debugging.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Logging JSON strutturato
- Rotation automatica
- Multiple handlers (file, console)
- Context enrichment
- Performance tracking (prove/verify)
- Audit trail dei documenti emessi

NOTA: blinding scalar e openings non vengono MAI loggati.
"""

import logging
import logging.handlers
import json
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import traceback


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    Formatter per log in formato JSON.

    Output structure:
    {
        "timestamp": "2026-10-18T10:00:00.000000Z",
        "level": "INFO",
        "logger": "reserveproof.proof_service",
        "message": "Proof generated",
        "extra_data": {...},
        "exception": {...}
    }
    """

    def __init__(
        self,
        include_extra: bool = True,
        include_stack: bool = True
    ):
        super().__init__()
        self.include_extra = include_extra
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        """
        Formatta LogRecord in JSON.

        Args:
            record: LogRecord da formattare

        Returns:
            str: JSON string
        """
        log_data = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.process:
            log_data["process_id"] = record.process

        # Extra data (custom fields)
        if self.include_extra and hasattr(record, 'extra_data'):
            log_data["extra_data"] = record.extra_data

        if record.exc_info and self.include_stack:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%S.%fZ"
    )


# ============================================================================
# TEXT FORMATTER (Human-Readable)
# ============================================================================

class ColoredTextFormatter(logging.Formatter):
    """
    Formatter colorato per console.

    Colors:
    - DEBUG: Gray
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Bold Red
    """

    COLORS = {
        'DEBUG': '\033[90m',
        'INFO': '\033[92m',
        'WARNING': '\033[93m',
        'ERROR': '\033[91m',
        'CRITICAL': '\033[1;91m',
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        """Formatta con colori"""
        levelname = record.levelname
        if levelname in self.COLORS:
            levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        timestamp = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).strftime('%Y-%m-%d %H:%M:%S')

        message = f"{timestamp} [{levelname}] {record.name}: {record.getMessage()}"

        if hasattr(record, 'extra_data'):
            message += f" | {record.extra_data}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


# ============================================================================
# LOGGER CLASS
# ============================================================================

class ReserveProofLogger:
    """
    Wrapper logger per structured logging (extra_data nel record).

    Example:
        >>> logger = get_logger("verifier")
        >>> logger.info("Document verified", extra_data={"height": 812000})
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(
        self,
        level: int,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        exc_info: Any = None
    ):
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={'extra_data': extra_data} if extra_data else {}
        )

    def debug(self, message: str, extra_data: Optional[Dict] = None):
        """Log DEBUG"""
        self._log(logging.DEBUG, message, extra_data)

    def info(self, message: str, extra_data: Optional[Dict] = None):
        """Log INFO"""
        self._log(logging.INFO, message, extra_data)

    def warning(self, message: str, extra_data: Optional[Dict] = None):
        """Log WARNING"""
        self._log(logging.WARNING, message, extra_data)

    def error(self, message: str, extra_data: Optional[Dict] = None, exc_info: Any = None):
        """Log ERROR"""
        self._log(logging.ERROR, message, extra_data, exc_info)

    def critical(self, message: str, extra_data: Optional[Dict] = None, exc_info: Any = None):
        """Log CRITICAL"""
        self._log(logging.CRITICAL, message, extra_data, exc_info)

    def exception(self, message: str, extra_data: Optional[Dict] = None):
        """Log exception con traceback"""
        self._log(logging.ERROR, message, extra_data, exc_info=sys.exc_info())


# ============================================================================
# SETUP FUNCTION
# ============================================================================

def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_dir: Path = Path("./logs"),
    log_format: str = "json",
    log_rotation_mb: int = 10,
    log_retention_days: int = 7,
    enable_console: bool = True,
) -> ReserveProofLogger:
    """
    Setup logging system completo.

    Args:
        log_level: Level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Salva su file
        log_dir: Directory log files
        log_format: Formato file (json, text)
        log_rotation_mb: MB prima della rotation
        log_retention_days: Numero file di backup
        enable_console: Log anche su console (stderr)

    Returns:
        ReserveProofLogger: Logger root configurato

    Example:
        >>> logger = setup_logging(log_level="DEBUG", log_to_file=False)
        >>> logger.info("CLI started", extra_data={"command": "verify"})
    """
    root_logger = logging.getLogger("reserveproof")
    root_logger.setLevel(getattr(logging, log_level.upper()))

    root_logger.handlers.clear()

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / "reserveproof.log",
            maxBytes=log_rotation_mb * 1024 * 1024,
            backupCount=log_retention_days,
            encoding='utf-8'
        )

        if log_format == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                )
            )

        root_logger.addHandler(file_handler)

        # Separate error log
        error_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / "reserveproof_errors.log",
            maxBytes=log_rotation_mb * 1024 * 1024,
            backupCount=log_retention_days,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter(include_stack=True))
        root_logger.addHandler(error_handler)

    if enable_console:
        # stderr: stdout resta pulito per i frame QR
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredTextFormatter())
        root_logger.addHandler(console_handler)

    return ReserveProofLogger(root_logger)


# ============================================================================
# CATEGORY LOGGERS
# ============================================================================

def get_logger(category: str) -> ReserveProofLogger:
    """
    Ottieni logger per categoria specifica.

    Args:
        category: Categoria (commitments, range_proof, signing, rpc, ...)

    Returns:
        ReserveProofLogger: Logger per categoria
    """
    return ReserveProofLogger(logging.getLogger(f"reserveproof.{category}"))


# ============================================================================
# PERFORMANCE TRACKING
# ============================================================================

class PerformanceLogger:
    """
    Context manager per tracking performance.

    Example:
        >>> logger = get_logger("range_proof")
        >>> with PerformanceLogger(logger, "prove_surplus"):
        ...     prove_surplus(45, 30, params)
        # Logs: "prove_surplus completed in 41.20ms"
    """

    def __init__(
        self,
        logger: ReserveProofLogger,
        operation: str,
        threshold_ms: Optional[int] = None
    ):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        extra = {
            "operation": self.operation,
            "duration_ms": round(self.elapsed_ms, 2),
            "failed": exc_type is not None,
        }

        if self.threshold_ms and self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation} took {self.elapsed_ms:.2f}ms "
                f"(threshold: {self.threshold_ms}ms)",
                extra_data=extra
            )
        else:
            self.logger.debug(
                f"{self.operation} completed in {self.elapsed_ms:.2f}ms",
                extra_data=extra
            )


# ============================================================================
# AUDIT LOGGER
# ============================================================================

class AuditLogger:
    """
    Logger specializzato per audit trail dei documenti.

    Use for:
    - Proof generation (one-shot e draft)
    - Finalizzazione firme
    - Verifiche

    Registra solo dati pubblici del documento (root, altezza, minimo).
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self.logger = logging.getLogger("reserveproof.audit")
        self.logger.setLevel(logging.INFO)

        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            audit_file = (log_dir / "audit.log").resolve()

            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == audit_file
                for h in self.logger.handlers
            )
            if not already_attached:
                # No rotation per audit - keep all
                handler = logging.FileHandler(audit_file, encoding='utf-8')
                handler.setFormatter(JSONFormatter(include_extra=True))
                self.logger.addHandler(handler)

    def _record(self, message: str, action: str, **fields):
        self.logger.info(
            message,
            extra={
                'extra_data': {
                    "action": action,
                    **fields,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            }
        )

    def log_proof_generated(self, utxo_root: str, block_height: int, commitment_count: int, min_amount: int):
        """Log one-shot proof"""
        self._record(
            "Proof generated", "proof_generated",
            utxo_root=utxo_root, block_height=block_height,
            commitment_count=commitment_count, min_amount=min_amount,
        )

    def log_draft_created(self, utxo_root: str, psbt_hash: str, commitment_count: int):
        """Log draft + signing request"""
        self._record(
            "Draft created", "draft_created",
            utxo_root=utxo_root, psbt_hash=psbt_hash,
            commitment_count=commitment_count,
        )

    def log_finalized(self, utxo_root: str, ownership_count: int):
        """Log finalizzazione firme"""
        self._record(
            "Proof finalized", "proof_finalized",
            utxo_root=utxo_root, ownership_count=ownership_count,
        )

    def log_verification(self, utxo_root: str, block_height: int, success: bool, error: Optional[str] = None):
        """Log esito verifica"""
        self._record(
            "Proof verification", "proof_verified",
            utxo_root=utxo_root, block_height=block_height,
            success=success, error=error,
        )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "setup_logging",
    "get_logger",
    "ReserveProofLogger",
    "PerformanceLogger",
    "AuditLogger",
    "JSONFormatter",
    "ColoredTextFormatter",
]
