"""
ReserveProof - Configuration Management
=========================================
Gestione centralizzata configurazione con Pydantic Settings.
Supporta environment variables, file .env, override runtime.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Validazione automatica tipi
- Environment variables con prefisso RESERVEPROOF_
- File .env support
- Profile multipli (dev/regtest)

NOTA: i parametri crittografici (bit-width, transcript label, generatori)
NON sono configurabili: vivono in constants.py e range_proof.ProofParameters.
"""

import os
from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reserve_proof.constants import (
    DEFAULT_DRAFT_FILE,
    DEFAULT_PROOF_FILE,
    DEFAULT_PSBT_FILE,
    QR_CHUNK_SIZE,
    QR_DEFAULT_FPS,
)


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class ReserveSettings(BaseSettings):
    """
    Configurazione principale ReserveProof.

    Supporta:
    - Caricamento da environment variables (RESERVEPROOF_*)
    - Caricamento da file .env
    - Override programmatici
    - Validazione automatica

    Example:
        # Da environment
        export RESERVEPROOF_RPC_URL="http://127.0.0.1:18443"
        export RESERVEPROOF_RPC_USER="alice"

        # Da codice
        config = ReserveSettings(network="regtest")
    """

    model_config = SettingsConfigDict(
        env_prefix='RESERVEPROOF_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # ========================================================================
    # NETWORK SETTINGS
    # ========================================================================

    network: str = Field(
        default="mainnet",
        description="Network type: mainnet, testnet, signet, regtest"
    )

    # ========================================================================
    # BITCOIN CORE RPC (chain-state oracle)
    # ========================================================================

    rpc_url: str = Field(
        default="http://127.0.0.1:8332",
        description="URL JSON-RPC del nodo Bitcoin Core"
    )

    rpc_user: Optional[str] = Field(
        default=None,
        description="Utente RPC"
    )

    rpc_password: Optional[str] = Field(
        default=None,
        repr=False,
        description="Password RPC"
    )

    rpc_timeout: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Timeout richieste RPC (secondi)"
    )

    # ========================================================================
    # FILE PATHS
    # ========================================================================

    default_proof_path: Path = Field(
        default=Path(DEFAULT_PROOF_FILE),
        description="Output di default per il documento finale"
    )

    default_draft_path: Path = Field(
        default=Path(DEFAULT_DRAFT_FILE),
        description="Output di default per il draft"
    )

    default_psbt_path: Path = Field(
        default=Path(DEFAULT_PSBT_FILE),
        description="Output di default per la PSBT non firmata"
    )

    # ========================================================================
    # QR HAND-OFF
    # ========================================================================

    qr_fps: int = Field(
        default=QR_DEFAULT_FPS,
        ge=1,
        le=30,
        description="Frame al secondo del QR animato"
    )

    qr_chunk_size: int = Field(
        default=QR_CHUNK_SIZE,
        ge=16,
        le=1024,
        description="Byte di payload per frame QR"
    )

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_to_file: bool = Field(
        default=False,
        description="Scrivi log su file"
    )

    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory log files"
    )

    log_format: str = Field(
        default="json",
        description="Formato log file: json, text"
    )

    log_rotation_mb: int = Field(
        default=10,
        ge=1,
        description="Dimensione max file log prima rotation (MB)"
    )

    log_retention_days: int = Field(
        default=7,
        ge=1,
        description="Numero file log di backup"
    )

    enable_audit_log: bool = Field(
        default=False,
        description="Audit trail JSON dei documenti (log_dir/audit.log)"
    )

    # ========================================================================
    # VALIDATORS
    # ========================================================================

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valida log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Valida formato log"""
        v_lower = v.lower()
        if v_lower not in ('json', 'text'):
            raise ValueError(f"Invalid log_format: {v}. Must be json or text")
        return v_lower

    @field_validator('network')
    @classmethod
    def validate_network(cls, v: str) -> str:
        """Valida network"""
        valid_networks = ['mainnet', 'testnet', 'signet', 'regtest']
        v_lower = v.lower()
        if v_lower not in valid_networks:
            raise ValueError(f"Invalid network: {v}. Must be one of {valid_networks}")
        return v_lower

    @field_validator('rpc_url')
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Valida schema URL RPC"""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid rpc_url: {v}. Must start with http:// or https://")
        return v.rstrip("/")

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def is_mainnet(self) -> bool:
        """Check se mainnet"""
        return self.network == "mainnet"

    def has_rpc_credentials(self) -> bool:
        """Check credenziali RPC presenti"""
        return bool(self.rpc_user) and bool(self.rpc_password)

    def to_dict(self) -> dict:
        """Serializza config (senza password)"""
        return self.model_dump(exclude={"rpc_password"})

    def to_json(self) -> str:
        """Serializza config in JSON (senza password)"""
        return self.model_dump_json(indent=2, exclude={"rpc_password"})

    def __repr__(self) -> str:
        return (
            f"ReserveSettings("
            f"network={self.network}, "
            f"rpc_url={self.rpc_url}, "
            f"log_level={self.log_level})"
        )


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

@lru_cache(maxsize=1)
def get_settings() -> ReserveSettings:
    """
    Ottieni singleton instance di ReserveSettings.

    Returns:
        ReserveSettings: Instance configurazione (cached)
    """
    return ReserveSettings()


def reload_settings() -> ReserveSettings:
    """
    Ricarica settings (invalida cache).

    Usare quando si cambiano environment variables runtime.
    """
    get_settings.cache_clear()
    return get_settings()


# ============================================================================
# PROFILE PRESETS
# ============================================================================

def get_development_config() -> ReserveSettings:
    """
    Config preset per development.

    Features:
    - Regtest node locale
    - Log DEBUG su console
    """
    return ReserveSettings(
        network="regtest",
        rpc_url="http://127.0.0.1:18443",
        log_level="DEBUG",
        log_to_file=False,
    )


def get_regtest_config(rpc_user: str = "user", rpc_password: str = "pass") -> ReserveSettings:
    """Config preset per regtest con credenziali esplicite"""
    return ReserveSettings(
        network="regtest",
        rpc_url="http://127.0.0.1:18443",
        rpc_user=rpc_user,
        rpc_password=rpc_password,
    )


# ============================================================================
# CONFIGURATION VALIDATION
# ============================================================================

def validate_config(config: ReserveSettings) -> tuple[bool, list[str]]:
    """
    Valida configurazione completa.

    Args:
        config: ReserveSettings da validare

    Returns:
        tuple: (is_valid, errors_list)
    """
    errors = []

    if not config.has_rpc_credentials():
        errors.append("rpc_user and rpc_password are required to reach the node")

    if config.is_mainnet() and config.rpc_url.startswith("http://") and "127.0.0.1" not in config.rpc_url and "localhost" not in config.rpc_url:
        errors.append("WARNING: plain-HTTP RPC to a remote mainnet node")

    if config.log_to_file and config.log_dir.exists() and not os.access(config.log_dir, os.W_OK):
        errors.append(f"Directory not writable: {config.log_dir}")

    return (len(errors) == 0, errors)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "ReserveSettings",
    "get_settings",
    "reload_settings",
    "get_development_config",
    "get_regtest_config",
    "validate_config",
]
