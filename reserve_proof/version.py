"""
ReserveProof - Version Management
===================================
Versione del pacchetto e del formato documento.

Last Updated: 2026-10-18
Version: 1.0.0
"""

from typing import NamedTuple

from reserve_proof.constants import PROTOCOL_VERSION, SIGNING_TYPE_PSBT_OPRETURN


class VersionInfo(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: str = ""


VERSION = VersionInfo(major=1, minor=0, patch=0)


def get_version_string() -> str:
    """'1.0.0' oppure '1.0.0-rc1'"""
    version_str = ".".join(str(part) for part in VERSION[:3])
    if VERSION.prerelease:
        version_str += f"-{VERSION.prerelease}"
    return version_str


def get_build_info() -> dict:
    """Versione pacchetto, versione protocollo e tipo di firma (per `reserveproof --version`)"""
    return {
        "version": get_version_string(),
        "protocol_version": PROTOCOL_VERSION,
        "signing_type": SIGNING_TYPE_PSBT_OPRETURN,
    }


__version__ = get_version_string()

__all__ = [
    "__version__",
    "VERSION",
    "get_version_string",
    "get_build_info",
]
