"""
ReserveProof - Command Line Interface
=======================================
CLI per generazione, firma e verifica dei proof-of-reserve.

Security Level: MEDIUM
Last Updated: 2026-10-18
Version: 1.0.0

Commands:
- generate: documento one-shot
- verify: verifica documento contro il nodo
- build-psbt: richiesta di firma (PSBT) + draft, opzionalmente come QR animato
- attach-sigs: unisce la PSBT firmata al draft
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

# Internal imports
from reserve_proof.config import ReserveSettings, get_settings, validate_config
from reserve_proof.constants import format_amount
from reserve_proof.errors import ReserveProofException
from reserve_proof.logging_setup import AuditLogger, get_logger, setup_logging
from reserve_proof.network.oracle import ChainOracle
from reserve_proof.network.rpc import BitcoinRPCOracle
from reserve_proof.qr.generator import QRFrameRenderer
from reserve_proof.services.proof_service import ProofService
from reserve_proof.storage.files import load_document, load_psbt, save_document, save_psbt
from reserve_proof.version import get_build_info, get_version_string


# ============================================================================
# CLI APP
# ============================================================================

app = typer.Typer(
    name="reserveproof",
    help="ReserveProof - lower-bound proof of reserve",
    add_completion=False
)

console = Console()

logger = get_logger("cli")


# ============================================================================
# HELPERS
# ============================================================================

def _settings() -> ReserveSettings:
    return get_settings()


def _build_oracle(
    rpc_url: Optional[str],
    rpc_user: Optional[str],
    rpc_pass: Optional[str],
) -> ChainOracle:
    """
    Oracle RPC: le opzioni CLI hanno precedenza sulle RESERVEPROOF_RPC_*.

    I problemi di validate_config() sulla configurazione effettiva vengono
    loggati come warning, senza bloccare il comando.
    """
    overrides = {"rpc_url": rpc_url, "rpc_user": rpc_user, "rpc_password": rpc_pass}
    settings = _settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    _, problems = validate_config(settings)
    for problem in problems:
        logger.warning(f"Configuration: {problem}", extra_data={"network": settings.network})

    return BitcoinRPCOracle(
        url=settings.rpc_url.rstrip("/"),
        user=settings.rpc_user,
        password=settings.rpc_password,
        timeout=settings.rpc_timeout,
    )


def _audit() -> Optional[AuditLogger]:
    settings = _settings()
    if settings.enable_audit_log:
        return AuditLogger(settings.log_dir)
    return None


def _fail(error: ReserveProofException) -> None:
    console.print(f"[red]{escape(str(error))}[/red]")
    raise typer.Exit(1)


RPC_URL = typer.Option(None, "--rpc-url", help="Bitcoin Core RPC URL")
RPC_USER = typer.Option(None, "--rpc-user", help="RPC user")
RPC_PASS = typer.Option(None, "--rpc-pass", help="RPC password")


# ============================================================================
# COMMANDS
# ============================================================================

@app.command("generate")
def generate(
    address: str = typer.Option(..., "--address", help="Address holding the reserve"),
    min_amount: int = typer.Option(..., "--min", help="Declared minimum (sat)"),
    height: int = typer.Option(..., "--height", help="Block height of the snapshot"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output proof file"),
    rpc_url: Optional[str] = RPC_URL,
    rpc_user: Optional[str] = RPC_USER,
    rpc_pass: Optional[str] = RPC_PASS,
):
    """Generate a one-shot proof document"""
    out = out or _settings().default_proof_path
    try:
        service = ProofService(_build_oracle(rpc_url, rpc_user, rpc_pass), audit=_audit())
        document = service.generate(address, min_amount, height)
        save_document(out, document)
    except ReserveProofException as e:
        _fail(e)

    console.print(f"[green]✅ proof generated ({document.commitment_count} commitments)[/green]")
    console.print(f"Saved to [cyan]{out}[/cyan]")


@app.command("verify")
def verify(
    proof: Path = typer.Option(..., "--proof", help="Proof file to verify"),
    rpc_url: Optional[str] = RPC_URL,
    rpc_user: Optional[str] = RPC_USER,
    rpc_pass: Optional[str] = RPC_PASS,
):
    """Verify a proof document against the node"""
    try:
        document = load_document(proof)
        service = ProofService(_build_oracle(rpc_url, rpc_user, rpc_pass), audit=_audit())
        report = service.verify(document)
    except ReserveProofException as e:
        _fail(e)

    table = Table(title="Proof of Reserve", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Block height", str(report.block_height))
    table.add_row("Chain height", str(report.current_height))
    table.add_row("UTXO root", report.utxo_root.hex())
    table.add_row("Commitments", str(report.commitment_count))
    table.add_row("Minimum", format_amount(report.min_amount))
    table.add_row("Ownership proofs", "present" if report.finalized else "none")

    console.print(table)
    console.print("[green]✅ proof verified[/green]")


@app.command("build-psbt")
def build_psbt(
    address: str = typer.Option(..., "--address", help="Address holding the reserve"),
    min_amount: int = typer.Option(..., "--min", help="Declared minimum (sat)"),
    height: int = typer.Option(..., "--height", help="Block height of the snapshot"),
    qr: bool = typer.Option(False, "--qr", help="Show the PSBT as animated QR"),
    psbt_out: Optional[Path] = typer.Option(None, "--psbt-out", help="Unsigned PSBT file"),
    draft_out: Optional[Path] = typer.Option(None, "--draft-out", help="Draft proof file"),
    rpc_url: Optional[str] = RPC_URL,
    rpc_user: Optional[str] = RPC_USER,
    rpc_pass: Optional[str] = RPC_PASS,
):
    """Build the signing request (PSBT) and a draft proof"""
    settings = _settings()
    psbt_out = psbt_out or settings.default_psbt_path
    draft_out = draft_out or settings.default_draft_path

    try:
        service = ProofService(_build_oracle(rpc_url, rpc_user, rpc_pass), audit=_audit())
        psbt_b64, draft = service.build_signing_request(address, min_amount, height)
        save_psbt(psbt_out, psbt_b64)
        save_document(draft_out, draft)
    except ReserveProofException as e:
        _fail(e)

    console.print(Panel.fit(
        f"[green]✅ PSBT and draft saved[/green]\n\n"
        f"PSBT: [cyan]{psbt_out}[/cyan]\n"
        f"Draft: [cyan]{draft_out}[/cyan]\n"
        f"psbt_hash: [cyan]{draft.psbt_hash.hex()}[/cyan]",
        title="Signing request",
        border_style="green"
    ))

    if qr:
        try:
            renderer = QRFrameRenderer(chunk_size=settings.qr_chunk_size, fps=settings.qr_fps)
            renderer.play(psbt_b64)
        except ReserveProofException as e:
            _fail(e)


@app.command("attach-sigs")
def attach_sigs(
    draft: Path = typer.Option(..., "--draft", help="Draft proof file"),
    signed_psbt: Path = typer.Option(..., "--signed-psbt", help="Signed PSBT file"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output proof file"),
):
    """Merge a signed PSBT into the draft proof"""
    out = out or _settings().default_proof_path
    try:
        # nessuna chiamata al nodo: l'oracle serve solo a costruire il service
        service = ProofService(BitcoinRPCOracle.from_settings(_settings()), audit=_audit())
        document = service.attach_signatures(load_document(draft), load_psbt(signed_psbt))
        save_document(out, document)
    except ReserveProofException as e:
        _fail(e)

    console.print(f"[green]✅ proof completed ({len(document.ownership_proofs)} ownership proofs)[/green]")


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def _version_callback(value: bool):
    if value:
        info = get_build_info()
        console.print(f"reserveproof {info['version']} (protocol v{info['protocol_version']}, {info['signing_type']})")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Verbose output"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
):
    """
    ReserveProof - lower-bound proof of reserve

    Dimostra che un indirizzo controlla almeno un minimo dichiarato,
    senza rivelare il saldo esatto.
    """
    settings = _settings()
    setup_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        log_to_file=settings.log_to_file,
        log_dir=settings.log_dir,
        log_format=settings.log_format,
        log_rotation_mb=settings.log_rotation_mb,
        log_retention_days=settings.log_retention_days,
    )
    if verbose:
        console.print(f"[dim]Verbose mode enabled (v{get_version_string()})[/dim]")


if __name__ == "__main__":
    app()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "app",
]
