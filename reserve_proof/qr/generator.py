"""
ReserveProof - Animated QR Hand-off
=====================================
Trasferisce una PSBT a un signer air-gapped come sequenza di QR code
sul terminale.

Formato frame: chunk di 400 byte del payload, codificato base58, un QR
(error correction L) per chunk, mostrati a frequenza fissa (default 5 fps).
"""

import io
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, TextIO, Union

import qrcode
from qrcode.exceptions import DataOverflowError

from reserve_proof.constants import QR_CHUNK_SIZE, QR_DEFAULT_FPS
from reserve_proof.errors import QRCodeError
from reserve_proof.logging_setup import get_logger
from reserve_proof.utils.base58 import base58_encode

logger = get_logger("qr.generator")


ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class QRFrame:
    """Un frame dell'animazione"""
    index: int
    total: int
    text: str
    rendered: str


# ============================================================================
# QR FRAME RENDERER
# ============================================================================

class QRFrameRenderer:
    """
    Renderer di QR animati per il terminale.

    Examples:
        >>> renderer = QRFrameRenderer(fps=5)
        >>> frames = renderer.build_frames(psbt_b64)
        >>> frames[0].text == base58_encode(psbt_b64.encode()[:400])
        True
        >>> renderer.play(psbt_b64)
    """

    def __init__(
        self,
        chunk_size: int = QR_CHUNK_SIZE,
        fps: int = QR_DEFAULT_FPS,
        error_correction: str = "L",
        border: int = 2,
    ):
        if chunk_size <= 0:
            raise QRCodeError(f"chunk_size must be positive, got {chunk_size}", code="INVALID_QR_CONFIG")
        if fps <= 0:
            raise QRCodeError(f"fps must be positive, got {fps}", code="INVALID_QR_CONFIG")
        if error_correction.upper() not in ERROR_CORRECTION_LEVELS:
            raise QRCodeError(f"Unknown error correction level: {error_correction}", code="INVALID_QR_CONFIG")

        self.chunk_size = chunk_size
        self.fps = fps
        self.error_correction = ERROR_CORRECTION_LEVELS[error_correction.upper()]
        self.border = border

    def split(self, payload: Union[str, bytes]) -> List[bytes]:
        """Divide il payload in chunk da chunk_size byte"""
        raw = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        if not raw:
            raise QRCodeError("Cannot render an empty payload", code="EMPTY_PAYLOAD")
        return [raw[i:i + self.chunk_size] for i in range(0, len(raw), self.chunk_size)]

    def render_text(self, text: str) -> str:
        """QR ASCII di un testo"""
        qr = qrcode.QRCode(
            version=None,
            error_correction=self.error_correction,
            border=self.border,
        )
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except DataOverflowError as e:
            raise QRCodeError(f"Frame too large for a QR code: {e}", code="QR_OVERFLOW")

        buffer = io.StringIO()
        qr.print_ascii(out=buffer, invert=True)
        return buffer.getvalue()

    def build_frames(self, payload: Union[str, bytes]) -> List[QRFrame]:
        """Frame completi, senza I/O"""
        chunks = self.split(payload)
        frames = []
        for index, chunk in enumerate(chunks):
            text = base58_encode(chunk)
            frames.append(QRFrame(
                index=index,
                total=len(chunks),
                text=text,
                rendered=self.render_text(text),
            ))
        return frames

    def play(
        self,
        payload: Union[str, bytes],
        stream: TextIO = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Mostra i frame su stream, uno ogni 1/fps secondi.

        Returns:
            int: numero di frame mostrati
        """
        stream = stream or sys.stdout
        frames = self.build_frames(payload)

        stream.write(f"Building PSBT QR ({len(frames)} frames, press Ctrl-C to abort) ...\n")
        logger.debug("Playing QR frames", extra_data={"frames": len(frames), "fps": self.fps})

        for frame in frames:
            stream.write(frame.rendered)
            stream.write(f"[{frame.index + 1}/{frame.total}]\n")
            stream.flush()
            sleep(1.0 / self.fps)

        return len(frames)


__all__ = [
    "QRFrame",
    "QRFrameRenderer",
]
