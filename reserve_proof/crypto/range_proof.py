"""
ReserveProof - Surplus Range-Proof Engine
===========================================
Bulletproofs single-value range proof (64 bit) sul surplus total - minimum.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Il prover dimostra di conoscere (v, γ) tali che V = v·G + γ·H e
0 <= v < 2^64, senza rivelare v. Il protocollo segue lo schema di
Bünz et al. (2018): commitment ai bit (A, S), polinomio t(x) (T1, T2),
inner-product argument logaritmico (L_j, R_j). Fiat-Shamir via Transcript.

Encoding (32 byte per elemento, 672 byte per n=64):
    A | S | T1 | T2 | t_x | tau_x | mu | (L_j | R_j) x log2(n) | a | b

Parametri pubblici (label del transcript, generatori) sono un valore
immutabile (ProofParameters) passato esplicitamente a prove e verify.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Tuple, Union

from reserve_proof.constants import (
    BULLETPROOF_GENS_SEED,
    PEDERSEN_H_SEED,
    POINT_SIZE,
    RANGE_PROOF_BITS,
    TRANSCRIPT_LABEL,
    is_valid_amount,
)
from reserve_proof.crypto.commitments import PedersenGenerators
from reserve_proof.crypto.group import (
    CURVE_ORDER,
    Point,
    hash_to_point,
    inner_product,
    multiscalar_mul,
    random_scalar,
    scalar_from_bytes,
    scalar_invert,
    scalar_powers,
    scalar_to_bytes,
)
from reserve_proof.crypto.transcript import Transcript
from reserve_proof.errors import (
    BelowThresholdError,
    CryptoError,
    ParameterError,
    RangeProofInvalidError,
    format_input_error,
)
from reserve_proof.logging_setup import PerformanceLogger, get_logger

logger = get_logger("crypto.range_proof")


# ============================================================================
# PARAMETERS
# ============================================================================

@dataclass(frozen=True)
class BulletproofGenerators:
    """Vettori di generatori indipendenti G_i, H_i"""
    G_vec: Tuple[Point, ...]
    H_vec: Tuple[Point, ...]

    @property
    def capacity(self) -> int:
        return min(len(self.G_vec), len(self.H_vec))


@lru_cache(maxsize=8)
def _derive_bulletproof_generators(seed: bytes, capacity: int) -> BulletproofGenerators:
    return BulletproofGenerators(
        G_vec=tuple(hash_to_point(seed + b"/G", i) for i in range(capacity)),
        H_vec=tuple(hash_to_point(seed + b"/H", i) for i in range(capacity)),
    )


@lru_cache(maxsize=8)
def _derive_pedersen_generators(seed: bytes) -> PedersenGenerators:
    return PedersenGenerators.from_seed(seed)


@dataclass(frozen=True)
class ProofParameters:
    """
    Parametri pubblici del range proof.

    Attributes:
        transcript_label: Domain separation del transcript
        bit_width: Ampiezza del range (solo 64 supportato)
        pedersen: Generatori (G, H) delle commitment
        generators: Generatori vettoriali Bulletproofs

    Raises:
        ParameterError: bit width diversa da 64 o capacità insufficiente
    """
    transcript_label: bytes
    bit_width: int
    pedersen: PedersenGenerators = field(repr=False)
    generators: BulletproofGenerators = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.transcript_label, bytes) or not self.transcript_label:
            raise ParameterError(
                "transcript_label must be non-empty bytes",
                code="INVALID_PARAMETERS"
            )
        if self.bit_width != RANGE_PROOF_BITS:
            raise ParameterError(
                f"Unsupported range proof bit width: {self.bit_width}",
                code="INVALID_PARAMETERS",
                details={"bit_width": self.bit_width, "supported": RANGE_PROOF_BITS}
            )
        if self.generators.capacity < self.bit_width:
            raise ParameterError(
                "Generator capacity below bit width",
                code="INVALID_PARAMETERS",
                details={"capacity": self.generators.capacity, "bit_width": self.bit_width}
            )

    @classmethod
    def derive(
        cls,
        transcript_label: bytes = TRANSCRIPT_LABEL,
        bit_width: int = RANGE_PROOF_BITS,
        pedersen_seed: bytes = PEDERSEN_H_SEED,
        generators_seed: bytes = BULLETPROOF_GENS_SEED,
        capacity: Optional[int] = None,
    ) -> "ProofParameters":
        """Costruisce i parametri derivando (e cachando) i generatori dai seed"""
        return cls(
            transcript_label=transcript_label,
            bit_width=bit_width,
            pedersen=_derive_pedersen_generators(pedersen_seed),
            generators=_derive_bulletproof_generators(
                generators_seed,
                bit_width if capacity is None else capacity,
            ),
        )

    @property
    def rounds(self) -> int:
        return self.bit_width.bit_length() - 1


@lru_cache(maxsize=1)
def get_default_parameters() -> ProofParameters:
    """Parametri di protocollo: label b"por", 64 bit, seed di default"""
    return ProofParameters.derive()


# ============================================================================
# PROOF OBJECT
# ============================================================================

@dataclass(frozen=True)
class RangeProof:
    """Range proof Bulletproofs (opaco per i chiamanti)"""
    A: Point
    S: Point
    T1: Point
    T2: Point
    t_x: int
    tau_x: int
    mu: int
    L_vec: Tuple[Point, ...]
    R_vec: Tuple[Point, ...]
    a: int
    b: int

    def to_bytes(self) -> bytes:
        parts = [self.A.to_bytes(), self.S.to_bytes(), self.T1.to_bytes(), self.T2.to_bytes()]
        parts += [scalar_to_bytes(self.t_x), scalar_to_bytes(self.tau_x), scalar_to_bytes(self.mu)]
        for L, R in zip(self.L_vec, self.R_vec):
            parts += [L.to_bytes(), R.to_bytes()]
        parts += [scalar_to_bytes(self.a), scalar_to_bytes(self.b)]
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> "RangeProof":
        """
        Decode della prova.

        Raises:
            RangeProofInvalidError: lunghezza, punti o scalari non validi
        """
        if len(data) % POINT_SIZE != 0 or len(data) < 9 * POINT_SIZE:
            raise RangeProofInvalidError(
                "Malformed range proof encoding",
                code="RANGE_PROOF_INVALID",
                details={"length": len(data)}
            )

        chunks = [data[i:i + POINT_SIZE] for i in range(0, len(data), POINT_SIZE)]
        if (len(chunks) - 9) % 2 != 0:
            raise RangeProofInvalidError(
                "Malformed range proof encoding",
                code="RANGE_PROOF_INVALID",
                details={"length": len(data)}
            )

        rounds = (len(chunks) - 9) // 2
        try:
            A, S, T1, T2 = (Point.from_bytes(c) for c in chunks[:4])
            t_x, tau_x, mu = (scalar_from_bytes(c) for c in chunks[4:7])
            lr = chunks[7:7 + 2 * rounds]
            L_vec = tuple(Point.from_bytes(c) for c in lr[0::2])
            R_vec = tuple(Point.from_bytes(c) for c in lr[1::2])
            a = scalar_from_bytes(chunks[-2])
            b = scalar_from_bytes(chunks[-1])
        except CryptoError as e:
            raise RangeProofInvalidError(
                f"Malformed range proof encoding: {e.message}",
                code="RANGE_PROOF_INVALID"
            )

        return cls(A=A, S=S, T1=T1, T2=T2, t_x=t_x, tau_x=tau_x, mu=mu,
                   L_vec=L_vec, R_vec=R_vec, a=a, b=b)


@dataclass(frozen=True)
class SurplusProof:
    """Commitment al surplus + range proof che lo dimostra non negativo"""
    commitment: Point
    proof: RangeProof

    def commitment_bytes(self) -> bytes:
        return self.commitment.to_bytes()

    def proof_bytes(self) -> bytes:
        return self.proof.to_bytes()


# ============================================================================
# TRANSCRIPT
# ============================================================================

def _range_transcript(params: ProofParameters, commitment: Point) -> Transcript:
    transcript = Transcript(params.transcript_label)
    transcript.append_message(b"dom-sep", b"rangeproof v1")
    transcript.append_u64(b"n", params.bit_width)
    transcript.append_u64(b"m", 1)
    transcript.append_point(b"V", commitment)
    return transcript


# ============================================================================
# PROVER
# ============================================================================

def prove_range(value: int, blinding: int, params: ProofParameters) -> Tuple[RangeProof, Point]:
    """
    Prova che V = value·G + blinding·H apre su un valore in [0, 2^n).

    Args:
        value: Valore segreto
        blinding: Blinding scalar
        params: Parametri pubblici

    Returns:
        (RangeProof, V)

    Raises:
        InvalidAmountError: value fuori range
    """
    n = params.bit_width
    if not is_valid_amount(value):
        raise format_input_error("value", value, f"integer in [0, 2^{n})")

    pg = params.pedersen
    G_vec = list(params.generators.G_vec[:n])
    H_vec = list(params.generators.H_vec[:n])

    V = pg.commit(value, blinding)
    transcript = _range_transcript(params, V)

    # Bit decomposition: a_L ∈ {0,1}^n, a_R = a_L - 1
    a_L = [(value >> i) & 1 for i in range(n)]
    a_R = [(bit - 1) % CURVE_ORDER for bit in a_L]

    alpha = random_scalar()
    A = pg.H * alpha + multiscalar_mul(a_L + a_R, G_vec + H_vec)

    s_L = [random_scalar() for _ in range(n)]
    s_R = [random_scalar() for _ in range(n)]
    rho = random_scalar()
    S = pg.H * rho + multiscalar_mul(s_L + s_R, G_vec + H_vec)

    transcript.append_point(b"A", A)
    transcript.append_point(b"S", S)
    y = transcript.challenge_scalar(b"y")
    z = transcript.challenge_scalar(b"z")
    zz = z * z % CURVE_ORDER

    y_pows = scalar_powers(y, n)
    two_pows = scalar_powers(2, n)

    # l(x) = l0 + l1·x, r(x) = r0 + r1·x
    l0 = [(bit - z) % CURVE_ORDER for bit in a_L]
    l1 = s_L
    r0 = [(y_pows[i] * (a_R[i] + z) + zz * two_pows[i]) % CURVE_ORDER for i in range(n)]
    r1 = [y_pows[i] * s_R[i] % CURVE_ORDER for i in range(n)]

    t1 = (inner_product(l0, r1) + inner_product(l1, r0)) % CURVE_ORDER
    t2 = inner_product(l1, r1)

    tau1 = random_scalar()
    tau2 = random_scalar()
    T1 = pg.commit(t1, tau1)
    T2 = pg.commit(t2, tau2)

    transcript.append_point(b"T1", T1)
    transcript.append_point(b"T2", T2)
    x = transcript.challenge_scalar(b"x")

    l_vec = [(l0[i] + l1[i] * x) % CURVE_ORDER for i in range(n)]
    r_vec = [(r0[i] + r1[i] * x) % CURVE_ORDER for i in range(n)]

    t_x = inner_product(l_vec, r_vec)
    tau_x = (tau2 * x * x + tau1 * x + zz * blinding) % CURVE_ORDER
    mu = (alpha + rho * x) % CURVE_ORDER

    transcript.append_scalar(b"t_x", t_x)
    transcript.append_scalar(b"tau_x", tau_x)
    transcript.append_scalar(b"mu", mu)
    w = transcript.challenge_scalar(b"w")
    Q = pg.G * w

    # H'_i = y^-i · H_i
    y_inv_pows = scalar_powers(scalar_invert(y), n)
    H_prime = [H_vec[i] * y_inv_pows[i] for i in range(n)]

    L_vec, R_vec, a, b = _prove_inner_product(transcript, Q, G_vec, H_prime, l_vec, r_vec)

    proof = RangeProof(
        A=A, S=S, T1=T1, T2=T2,
        t_x=t_x, tau_x=tau_x, mu=mu,
        L_vec=tuple(L_vec), R_vec=tuple(R_vec),
        a=a, b=b,
    )
    return proof, V


def _prove_inner_product(
    transcript: Transcript,
    Q: Point,
    G: List[Point],
    H: List[Point],
    a: List[int],
    b: List[int],
) -> Tuple[List[Point], List[Point], int, int]:
    """Inner-product argument: dimezza i vettori log2(n) volte"""
    L_vec = []
    R_vec = []
    n = len(a)
    transcript.append_u64(b"ipp-n", n)

    while n > 1:
        n //= 2
        a_L, a_R = a[:n], a[n:]
        b_L, b_R = b[:n], b[n:]
        G_L, G_R = G[:n], G[n:]
        H_L, H_R = H[:n], H[n:]

        c_L = inner_product(a_L, b_R)
        c_R = inner_product(a_R, b_L)

        L = multiscalar_mul(a_L + b_R + [c_L], G_R + H_L + [Q])
        R = multiscalar_mul(a_R + b_L + [c_R], G_L + H_R + [Q])
        L_vec.append(L)
        R_vec.append(R)

        transcript.append_point(b"L", L)
        transcript.append_point(b"R", R)
        u = transcript.challenge_scalar(b"u")
        u_inv = scalar_invert(u)

        a = [(a_L[i] * u + u_inv * a_R[i]) % CURVE_ORDER for i in range(n)]
        b = [(b_L[i] * u_inv + u * b_R[i]) % CURVE_ORDER for i in range(n)]
        G = [G_L[i] * u_inv + G_R[i] * u for i in range(n)]
        H = [H_L[i] * u + H_R[i] * u_inv for i in range(n)]

    return L_vec, R_vec, a[0], b[0]


# ============================================================================
# VERIFIER
# ============================================================================

def _invalid(reason: str) -> RangeProofInvalidError:
    return RangeProofInvalidError(
        f"Range proof verification failed: {reason}",
        code="RANGE_PROOF_INVALID",
        details={"stage": "range_proof", "reason": reason}
    )


def verify_range(proof: RangeProof, commitment: Point, params: ProofParameters) -> None:
    """
    Verifica una range proof contro la commitment V.

    Funzione pura: stessi input, stesso esito.

    Raises:
        RangeProofInvalidError: prova non valida per V e params
    """
    n = params.bit_width
    if len(proof.L_vec) != params.rounds or len(proof.R_vec) != params.rounds:
        raise _invalid("wrong number of inner-product rounds")

    pg = params.pedersen
    G_vec = params.generators.G_vec[:n]
    H_vec = params.generators.H_vec[:n]

    transcript = _range_transcript(params, commitment)
    transcript.append_point(b"A", proof.A)
    transcript.append_point(b"S", proof.S)
    y = transcript.challenge_scalar(b"y")
    z = transcript.challenge_scalar(b"z")
    transcript.append_point(b"T1", proof.T1)
    transcript.append_point(b"T2", proof.T2)
    x = transcript.challenge_scalar(b"x")
    transcript.append_scalar(b"t_x", proof.t_x)
    transcript.append_scalar(b"tau_x", proof.tau_x)
    transcript.append_scalar(b"mu", proof.mu)
    w = transcript.challenge_scalar(b"w")

    transcript.append_u64(b"ipp-n", n)
    challenges = []
    for L, R in zip(proof.L_vec, proof.R_vec):
        transcript.append_point(b"L", L)
        transcript.append_point(b"R", R)
        challenges.append(transcript.challenge_scalar(b"u"))

    if 0 in (y, z, x, w) or 0 in challenges:
        raise _invalid("degenerate challenge")

    zz = z * z % CURVE_ORDER
    y_pows = scalar_powers(y, n)
    two_pows = scalar_powers(2, n)

    # 1. t(x) = <l(x), r(x)> è coerente con V, T1, T2
    delta = ((z - zz) * sum(y_pows) - zz * z * sum(two_pows)) % CURVE_ORDER
    lhs = pg.commit(proof.t_x, proof.tau_x)
    rhs = commitment * zz + pg.G * delta + proof.T1 * x + proof.T2 * (x * x)
    if lhs != rhs:
        raise _invalid("polynomial commitment check")

    # 2. Inner-product argument su P
    Q = pg.G * w
    y_inv_pows = scalar_powers(scalar_invert(y), n)

    # Coefficienti espressi su H_i (H'_i = y^-i · H_i)
    h_coeffs = [(z + zz * two_pows[i] * y_inv_pows[i]) % CURVE_ORDER for i in range(n)]
    g_sum = Point.identity()
    for G_i in G_vec:
        g_sum = g_sum + G_i

    P = (
        proof.A
        + proof.S * x
        - g_sum * z
        + multiscalar_mul(h_coeffs, H_vec)
        - pg.H * proof.mu
        + Q * proof.t_x
    )

    challenges_inv = [scalar_invert(u) for u in challenges]
    for L, R, u, u_inv in zip(proof.L_vec, proof.R_vec, challenges, challenges_inv):
        P = P + L * (u * u) + R * (u_inv * u_inv)

    s = _folding_coefficients(challenges, challenges_inv, n)
    s_inv = _folding_coefficients(challenges_inv, challenges, n)

    expected = (
        multiscalar_mul([proof.a * s_i for s_i in s], G_vec)
        + multiscalar_mul([proof.b * s_inv[i] * y_inv_pows[i] for i in range(n)], H_vec)
        + Q * (proof.a * proof.b)
    )
    if P != expected:
        raise _invalid("inner-product check")


def _folding_coefficients(up: List[int], down: List[int], n: int) -> List[int]:
    """
    Coefficiente di G_i dopo tutti i round di folding.

    Il round j usa il bit (k-1-j) dell'indice: bit a 1 -> up[j], a 0 -> down[j].
    """
    k = len(up)
    coeffs = []
    for i in range(n):
        s = 1
        for j in range(k):
            s = s * (up[j] if (i >> (k - 1 - j)) & 1 else down[j]) % CURVE_ORDER
        coeffs.append(s)
    return coeffs


# ============================================================================
# SURPLUS API
# ============================================================================

def prove_surplus(total: int, minimum: int, params: ProofParameters) -> SurplusProof:
    """
    Prova che total - minimum >= 0 senza rivelare total.

    Args:
        total: Somma dei valori impegnati
        minimum: Soglia dichiarata pubblicamente
        params: Parametri pubblici

    Returns:
        SurplusProof: commitment al surplus + range proof

    Raises:
        InvalidAmountError: total o minimum fuori da [0, 2^64)
        BelowThresholdError: total < minimum (nessuna prova costruita)
    """
    if not is_valid_amount(total):
        raise format_input_error("total", total, "integer in [0, 2^64)")
    if not is_valid_amount(minimum):
        raise format_input_error("min_amount", minimum, "integer in [0, 2^64)")

    if total < minimum:
        raise BelowThresholdError(
            "Committed total is below the declared minimum",
            code="BELOW_THRESHOLD",
            details={"min_amount": minimum}
        )

    with PerformanceLogger(logger, "prove_surplus"):
        proof, commitment = prove_range(total - minimum, random_scalar(), params)

    return SurplusProof(commitment=commitment, proof=proof)


def verify_surplus(
    proof: Union[RangeProof, bytes],
    commitment: Union[Point, bytes],
    params: ProofParameters,
) -> None:
    """
    Verifica la range proof del surplus.

    Accetta oggetti decodificati o bytes grezzi (documento).

    Raises:
        RangeProofInvalidError: encoding malformato o prova non valida
    """
    if isinstance(proof, (bytes, bytearray)):
        proof = RangeProof.from_bytes(bytes(proof))

    if isinstance(commitment, (bytes, bytearray)):
        try:
            commitment = Point.from_bytes(bytes(commitment))
        except CryptoError as e:
            raise RangeProofInvalidError(
                f"Malformed surplus commitment: {e.message}",
                code="RANGE_PROOF_INVALID"
            )

    with PerformanceLogger(logger, "verify_surplus"):
        verify_range(proof, commitment, params)


__all__ = [
    "BulletproofGenerators",
    "ProofParameters",
    "get_default_parameters",
    "RangeProof",
    "SurplusProof",
    "prove_range",
    "verify_range",
    "prove_surplus",
    "verify_surplus",
]
