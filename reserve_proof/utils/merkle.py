"""
ReserveProof - Merkle Aggregator
==================================
Merkle root SHA-256 sulle commitment, nell'ordine restituito dall'oracle.

Regole:
- zero foglie -> digest di zeri
- una foglia -> la foglia stessa (nessun hashing)
- livello dispari -> l'ultimo nodo viene duplicato
- nodo padre = SHA-256(left || right), singolo hash

Nota: col padding duplicate-last, [a, b, c] e [a, b, c, c] hanno la
stessa root. Il numero di commitment è pubblico nel documento, quindi il
verifier ricalcola sempre sull'insieme completo.
"""

import hashlib
from typing import List, Sequence

from reserve_proof.constants import EMPTY_MERKLE_ROOT
from reserve_proof.logging_setup import get_logger

logger = get_logger("utils.merkle")


# ============================================================================
# MERKLE TREE
# ============================================================================

def hash_pair(left: bytes, right: bytes) -> bytes:
    """SHA-256(left || right)"""
    return hashlib.sha256(left + right).digest()


class MerkleTree:
    """
    Merkle tree con tutti i livelli conservati (ispezione/debug).

    Examples:
        >>> tree = MerkleTree([c1, c2, c3])
        >>> tree.get_root() == compute_merkle_root([c1, c2, c3])
        True
        >>> len(tree.levels)
        3
    """

    def __init__(self, leaves: Sequence[bytes]):
        """
        Args:
            leaves: Foglie in ordine (commitment serializzate)
        """
        self.leaves = [bytes(leaf) for leaf in leaves]
        self.levels = self._build_levels(self.leaves)

    def _build_levels(self, leaves: List[bytes]) -> List[List[bytes]]:
        if not leaves:
            return [[EMPTY_MERKLE_ROOT]]

        levels = [list(leaves)]
        nodes = list(leaves)

        while len(nodes) > 1:
            # If odd number of nodes, duplicate last one
            if len(nodes) % 2 == 1:
                nodes.append(nodes[-1])

            nodes = [hash_pair(nodes[i], nodes[i + 1]) for i in range(0, len(nodes), 2)]
            levels.append(nodes)

        return levels

    def get_root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def depth(self) -> int:
        return len(self.levels) - 1


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def compute_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """
    Compute Merkle root from ordered leaves.

    Examples:
        >>> compute_merkle_root([]) == b"\\x00" * 32
        True
        >>> compute_merkle_root([leaf]) == leaf
        True
    """
    return MerkleTree(leaves).get_root()


def verify_merkle_root(leaves: Sequence[bytes], root: bytes) -> bool:
    """Ricalcola la root sull'insieme completo e confronta"""
    return compute_merkle_root(leaves) == root


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "hash_pair",
    "MerkleTree",
    "compute_merkle_root",
    "verify_merkle_root",
]
