'''Shortened quaternary Hamming codes

Codewords are strings over A/C/G/T (read as the elements 0..3 of GF(4))
whose pairwise Hamming distance is at least 3. They are used to seed
candidate pools with an initial distance guarantee.'''

import random
from itertools import product
from typing import Iterator, List, Optional, Sequence

from .config import BASES

# GF(4) = {0, 1, a, a+1} with a^2 = a + 1; addition is XOR
GF4_MUL = (
    (0, 0, 0, 0),
    (0, 1, 2, 3),
    (0, 2, 3, 1),
    (0, 3, 1, 2),
)

MIN_DISTANCE = 3


def projective_points(dimension: int) -> Iterator[tuple]:
    """Nonzero vectors of GF(4)^dimension whose first nonzero entry is 1"""
    for vector in product(range(4), repeat=dimension):
        nonzero = [v for v in vector if v]
        if nonzero and nonzero[0] == 1:
            yield vector


class QuaternaryHammingCode:
    """Systematic shortened Hamming code of a given length over GF(4)

    The parity check matrix is [A | I] where the columns of A are distinct
    projective points that are not unit vectors. No column is a multiple of
    another, so every pair of codewords differs in at least 3 positions.
    """

    def __init__(self, length: int):
        if length < 1:
            raise ValueError("Code length must be positive")
        self.length = length
        self.num_checks = 1
        while (4 ** self.num_checks - 1) // 3 < length:
            self.num_checks += 1
        self.dimension = max(0, length - self.num_checks)

        r = self.num_checks
        columns = [p for p in projective_points(r) if sum(1 for v in p if v) > 1]
        self.columns = columns[:self.dimension]

    @property
    def size(self) -> int:
        """Number of codewords in each coset"""
        return 4 ** self.dimension

    def encode(self, message: Sequence[int], syndrome: Optional[Sequence[int]] = None) -> List[int]:
        """Append check symbols to a message of `dimension` symbols.

        A nonzero syndrome selects a coset of the code, which keeps the
        minimum distance."""
        if len(message) != self.dimension:
            raise ValueError(f"Message must have {self.dimension} symbols")
        checks = list(syndrome) if syndrome is not None else [0] * self.num_checks
        for symbol, column in zip(message, self.columns):
            for row in range(self.num_checks):
                checks[row] ^= GF4_MUL[symbol][column[row]]
        # in characteristic 2 the check symbols equal A*m (+ syndrome)
        return list(message) + checks

    def random_syndrome(self, rng: random.Random) -> List[int]:
        return [rng.randrange(4) for _ in range(self.num_checks)]

    def random_codeword(self, rng: random.Random, syndrome: Optional[Sequence[int]] = None) -> str:
        """Random codeword (as nucleotides) of the coset selected by `syndrome`"""
        message = [rng.randrange(4) for _ in range(self.dimension)]
        return ''.join(BASES[s] for s in self.encode(message, syndrome))
