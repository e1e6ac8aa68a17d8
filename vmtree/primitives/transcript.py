"""
Fiat-Shamir transcript using the MiMC sponge.

The transcript absorbs field elements and produces challenges in a
deterministic, pseudorandom manner. The sponge has rate 1 and capacity 1:
each absorbed element is added into the rate branch before a permutation.
"""

from typing import List, Sequence

from vmtree.primitives.field import BN254_PRIME
from vmtree.primitives.mimc import mimc_feistel


class Transcript:
    """
    Fiat-Shamir transcript over the MiMC-Feistel permutation.

    Attributes:
        rate: Current rate branch
        capacity: Current capacity branch
        key: Permutation key (domain separator)
        pending: Absorbed elements not yet permuted
    """

    def __init__(self, key: int = 0):
        self.key = key % BN254_PRIME
        self.rate = 0
        self.capacity = 0
        self.pending: List[int] = []

    def put(self, input_data: Sequence[int]) -> None:
        """Absorb field elements."""
        for elem in input_data:
            self.pending.append(int(elem) % BN254_PRIME)

    def _update_state(self) -> None:
        for elem in self.pending:
            self.rate = (self.rate + elem) % BN254_PRIME
            self.rate, self.capacity = mimc_feistel(self.rate, self.capacity, self.key)
        self.pending = []

    def get_field(self) -> int:
        """Squeeze one challenge.

        Pending input is absorbed first; consecutive squeezes permute the
        state again so they never repeat.
        """
        if self.pending:
            self._update_state()
        else:
            self.rate, self.capacity = mimc_feistel(self.rate, self.capacity, self.key)
        return self.rate

    def get_fields(self, n: int) -> List[int]:
        return [self.get_field() for _ in range(n)]

    def get_state(self) -> List[int]:
        """Current sponge state after absorbing pending input."""
        if self.pending:
            self._update_state()
        return [self.rate, self.capacity]
