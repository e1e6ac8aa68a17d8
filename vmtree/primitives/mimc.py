"""
MiMC-Feistel sponge over the BN254 scalar field.

This is the two-to-one compression used for every Merkle node of the
accumulator and as the permutation behind the Fiat-Shamir transcript.

Parameters follow the circomlib MiMCSponge construction:
- 220 Feistel rounds, S-box x^5
- round constants c[1..218] from a keccak256 chain seeded with "mimcsponge",
  c[0] = c[219] = 0
- the last round does not swap the branches
"""

from functools import lru_cache
from typing import List, Sequence, Tuple

from eth_utils import keccak

from vmtree.primitives.field import BN254_PRIME, require_field_element

N_ROUNDS = 220
SEED = "mimcsponge"


@lru_cache(maxsize=None)
def round_constants(seed: str = SEED, n_rounds: int = N_ROUNDS) -> Tuple[int, ...]:
    """Derive the round constants by iterating keccak256 over the raw digest."""
    constants = [0] * n_rounds
    c = keccak(text=seed)
    for i in range(1, n_rounds):
        c = keccak(c)
        constants[i] = int.from_bytes(c, "big") % BN254_PRIME
    constants[0] = 0
    constants[n_rounds - 1] = 0
    return tuple(constants)


def _pow5(x: int) -> int:
    x2 = (x * x) % BN254_PRIME
    x4 = (x2 * x2) % BN254_PRIME
    return (x4 * x) % BN254_PRIME


def mimc_feistel(x_left: int, x_right: int, key: int = 0) -> Tuple[int, int]:
    """
    Apply the MiMC Feistel permutation to the pair (xL, xR).

    Args:
        x_left: left branch (sponge rate)
        x_right: right branch (sponge capacity)
        key: permutation key, 0 for the sponge

    Returns:
        (xL, xR) after N_ROUNDS rounds
    """
    cts = round_constants()
    xl = x_left % BN254_PRIME
    xr = x_right % BN254_PRIME
    k = key % BN254_PRIME

    for i in range(N_ROUNDS):
        t = (xl + k) % BN254_PRIME if i == 0 else (xl + k + cts[i]) % BN254_PRIME
        t5 = _pow5(t)
        if i < N_ROUNDS - 1:
            xl, xr = (xr + t5) % BN254_PRIME, xl
        else:
            xr = (xr + t5) % BN254_PRIME
    return xl, xr


def multi_hash(inputs: Sequence[int], key: int = 0, n_outputs: int = 1) -> List[int]:
    """Sponge hash of a variable-length input.

    Each element is added into the rate branch and the state is permuted.
    Further outputs are squeezed by permuting again.
    """
    r = 0
    c = 0
    for x in inputs:
        r = (r + x) % BN254_PRIME
        r, c = mimc_feistel(r, c, key)

    outputs = [r]
    for _ in range(1, n_outputs):
        r, c = mimc_feistel(r, c, key)
        outputs.append(r)
    return outputs


def hash_left_right(left: int, right: int) -> int:
    """Two-to-one compression H(left, right).

    Both inputs must already be field elements.
    """
    require_field_element(left, "left")
    require_field_element(right, "right")
    return multi_hash([left, right])[0]


__all__ = [
    "N_ROUNDS",
    "round_constants",
    "mimc_feistel",
    "multi_hash",
    "hash_left_right",
]
