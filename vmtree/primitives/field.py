"""BN254 scalar field GF(p).

Uses galois for the field type carried by public-signal arrays. Hot paths
(MiMC rounds, frontier hashing) work on plain ints reduced mod p.
"""

from typing import List, Union

import galois
from eth_utils import keccak

# --- Field Construction ---

BN254_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# primitive_element is supplied so galois skips factoring p - 1
FF = galois.GF(BN254_PRIME, primitive_element=5, verify=False)
"""Scalar field of the BN254 curve."""

FIELD_SIZE_BYTES = 32

# Empty-leaf constant shared by the accumulator and the batch padding policy
ZERO_VALUE = int.from_bytes(keccak(text="tornado"), "big") % BN254_PRIME


# --- Conversions ---

def field(val: int) -> int:
    """Reduce a Python int into [0, p)."""
    return val % BN254_PRIME


def is_field_element(val: object) -> bool:
    """True for ints in [0, p). Booleans are rejected."""
    return isinstance(val, int) and not isinstance(val, bool) and 0 <= val < BN254_PRIME


def require_field_element(val: object, name: str = "value") -> int:
    if not is_field_element(val):
        raise ValueError(f"{name} must be a field element in [0, p), got {val!r}")
    return int(val)


def to_field_element(data: Union[bytes, str, int]) -> int:
    """Encode bytes, a 0x-hex string or an int as a field element.

    Addresses and digests are read big-endian and reduced mod p.
    """
    if isinstance(data, int):
        return field(data)
    if isinstance(data, str):
        data = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    return field(int.from_bytes(data, "big"))


def to_ff_array(values: List[int]) -> FF:
    """Build an FF array from ints already in range."""
    return FF([int(v) for v in values])


def ff_to_ints(values: FF) -> List[int]:
    return [int(v) for v in values]
