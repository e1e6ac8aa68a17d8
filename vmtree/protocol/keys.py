"""Proving and verifying keys for the update circuits.

A key pins the circuit shape: its kind, the tree depth and, for the mass
update, the fixed batch size. The key digest is a field element that
domain-separates proofs of different circuits.
"""

from dataclasses import dataclass
from typing import Tuple

from eth_abi import encode
from eth_utils import keccak

from vmtree.primitives.field import to_field_element
from vmtree.protocol.schema import CircuitKind, signal_count


@dataclass(frozen=True)
class VerifyingKey:
    """Verifier-side description of a circuit.

    Attributes:
        kind: Single or mass update
        depth: Tree depth the circuit was compiled for
        batch_size: Fixed number of leaf slots (1 for single update)
    """
    kind: CircuitKind
    depth: int
    batch_size: int = 1

    @property
    def digest(self) -> int:
        payload = encode(
            ["string", "uint8", "uint32"],
            [self.kind.value, self.depth, self.batch_size],
        )
        return to_field_element(keccak(payload))

    @property
    def n_public(self) -> int:
        return signal_count(self.kind, self.depth, self.batch_size)


@dataclass(frozen=True)
class ProvingKey:
    """Prover-side key; carries the matching verifying key."""
    vk: VerifyingKey

    @property
    def kind(self) -> CircuitKind:
        return self.vk.kind

    @property
    def depth(self) -> int:
        return self.vk.depth

    @property
    def batch_size(self) -> int:
        return self.vk.batch_size


def setup(kind: CircuitKind, depth: int, batch_size: int = 1) -> Tuple[ProvingKey, VerifyingKey]:
    """Generate a key pair for one circuit shape."""
    if kind is CircuitKind.SINGLE_UPDATE and batch_size != 1:
        raise ValueError("single update circuit has exactly one leaf slot")
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    vk = VerifyingKey(kind=kind, depth=depth, batch_size=batch_size)
    return ProvingKey(vk=vk), vk
