"""Public-input layout of the update circuits.

This module is the one place that fixes signal ordering and the batch
padding policy. The prover packs signals with it and the tree contract
rebuilds the verifier's inputs with it, so both sides agree bit for bit.

Single update (2 + 2d signals):
    [startIndex, leaf, priorFrontier[0..d-1], newFrontier[0..d-1]]

Mass update (3 + B + 2d signals):
    [startIndex, leafCount, leaves[0..B-1], priorFrontier[0..d-1],
     newFrontier[0..d-1], newRoot]

Padding: a batch with leafCount < B fills leaves[leafCount..B-1] with
ZERO_VALUE. Padding slots are not absorbed into the tree.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from vmtree.primitives.field import FF, ZERO_VALUE, ff_to_ints, to_ff_array


class CircuitKind(Enum):
    SINGLE_UPDATE = "single_update"
    MASS_UPDATE = "mass_update"


# --- Signal Records ---

@dataclass(frozen=True)
class SingleUpdateSignals:
    start_index: int
    leaf: int
    prior_frontier: Tuple[int, ...]
    new_frontier: Tuple[int, ...]


@dataclass(frozen=True)
class MassUpdateSignals:
    """Mass-update public signals. `leaves` is always padded to the batch size."""
    start_index: int
    leaf_count: int
    leaves: Tuple[int, ...]
    prior_frontier: Tuple[int, ...]
    new_frontier: Tuple[int, ...]
    new_root: int

    @property
    def real_leaves(self) -> Tuple[int, ...]:
        return self.leaves[:self.leaf_count]

    @property
    def padding(self) -> Tuple[int, ...]:
        return self.leaves[self.leaf_count:]


# --- Sizes ---

def single_update_size(depth: int) -> int:
    return 2 + 2 * depth


def mass_update_size(depth: int, batch_size: int) -> int:
    return 3 + batch_size + 2 * depth


def signal_count(kind: CircuitKind, depth: int, batch_size: int = 1) -> int:
    if kind is CircuitKind.SINGLE_UPDATE:
        return single_update_size(depth)
    return mass_update_size(depth, batch_size)


# --- Padding ---

def pad_batch(leaves: Sequence[int], batch_size: int) -> List[int]:
    """Pad a pending batch to the circuit's fixed size."""
    if not leaves:
        raise ValueError("a mass update needs at least one leaf")
    if len(leaves) > batch_size:
        raise ValueError(f"batch of {len(leaves)} leaves exceeds circuit size {batch_size}")
    return [int(x) for x in leaves] + [ZERO_VALUE] * (batch_size - len(leaves))


# --- Packing ---

def pack_single_update(signals: SingleUpdateSignals) -> FF:
    values = [signals.start_index, signals.leaf]
    values.extend(signals.prior_frontier)
    values.extend(signals.new_frontier)
    return to_ff_array(values)


def unpack_single_update(depth: int, public_signals: Sequence[int]) -> SingleUpdateSignals:
    values = _as_ints(public_signals)
    expected = single_update_size(depth)
    if len(values) != expected:
        raise ValueError(f"single update expects {expected} signals, got {len(values)}")
    return SingleUpdateSignals(
        start_index=values[0],
        leaf=values[1],
        prior_frontier=tuple(values[2:2 + depth]),
        new_frontier=tuple(values[2 + depth:2 + 2 * depth]),
    )


def pack_mass_update(signals: MassUpdateSignals) -> FF:
    values = [signals.start_index, signals.leaf_count]
    values.extend(signals.leaves)
    values.extend(signals.prior_frontier)
    values.extend(signals.new_frontier)
    values.append(signals.new_root)
    return to_ff_array(values)


def unpack_mass_update(depth: int, batch_size: int, public_signals: Sequence[int]) -> MassUpdateSignals:
    values = _as_ints(public_signals)
    expected = mass_update_size(depth, batch_size)
    if len(values) != expected:
        raise ValueError(f"mass update expects {expected} signals, got {len(values)}")

    idx = 2
    leaves = tuple(values[idx:idx + batch_size])
    idx += batch_size
    prior = tuple(values[idx:idx + depth])
    idx += depth
    new = tuple(values[idx:idx + depth])
    idx += depth
    return MassUpdateSignals(
        start_index=values[0],
        leaf_count=values[1],
        leaves=leaves,
        prior_frontier=prior,
        new_frontier=new,
        new_root=values[idx],
    )


def _as_ints(public_signals: Sequence[int]) -> List[int]:
    if isinstance(public_signals, FF):
        return ff_to_ints(public_signals)
    return [int(v) for v in public_signals]
