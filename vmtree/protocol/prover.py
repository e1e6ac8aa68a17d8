"""Off-chain proof generation for tree updates.

The prover runs the accumulator transition, lays the result out with the
shared schema and binds a proof to those signals. The signals it returns
are exactly what the tree contract reconstructs from live state, so a proof
made against a stale frontier or start index will not verify.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from vmtree.primitives.accumulator import compute_transition
from vmtree.protocol.circuit import mass_update_constraints, single_update_constraints
from vmtree.protocol.keys import ProvingKey
from vmtree.protocol.proof import Proof, derive_proof
from vmtree.protocol.schema import (
    CircuitKind,
    MassUpdateSignals,
    SingleUpdateSignals,
    pack_mass_update,
    pack_single_update,
    pad_batch,
)


@dataclass(frozen=True)
class UpdateProof:
    """Everything an updater submits, plus the signals it was proven against."""
    proof: Proof
    public_signals: Tuple[int, ...]
    frontier: Tuple[int, ...]
    root: int


def prove_single_update(
    pk: ProvingKey,
    start_index: int,
    leaf: int,
    prior_frontier: Sequence[int],
) -> UpdateProof:
    """Prove insertion of one leaf at `start_index`."""
    _require_kind(pk, CircuitKind.SINGLE_UPDATE)
    t = compute_transition(pk.depth, start_index, [leaf], prior_frontier)
    signals = SingleUpdateSignals(
        start_index=start_index,
        leaf=leaf,
        prior_frontier=tuple(int(v) for v in prior_frontier),
        new_frontier=t.frontier,
    )
    # The witness must satisfy the relation before it is bound
    if not single_update_constraints(pk.depth, signals):
        raise ValueError("single update witness does not satisfy the circuit")

    public = [int(v) for v in pack_single_update(signals)]
    return UpdateProof(
        proof=derive_proof(pk.vk.digest, public),
        public_signals=tuple(public),
        frontier=t.frontier,
        root=t.root,
    )


def prove_mass_update(
    pk: ProvingKey,
    start_index: int,
    leaves: Sequence[int],
    prior_frontier: Sequence[int],
) -> UpdateProof:
    """Prove insertion of a pending batch, padded to the circuit's batch size.

    Args:
        pk: Mass update proving key
        start_index: Tree leaf count before the batch
        leaves: Pending leaves, 1 to pk.batch_size of them
        prior_frontier: Frontier before the batch

    Returns:
        UpdateProof carrying the new frontier and root to submit
    """
    _require_kind(pk, CircuitKind.MASS_UPDATE)
    padded = pad_batch(leaves, pk.batch_size)
    t = compute_transition(pk.depth, start_index, leaves, prior_frontier)
    signals = MassUpdateSignals(
        start_index=start_index,
        leaf_count=len(leaves),
        leaves=tuple(padded),
        prior_frontier=tuple(int(v) for v in prior_frontier),
        new_frontier=t.frontier,
        new_root=t.root,
    )
    if not mass_update_constraints(pk.depth, pk.batch_size, signals):
        raise ValueError("mass update witness does not satisfy the circuit")

    public = [int(v) for v in pack_mass_update(signals)]
    return UpdateProof(
        proof=derive_proof(pk.vk.digest, public),
        public_signals=tuple(public),
        frontier=t.frontier,
        root=t.root,
    )


def _require_kind(pk: ProvingKey, kind: CircuitKind) -> None:
    if pk.kind is not kind:
        raise ValueError(f"expected a {kind.value} proving key, got {pk.kind.value}")
