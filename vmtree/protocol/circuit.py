"""Update circuit relations.

Each function checks the statement a proof attests to, expressed over the
unpacked public signals:

- single update: absorbing `leaf` at `startIndex` into `priorFrontier`
  yields `newFrontier`.
- mass update: absorbing the first `leafCount` leaves at `startIndex` yields
  `newFrontier`, `newRoot` is the root of `newFrontier` with
  `startIndex + leafCount` leaves, and every padding slot holds ZERO_VALUE.

They return False instead of raising so a malformed statement is simply not
satisfied.
"""

from vmtree.primitives.accumulator import compute_transition
from vmtree.primitives.field import ZERO_VALUE, is_field_element
from vmtree.protocol.schema import MassUpdateSignals, SingleUpdateSignals


def single_update_constraints(depth: int, signals: SingleUpdateSignals) -> bool:
    if not _frontiers_in_field(signals.prior_frontier, signals.new_frontier):
        return False
    if not is_field_element(signals.leaf):
        return False
    if signals.start_index >= 1 << depth:
        return False

    t = compute_transition(depth, signals.start_index, [signals.leaf], signals.prior_frontier)
    return t.frontier == tuple(signals.new_frontier)


def mass_update_constraints(depth: int, batch_size: int, signals: MassUpdateSignals) -> bool:
    if len(signals.leaves) != batch_size:
        return False
    if not 1 <= signals.leaf_count <= batch_size:
        return False
    if any(p != ZERO_VALUE for p in signals.padding):
        return False
    if not _frontiers_in_field(signals.prior_frontier, signals.new_frontier):
        return False
    if not all(is_field_element(x) for x in signals.leaves):
        return False
    if not is_field_element(signals.new_root):
        return False
    if signals.start_index + signals.leaf_count > 1 << depth:
        return False

    t = compute_transition(depth, signals.start_index, signals.real_leaves, signals.prior_frontier)
    return t.frontier == tuple(signals.new_frontier) and t.root == signals.new_root


def _frontiers_in_field(*frontiers) -> bool:
    return all(is_field_element(v) for f in frontiers for v in f)
