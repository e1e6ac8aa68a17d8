"""Frontier-only incremental Merkle accumulator.

A depth-d binary tree is represented by its frontier: one value per level,
holding the most recent left-hand subtree root at that level still waiting
for a right sibling. Together with the leaf count this is enough to insert
new leaves and recompute the root without storing the tree.

Level 0 is the leaf level. Empty positions hash to the zero-subtree
constants zeros[level].
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from vmtree.primitives.field import ZERO_VALUE, require_field_element
from vmtree.primitives.mimc import hash_left_right

# --- Type Aliases ---

Frontier = List[int]
Root = int

MAX_DEPTH = 32


class CapacityError(ValueError):
    """Insertion past 2**depth leaves."""


# --- Zero Subtrees ---

@lru_cache(maxsize=None)
def _zero_hashes(depth: int) -> Tuple[int, ...]:
    zeros = [ZERO_VALUE]
    for _ in range(depth):
        zeros.append(hash_left_right(zeros[-1], zeros[-1]))
    return tuple(zeros)


def zero_hashes(depth: int) -> List[int]:
    """Roots of empty subtrees: zeros[i] is the root of an empty height-i tree.

    Returns depth + 1 values; zeros[depth] is the empty-tree root.
    """
    _check_depth(depth)
    return list(_zero_hashes(depth))


def initial_frontier(depth: int) -> Frontier:
    """Frontier of an empty tree."""
    return zero_hashes(depth)[:depth]


# --- Core Operations ---

@dataclass(frozen=True)
class Transition:
    """Result of absorbing a batch of leaves."""
    frontier: Tuple[int, ...]
    root: Root


def insert_leaf(depth: int, index: int, leaf: int, frontier: Frontier) -> Optional[Root]:
    """Insert one leaf at absolute position `index`, mutating `frontier`.

    At each level an even index parks the running hash in the frontier and
    stops; an odd index pairs it with the parked left sibling and carries the
    parent upward. When the carry passes the top level the tree is full and
    the carried value is its root, which is returned. Otherwise None.
    """
    if index < 0 or index >= 1 << depth:
        raise CapacityError(f"leaf index {index} out of range for depth {depth}")

    h = leaf
    idx = index
    for level in range(depth):
        if idx % 2 == 0:
            frontier[level] = h
            return None
        h = hash_left_right(frontier[level], h)
        idx //= 2
    return h


def compute_root(depth: int, frontier: Sequence[int], count: int) -> Root:
    """Merkle root implied by a frontier and the number of inserted leaves.

    Levels whose bit in `count` is set contribute their parked left value;
    the remaining positions are filled with the zero-subtree constants.
    """
    zeros = zero_hashes(depth)
    if count < 0 or count > 1 << depth:
        raise CapacityError(f"leaf count {count} out of range for depth {depth}")
    if count == 1 << depth:
        raise ValueError("root of a full tree is not recoverable from its frontier")

    node = zeros[0]
    size = count
    for level in range(depth):
        if size & 1:
            node = hash_left_right(frontier[level], node)
        else:
            node = hash_left_right(node, zeros[level])
        size >>= 1
    return node


def compute_transition(
    depth: int,
    start_index: int,
    leaves: Sequence[int],
    prior_frontier: Sequence[int],
    prior_root: Optional[Root] = None,
) -> Transition:
    """
    Absorb `leaves` into a depth-`depth` tree holding `start_index` leaves.

    An empty batch is the identity. Its root is `prior_root` when given;
    otherwise it is recomputed from the frontier, which is impossible for a
    full tree.

    Args:
        depth: Tree depth (capacity 2**depth)
        start_index: Number of leaves already in the tree
        leaves: Ordered batch of new leaves
        prior_frontier: Frontier before the batch (not modified)
        prior_root: Root before the batch, returned unchanged for an empty batch

    Returns:
        Transition with the new frontier and the new root

    Raises:
        CapacityError: If the batch does not fit in the tree
        ValueError: On malformed frontier or non-field leaves
    """
    _check_depth(depth)
    if len(prior_frontier) != depth:
        raise ValueError(f"frontier must have {depth} elements, got {len(prior_frontier)}")
    if start_index < 0:
        raise CapacityError(f"start index must be non-negative, got {start_index}")
    end = start_index + len(leaves)
    if end > 1 << depth:
        raise CapacityError(
            f"cannot insert {len(leaves)} leaves at index {start_index}: capacity is {1 << depth}"
        )

    frontier = [require_field_element(v, "frontier value") for v in prior_frontier]
    if not leaves and prior_root is not None:
        return Transition(frontier=tuple(frontier), root=require_field_element(prior_root, "prior root"))

    full_root = None
    for offset, leaf in enumerate(leaves):
        require_field_element(leaf, "leaf")
        top = insert_leaf(depth, start_index + offset, leaf, frontier)
        if top is not None:
            full_root = top

    if full_root is not None:
        root = full_root
    else:
        root = compute_root(depth, frontier, end)
    return Transition(frontier=tuple(frontier), root=root)


# --- Stateful Mirror ---

@dataclass
class IncrementalMerkleTree:
    """Off-chain mirror of a tree: frontier, leaf count and current root."""
    depth: int
    frontier: Frontier = field(default_factory=list)
    count: int = 0
    root: Optional[Root] = None

    def __post_init__(self) -> None:
        _check_depth(self.depth)
        if not self.frontier:
            self.frontier = initial_frontier(self.depth)
        if self.root is None:
            self.root = compute_root(self.depth, self.frontier, self.count)

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def insert(self, leaf: int) -> Root:
        return self.insert_many([leaf])

    def insert_many(self, leaves: Sequence[int]) -> Root:
        t = compute_transition(self.depth, self.count, leaves, self.frontier, self.root)
        self.frontier = list(t.frontier)
        self.count += len(leaves)
        self.root = t.root
        return self.root


def _check_depth(depth: int) -> None:
    if not 1 <= depth <= MAX_DEPTH:
        raise ValueError(f"depth must be in [1, {MAX_DEPTH}], got {depth}")
