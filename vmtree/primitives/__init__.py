"""Primitives - field arithmetic, hashing and the frontier accumulator."""

from vmtree.primitives.accumulator import (
    CapacityError,
    Frontier,
    IncrementalMerkleTree,
    Root,
    Transition,
    compute_root,
    compute_transition,
    initial_frontier,
    insert_leaf,
    zero_hashes,
)
from vmtree.primitives.field import (
    BN254_PRIME,
    FF,
    ZERO_VALUE,
    field,
    is_field_element,
    require_field_element,
    to_field_element,
)
from vmtree.primitives.mimc import (
    hash_left_right,
    mimc_feistel,
    multi_hash,
)
from vmtree.primitives.transcript import Transcript

__all__ = [
    # Field
    "BN254_PRIME",
    "FF",
    "ZERO_VALUE",
    "field",
    "is_field_element",
    "require_field_element",
    "to_field_element",
    # Hash
    "hash_left_right",
    "mimc_feistel",
    "multi_hash",
    # Accumulator
    "CapacityError",
    "Frontier",
    "IncrementalMerkleTree",
    "Root",
    "Transition",
    "compute_root",
    "compute_transition",
    "initial_frontier",
    "insert_leaf",
    "zero_hashes",
    # Transcript
    "Transcript",
]
