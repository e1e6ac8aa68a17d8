"""
VMTree: batched incremental Merkle accumulator with paid zk updates.

This package provides:
- BN254 field arithmetic (via galois) and the MiMC sponge hash
- Frontier-only incremental Merkle accumulator
- Update circuits, proof binding, prover and verifier
- An ordered in-process ledger with an ERC-677 payment token
- VMTree and Arborist contracts
- An off-chain oracle node

Usage:
    from vmtree import Chain, LinkToken, deploy_arborist, encode_deploy, make_account

    chain = Chain()
    owner = make_account("owner")
    token = chain.deploy(owner, LinkToken(holder=owner))
    arborist = deploy_arborist(chain, owner, token.address)
    chain.transact(owner, token.address, "transfer_and_call",
                   arborist.address, 10 ** 18, encode_deploy(owner, "VMTree"))
"""

from vmtree.chain import Chain, LinkToken, encode_deploy, encode_deploy_address, make_account
from vmtree.config import ArboristConfig, OracleMode, TreeConfig
from vmtree.contracts import Arborist, VMTree, deploy_arborist
from vmtree.errors import (
    AlreadyInitialized,
    CapacityExceeded,
    InsufficientBalance,
    InsufficientLinkBalance,
    InvalidProof,
    Unauthorized,
    UnknownTree,
    VMTreeError,
)
from vmtree.oracle import OracleNode
from vmtree.primitives import (
    IncrementalMerkleTree,
    compute_root,
    compute_transition,
    hash_left_right,
)
from vmtree.protocol import (
    CircuitKind,
    Proof,
    prove_mass_update,
    prove_single_update,
    setup,
    verify,
)

__version__ = "0.1.0"

__all__ = [
    # Chain
    "Chain",
    "LinkToken",
    "encode_deploy",
    "encode_deploy_address",
    "make_account",
    # Configuration
    "ArboristConfig",
    "OracleMode",
    "TreeConfig",
    # Contracts
    "Arborist",
    "VMTree",
    "deploy_arborist",
    "OracleNode",
    # Accumulator
    "IncrementalMerkleTree",
    "compute_root",
    "compute_transition",
    "hash_left_right",
    # Proofs
    "CircuitKind",
    "Proof",
    "prove_mass_update",
    "prove_single_update",
    "setup",
    "verify",
    # Errors
    "VMTreeError",
    "CapacityExceeded",
    "InvalidProof",
    "InsufficientLinkBalance",
    "InsufficientBalance",
    "Unauthorized",
    "AlreadyInitialized",
    "UnknownTree",
]
