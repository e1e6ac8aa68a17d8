"""Protocol - update circuits, proofs, prover and verifier."""

from vmtree.protocol.keys import ProvingKey, VerifyingKey, setup
from vmtree.protocol.proof import (
    PROOF_SIZE,
    Proof,
    load_proof,
    proof_from_json,
    proof_to_json,
    save_proof,
)
from vmtree.protocol.prover import UpdateProof, prove_mass_update, prove_single_update
from vmtree.protocol.schema import (
    CircuitKind,
    MassUpdateSignals,
    SingleUpdateSignals,
    pack_mass_update,
    pack_single_update,
    pad_batch,
    unpack_mass_update,
    unpack_single_update,
)
from vmtree.protocol.verifier import verify

__all__ = [
    # Keys
    "CircuitKind",
    "ProvingKey",
    "VerifyingKey",
    "setup",
    # Schema
    "SingleUpdateSignals",
    "MassUpdateSignals",
    "pack_single_update",
    "unpack_single_update",
    "pack_mass_update",
    "unpack_mass_update",
    "pad_batch",
    # Proofs
    "PROOF_SIZE",
    "Proof",
    "UpdateProof",
    "proof_to_json",
    "proof_from_json",
    "save_proof",
    "load_proof",
    "prove_single_update",
    "prove_mass_update",
    "verify",
]
