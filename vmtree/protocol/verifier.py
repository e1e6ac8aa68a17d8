"""Update proof verification.

`verify` is the acceptance predicate the tree contract calls. It is a pure
function of the verifying key, the public signals and the proof, and it
answers with a bool: a rejected proof is never an exception. The caller
decides what rejection means (the tree reverts with InvalidProof).

Verification consists of:
1. Shape check - signal count matches the key, every value is in the field
2. Relation check - the signals satisfy the circuit for the key's kind
3. Binding check - the proof was derived from this key and these signals
"""

import logging
from typing import Sequence, Union

from vmtree.primitives.field import is_field_element
from vmtree.protocol.circuit import mass_update_constraints, single_update_constraints
from vmtree.protocol.keys import VerifyingKey
from vmtree.protocol.proof import Proof, coerce_proof, derive_proof
from vmtree.protocol.schema import CircuitKind, unpack_mass_update, unpack_single_update

logger = logging.getLogger(__name__)


def verify(
    vk: VerifyingKey,
    public_signals: Sequence[int],
    proof: Union[Proof, Sequence[int]],
) -> bool:
    """Verify an update proof.

    Args:
        vk: Verifying key of the circuit
        public_signals: Signals in schema order
        proof: Proof or its 8-scalar calldata

    Returns:
        True if the proof is valid, False otherwise
    """
    try:
        values = [int(v) for v in public_signals]
        p = coerce_proof(proof)
    except (TypeError, ValueError) as e:
        logger.debug("malformed proof input: %s", e)
        return False

    # --- Shape ---
    if len(values) != vk.n_public:
        logger.debug("expected %d public signals, got %d", vk.n_public, len(values))
        return False
    if not all(is_field_element(v) for v in values):
        logger.debug("public signal outside the field")
        return False

    # --- Relation ---
    if vk.kind is CircuitKind.SINGLE_UPDATE:
        ok = single_update_constraints(vk.depth, unpack_single_update(vk.depth, values))
    else:
        ok = mass_update_constraints(
            vk.depth, vk.batch_size, unpack_mass_update(vk.depth, vk.batch_size, values)
        )
    if not ok:
        logger.debug("%s relation not satisfied", vk.kind.value)
        return False

    # --- Binding ---
    if derive_proof(vk.digest, values).to_calldata() != p.to_calldata():
        logger.debug("proof not bound to these public signals")
        return False
    return True
