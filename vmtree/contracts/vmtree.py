"""VMTree: per-client incremental Merkle tree contract.

Storage is the frontier of filled subtrees, the pending commitment queue,
the start index of that queue and the last verified root. Every state
transition is accepted only through the verifier, with
public signals rebuilt here from live storage. A proof made against any
other state (a race loser, a stale batch) therefore fails and reverts.

Roles:
    controller - commits leaves and may run the unpaid single-leaf update
    arborist   - receives the queue-full and settlement callbacks
    anyone     - may submit a mass update (oracle nodes race for it)
"""

import logging
from typing import List, Sequence, Tuple, Union

from vmtree.chain.ledger import ZERO_ADDRESS, Contract, view
from vmtree.errors import (
    AlreadyInitialized,
    CapacityExceeded,
    InsufficientLinkBalance,
    InvalidProof,
    Unauthorized,
)
from vmtree.primitives.accumulator import compute_root, compute_transition, initial_frontier
from vmtree.primitives.field import is_field_element, require_field_element
from vmtree.protocol.keys import VerifyingKey
from vmtree.protocol.proof import Proof
from vmtree.protocol.schema import (
    CircuitKind,
    MassUpdateSignals,
    SingleUpdateSignals,
    pack_mass_update,
    pack_single_update,
    pad_batch,
)
from vmtree.protocol.verifier import verify

logger = logging.getLogger(__name__)

ProofInput = Union[Proof, Sequence[int]]


class VMTree(Contract):
    """Tree controller. Deployed once as a template, then cloned per client."""

    def __init__(self) -> None:
        super().__init__()
        self.initialized = False
        self.controller = ZERO_ADDRESS
        self.arborist = ZERO_ADDRESS
        self.payer = ZERO_ADDRESS
        self.name = ""
        self.depth = 0
        self.batch_size = 0
        self.filled_subtrees: List[int] = []
        self.pending: List[int] = []
        self.start_index = 0
        self.root = 0
        self.single_vk = None
        self.mass_vk = None

    def initialize(
        self,
        controller: str,
        payer: str,
        name: str,
        single_vk: VerifyingKey,
        mass_vk: VerifyingKey,
    ) -> None:
        """Bind a fresh clone to its controller. Callable once; msg.sender becomes the arborist."""
        if self.initialized:
            raise AlreadyInitialized(f"tree {self.address} is already initialized")
        if single_vk.kind is not CircuitKind.SINGLE_UPDATE or mass_vk.kind is not CircuitKind.MASS_UPDATE:
            raise ValueError("verifying keys do not match their update paths")
        if single_vk.depth != mass_vk.depth:
            raise ValueError("verifying keys disagree on tree depth")

        self.initialized = True
        self.controller = controller
        self.arborist = self.msg_sender
        self.payer = payer
        self.name = name
        self.depth = mass_vk.depth
        self.batch_size = mass_vk.batch_size
        self.single_vk = single_vk
        self.mass_vk = mass_vk
        self.filled_subtrees = initial_frontier(self.depth)
        self.root = compute_root(self.depth, self.filled_subtrees, 0)

    # --- Commitments ---

    def commit(self, leaf: int) -> int:
        """Queue a leaf; returns its global index.

        Filling the queue notifies the arborist in the same transaction.
        """
        if self.msg_sender != self.controller:
            raise Unauthorized(f"only the controller {self.controller} may commit")
        require_field_element(leaf, "leaf")
        if len(self.pending) >= self.batch_size:
            raise CapacityExceeded(f"pending queue holds {self.batch_size} leaves; update first")
        if self.start_index + len(self.pending) >= 1 << self.depth:
            raise CapacityExceeded(f"tree of depth {self.depth} is full")

        index = self.start_index + len(self.pending)
        self.pending.append(leaf)
        self.emit("Committed", tree=self.address, leaf=leaf, index=index)
        logger.debug("tree %s: leaf %d queued (%d/%d)", self.address, index, len(self.pending), self.batch_size)

        if len(self.pending) == self.batch_size:
            self.call(self.arborist, "on_queue_full", self.address)
        return index

    # --- Read Accessors ---

    @view
    def check_mass_update(self) -> Tuple[List[int], List[int], int]:
        """Everything an off-chain prover needs: (leaves, frontier, start_index).

        Refuses when nobody can pay for the proof.
        """
        if not self.call(self.arborist, "can_pay", self.address):
            raise InsufficientLinkBalance(f"payer {self.payer} cannot fund an update of {self.address}")
        return list(self.pending), list(self.filled_subtrees), self.start_index

    @view
    def get_filled_subtrees(self) -> List[int]:
        return list(self.filled_subtrees)

    @view
    def get_pending(self) -> List[int]:
        return list(self.pending)

    @view
    def get_start_index(self) -> int:
        return self.start_index

    @view
    def get_root(self) -> int:
        return self.root

    # --- Updates ---

    def update(self, proof: ProofInput, new_frontier: Sequence[int]) -> None:
        """Single-leaf path: absorb the head of the queue. Controller only, unpaid."""
        if self.msg_sender != self.controller:
            raise Unauthorized(f"only the controller {self.controller} may run single updates")
        if not self.pending:
            raise InvalidProof("no pending leaf to update")
        frontier = self._check_frontier(new_frontier)

        signals = SingleUpdateSignals(
            start_index=self.start_index,
            leaf=self.pending[0],
            prior_frontier=tuple(self.filled_subtrees),
            new_frontier=frontier,
        )
        if not verify(self.single_vk, pack_single_update(signals), proof):
            raise InvalidProof(f"single update proof rejected for tree {self.address}")

        # single-update proofs carry no root; derive it from the verified transition
        self.root = compute_transition(self.depth, signals.start_index, [signals.leaf], signals.prior_frontier).root
        self._apply(frontier, 1)
        self.emit("Updated", tree=self.address, root=self.root, start_index=self.start_index, leaf_count=1)
        self.call(self.arborist, "on_single_update", self.address)

    def perform_mass_update(self, new_root: int, new_frontier: Sequence[int], proof: ProofInput) -> None:
        """Batch path: absorb every pending leaf and pay the submitting node."""
        if not self.pending:
            raise InvalidProof("no pending leaves to update")
        if not self.call(self.arborist, "can_pay", self.address):
            raise InsufficientLinkBalance(f"payer {self.payer} cannot fund an update of {self.address}")
        frontier = self._check_frontier(new_frontier)
        if not is_field_element(new_root):
            raise InvalidProof("new root is not a field element")

        leaf_count = len(self.pending)
        signals = MassUpdateSignals(
            start_index=self.start_index,
            leaf_count=leaf_count,
            leaves=tuple(pad_batch(self.pending, self.batch_size)),
            prior_frontier=tuple(self.filled_subtrees),
            new_frontier=frontier,
            new_root=new_root,
        )
        if not verify(self.mass_vk, pack_mass_update(signals), proof):
            raise InvalidProof(f"mass update proof rejected for tree {self.address}")

        self._apply(frontier, leaf_count)
        self.root = new_root
        self.emit("Updated", tree=self.address, root=new_root, start_index=self.start_index, leaf_count=leaf_count)
        self.call(self.arborist, "on_update_settled", self.address, self.msg_sender)

    def _check_frontier(self, new_frontier: Sequence[int]) -> Tuple[int, ...]:
        try:
            values = tuple(int(v) for v in new_frontier)
        except (TypeError, ValueError) as e:
            raise InvalidProof(f"new frontier is not a sequence of integers: {e}") from e
        if len(values) != self.depth or not all(is_field_element(v) for v in values):
            raise InvalidProof(f"new frontier must be {self.depth} field elements")
        return values

    def _apply(self, frontier: Tuple[int, ...], consumed: int) -> None:
        self.filled_subtrees = list(frontier)
        self.start_index += consumed
        self.pending = self.pending[consumed:]
        logger.debug("tree %s: %d leaves absorbed, start index now %d", self.address, consumed, self.start_index)
