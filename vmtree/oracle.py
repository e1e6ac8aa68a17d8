"""Off-chain oracle node.

The node follows the ledger's event log. For every OracleRequest (or
Sprouted notification) addressed from its arborist it pulls the pending
batch from the tree, proves the transition and submits the mass update.
Proving happens outside any transaction; only the submission is atomic.

A submission that loses a race, or targets a batch that moved on, fails
verification on-chain and reverts. The node logs it and moves on; it never
retries with the same proof.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from vmtree.chain.ledger import Chain, Event
from vmtree.errors import InsufficientLinkBalance, InvalidProof
from vmtree.protocol.keys import ProvingKey
from vmtree.protocol.prover import UpdateProof, prove_mass_update

logger = logging.getLogger(__name__)

TRIGGER_EVENTS = ("OracleRequest", "Sprouted")


@dataclass
class NodeStats:
    submitted: int = 0
    rejected: int = 0
    unfunded: int = 0
    requests_seen: List[bytes] = field(default_factory=list)


class OracleNode:
    """Event-driven prover for one arborist.

    Usage:
        node = OracleNode(chain, node_address, arborist.address, pk)
        node.poll()              # handle every trigger since the last poll
        node.collect()           # withdraw earned payments
    """

    def __init__(self, chain: Chain, address: str, arborist: str, proving_key: ProvingKey):
        self.chain = chain
        self.address = address
        self.arborist = arborist
        self.pk = proving_key
        self.cursor = 0
        self.stats = NodeStats()

    def pending_triggers(self) -> List[Event]:
        """Trigger events emitted by the arborist since the last poll."""
        return [
            e for e in self.chain.get_events(from_index=self.cursor)
            if e.name in TRIGGER_EVENTS and e.address == self.arborist
        ]

    def poll(self) -> int:
        """Handle all new triggers; returns the number of successful updates."""
        triggers = self.pending_triggers()
        self.cursor = len(self.chain.events)

        done = 0
        for event in triggers:
            if event.name == "OracleRequest":
                self.stats.requests_seen.append(event.args["request_id"])
                tree = event.args["callback_target"]
            else:
                tree = event.args["tree"]
            if self.service(tree) is not None:
                done += 1
        return done

    def prepare(self, tree: str) -> Optional[UpdateProof]:
        """Read the tree's pending batch and prove it, without submitting."""
        try:
            leaves, frontier, start_index = self.chain.call(tree, "check_mass_update", sender=self.address)
        except InsufficientLinkBalance as e:
            self.stats.unfunded += 1
            logger.warning("skipping tree %s: %s", tree, e)
            return None
        if not leaves:
            logger.debug("tree %s has nothing pending", tree)
            return None
        return prove_mass_update(self.pk, start_index, leaves, frontier)

    def submit(self, tree: str, update: UpdateProof) -> bool:
        """Submit a prepared update. False if it was rejected on-chain."""
        try:
            self.chain.transact(
                self.address, tree, "perform_mass_update",
                update.root, list(update.frontier), update.proof,
            )
        except (InvalidProof, InsufficientLinkBalance) as e:
            self.stats.rejected += 1
            logger.warning("update of tree %s rejected: %s", tree, e)
            return False
        self.stats.submitted += 1
        logger.info("node %s updated tree %s to root %d", self.address, tree, update.root)
        return True

    def service(self, tree: str) -> Optional[UpdateProof]:
        """Prove and submit one tree's pending batch."""
        update = self.prepare(tree)
        if update is None or not self.submit(tree, update):
            return None
        return update

    def collect(self) -> int:
        """Withdraw this node's earned balance to its own address."""
        receipt = self.chain.transact(self.address, self.arborist, "collect_link_node_link", self.address)
        return receipt.result
