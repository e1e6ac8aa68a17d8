"""Arborist: tree factory and oracle payment escrow.

Funding the arborist with `transfer_and_call` clones a new VMTree for the
controller named in the payload and credits the funder as that tree's
payer. When a tree's queue fills, the arborist either emits a paid oracle
request (REQUEST mode) or a bare "sprouted" notification (READY mode).
After a mass update verifies, the tree calls back and the payment moves
from the payer's escrow to the node that submitted the proof, inside the
same transaction as the frontier update.

Escrow invariant: sum(payer balances) + sum(node balances) never exceeds
the token balance held by the arborist.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from eth_utils import function_signature_to_4byte_selector

from vmtree.chain.abi import decode_deploy, request_id
from vmtree.chain.ledger import Chain, Contract, view
from vmtree.config import ArboristConfig, OracleMode
from vmtree.contracts.vmtree import VMTree
from vmtree.errors import InsufficientBalance, InsufficientLinkBalance, Unauthorized, UnknownTree
from vmtree.protocol.keys import setup
from vmtree.protocol.schema import CircuitKind

logger = logging.getLogger(__name__)

CALLBACK_SELECTOR = function_signature_to_4byte_selector("checkMassUpdate()")
CANCEL_EXPIRATION = 0
DATA_VERSION = 1


@dataclass
class TreeRecord:
    """Arborist-side bookkeeping for one deployed tree."""
    payer: str
    controller: str
    name: str
    epoch: int = 0
    requested_epoch: Optional[int] = None


class Arborist(Contract):
    """Factory, trigger and escrow for VMTree instances."""

    def __init__(self, owner: str, link_token: str, config: ArboristConfig):
        super().__init__()
        self.owner = owner
        self.link_token = link_token
        self.payment = config.payment
        self.job_spec_id = config.job_spec_id
        self.mode = config.mode
        self.tree_template = ""
        _, self.single_vk = setup(CircuitKind.SINGLE_UPDATE, config.tree.depth)
        _, self.mass_vk = setup(CircuitKind.MASS_UPDATE, config.tree.depth, config.tree.batch_size)

        self.trees: Dict[str, TreeRecord] = {}
        self.payer_balances: Dict[str, int] = {}
        self.node_balances: Dict[str, int] = {}
        self.awaiting_funds: Set[str] = set()

    # --- Funding / Deploy ---

    def on_token_transfer(self, sender: str, amount: int, data: bytes) -> str:
        """ERC-677 callback: clone a tree for the payload's controller."""
        if self.msg_sender != self.link_token:
            raise Unauthorized("only the payment token may fund trees")
        payload = decode_deploy(bytes(data))

        tree = self.chain.clone(self.address, self.tree_template)
        self.call(tree, "initialize", payload.controller, sender, payload.name, self.single_vk, self.mass_vk)
        self.trees[tree] = TreeRecord(payer=sender, controller=payload.controller, name=payload.name)
        self._credit(self.payer_balances, sender, amount)

        self.emit("TreeCreated", tree=tree)
        logger.info("tree %s created for controller %s, payer %s funded %d",
                    tree, payload.controller, sender, amount)
        self._request_funded(sender)
        return tree

    def top_up(self, payer: str, amount: int) -> None:
        """Add to a payer's escrow from the caller's approved tokens."""
        self.call(self.link_token, "transfer_from", self.msg_sender, self.address, amount)
        self._credit(self.payer_balances, payer, amount)
        self.emit("ToppedUp", payer=payer, sender=self.msg_sender, amount=amount)
        self._request_funded(payer)

    def _request_funded(self, payer: str) -> None:
        """Request every full tree of `payer` that was waiting for funds and now has them."""
        for tree in sorted(self.awaiting_funds):
            if self.trees[tree].payer == payer and self.can_pay(tree):
                self._request(tree)

    # --- Triggering ---

    def on_queue_full(self, tree: str) -> None:
        """Callback from a tree whose pending queue just filled."""
        self._require_tree_caller(tree)
        if self.mode is OracleMode.READY:
            self.emit("Sprouted", tree=tree)
            return
        if not self.can_pay(tree):
            # the commit still lands; request_mass_update or a top-up re-triggers
            self.awaiting_funds.add(tree)
            logger.warning("tree %s is full but payer %s cannot cover %d",
                           tree, self.trees[tree].payer, self.payment)
            return
        self._request(tree)

    def request_mass_update(self, tree: str) -> Optional[bytes]:
        """Re-trigger the oracle for a tree's pending leaves.

        Returns the request id, or None in READY mode.
        """
        self._record(tree)
        if not self.call(tree, "get_pending"):
            raise ValueError(f"tree {tree} has no pending leaves")
        if self.mode is OracleMode.READY:
            self.emit("Sprouted", tree=tree)
            return None
        if not self.can_pay(tree):
            raise InsufficientLinkBalance(
                f"payer {self.trees[tree].payer} holds {self.link_payer_balance(self.trees[tree].payer)}, "
                f"needs {self.payment}"
            )
        return self._request(tree)

    def _request(self, tree: str) -> bytes:
        record = self.trees[tree]
        rid = request_id(tree, record.epoch)
        self.awaiting_funds.discard(tree)
        if record.requested_epoch == record.epoch:
            return rid

        record.requested_epoch = record.epoch
        self.emit(
            "OracleRequest",
            spec_id=self.job_spec_id,
            callback_address=self.address,
            request_id=rid,
            payment=self.payment,
            callback_target=tree,
            callback_function_id=CALLBACK_SELECTOR,
            cancel_expiration=CANCEL_EXPIRATION,
            data_version=DATA_VERSION,
            data=b"",
        )
        logger.info("oracle request %s for tree %s epoch %d", rid.hex(), tree, record.epoch)
        return rid

    # --- Settlement ---

    def on_update_settled(self, tree: str, node: str) -> None:
        """Callback from a tree after a verified mass update."""
        self._require_tree_caller(tree)
        record = self.trees[tree]
        if self.mode is OracleMode.REQUEST:
            if record.requested_epoch != record.epoch:
                raise Unauthorized(f"no oracle request is open for tree {tree} epoch {record.epoch}")
            balance = self.link_payer_balance(record.payer)
            if balance < self.payment:
                raise InsufficientLinkBalance(f"payer {record.payer} holds {balance}, needs {self.payment}")
            self.payer_balances[record.payer] = balance - self.payment
            self._credit(self.node_balances, node, self.payment)
            self.emit("Harvested", tree=tree, node=node, payer=record.payer, amount=self.payment)
            logger.info("node %s harvested %d from tree %s", node, self.payment, tree)
        record.epoch += 1

    def on_single_update(self, tree: str) -> None:
        """Callback from a tree after an unpaid single-leaf update.

        The batch an open request referred to no longer exists, so the epoch
        moves on and the next full queue gets a fresh request id.
        """
        self._require_tree_caller(tree)
        self.trees[tree].epoch += 1

    # --- Collection ---

    def collect_link_node_link(self, node: str) -> int:
        """Pay out a node's full earned balance. A zero balance transfers zero."""
        amount = self.node_balances.get(node, 0)
        self.node_balances[node] = 0
        self.call(self.link_token, "transfer", node, amount)
        self.emit("Collected", sender=node, to=node, amount=amount)
        logger.info("node %s collected %d", node, amount)
        return amount

    def collect_link_payer_link(self, to: str, amount: int) -> None:
        """Withdraw part of the caller's unspent escrow."""
        payer = self.msg_sender
        balance = self.link_payer_balance(payer)
        if amount < 0 or amount > balance:
            raise InsufficientBalance(f"payer {payer} holds {balance}, requested {amount}")
        self.payer_balances[payer] = balance - amount
        self.call(self.link_token, "transfer", to, amount)
        self.emit("Collected", sender=payer, to=to, amount=amount)

    # --- Administration ---

    def set_payment(self, amount: int) -> None:
        self._require_owner()
        if amount < 0:
            raise ValueError("payment must be non-negative")
        self.payment = amount

    def set_job_spec_id(self, job_spec_id: bytes) -> None:
        self._require_owner()
        if len(job_spec_id) != 32:
            raise ValueError("job spec id must be 32 bytes")
        self.job_spec_id = bytes(job_spec_id)

    # --- Views ---

    @view
    def can_pay(self, tree: str) -> bool:
        record = self._record(tree)
        if self.mode is OracleMode.READY:
            return True
        return self.link_payer_balance(record.payer) >= self.payment

    @view
    def link_payer_balance(self, payer: str) -> int:
        return self.payer_balances.get(payer, 0)

    @view
    def link_node_balance(self, node: str) -> int:
        return self.node_balances.get(node, 0)

    @view
    def escrow_total(self) -> int:
        return sum(self.payer_balances.values()) + sum(self.node_balances.values())

    @view
    def get_request_id(self, tree: str, epoch: Optional[int] = None) -> bytes:
        record = self._record(tree)
        return request_id(tree, record.epoch if epoch is None else epoch)

    @view
    def get_trees(self) -> List[str]:
        return list(self.trees)

    @view
    def tree_info(self, tree: str) -> TreeRecord:
        return self._record(tree)

    # --- Internal Helpers ---

    def _record(self, tree: str) -> TreeRecord:
        try:
            return self.trees[tree]
        except KeyError:
            raise UnknownTree(f"{tree} was not deployed by this arborist") from None

    def _require_tree_caller(self, tree: str) -> None:
        if self.msg_sender != tree or tree not in self.trees:
            raise Unauthorized(f"{self.msg_sender} is not a tree of this arborist")

    def _require_owner(self) -> None:
        if self.msg_sender != self.owner:
            raise Unauthorized("only the owner may change arborist settings")

    @staticmethod
    def _credit(balances: Dict[str, int], account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        balances[account] = balances.get(account, 0) + amount


def deploy_arborist(
    chain: Chain,
    owner: str,
    link_token: str,
    config: Optional[ArboristConfig] = None,
) -> Arborist:
    """Deploy an arborist and the VMTree template it clones."""
    arborist = chain.deploy(owner, Arborist(owner, link_token, config or ArboristConfig()))
    arborist.tree_template = chain.deploy(arborist.address, VMTree()).address
    return arborist
