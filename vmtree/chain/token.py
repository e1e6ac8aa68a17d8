"""Minimal ERC-677 payment token.

Standard ERC-20 balances and allowances plus `transfer_and_call`, which
moves tokens and then invokes `on_token_transfer(sender, amount, data)` on
the receiving contract in the same transaction.
"""

import logging
from collections import defaultdict
from typing import Dict

from vmtree.chain.ledger import Contract, view
from vmtree.errors import InsufficientBalance

logger = logging.getLogger(__name__)


class LinkToken(Contract):
    """Fixed-supply token minted to the deployer's chosen holder."""

    DECIMALS = 18

    def __init__(self, holder: str = "", total_supply: int = 10 ** 27):
        super().__init__()
        self.total_supply = total_supply
        self.balances: Dict[str, int] = defaultdict(int)
        self.allowances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        if holder:
            self.balances[holder] = total_supply

    @view
    def balance_of(self, owner: str) -> int:
        return self.balances.get(owner, 0)

    @view
    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner, {}).get(spender, 0)

    def transfer(self, to: str, amount: int) -> bool:
        self._move(self.msg_sender, to, amount)
        return True

    def approve(self, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("allowance must be non-negative")
        self.allowances[self.msg_sender][spender] = amount
        self.emit("Approval", owner=self.msg_sender, spender=spender, value=amount)
        return True

    def transfer_from(self, owner: str, to: str, amount: int) -> bool:
        spender = self.msg_sender
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientBalance(f"allowance {allowed} < {amount}")
        self.allowances[owner][spender] = allowed - amount
        self._move(owner, to, amount)
        return True

    def transfer_and_call(self, to: str, amount: int, data: bytes) -> bool:
        """Transfer, then notify the receiving contract."""
        sender = self.msg_sender
        self._move(sender, to, amount)
        self.emit("TransferWithData", sender=sender, to=to, value=amount, data=data)
        if self.chain.has(to):
            self.call(to, "on_token_transfer", sender, amount, data)
        return True

    def _move(self, src: str, dst: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if self.balances.get(src, 0) < amount:
            raise InsufficientBalance(f"{src} holds {self.balances.get(src, 0)}, needs {amount}")
        self.balances[src] -= amount
        self.balances[dst] += amount
        self.emit("Transfer", sender=src, to=dst, value=amount)
