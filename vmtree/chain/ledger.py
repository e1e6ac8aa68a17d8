"""In-process ledger executing contract calls as atomic transactions.

The ledger is globally ordered: one transaction runs to completion before
the next starts. A transaction snapshots every contract's storage and the
ledger's own bookkeeping, buffers emitted events, and on any exception
restores the snapshot, drops the buffered events and re-raises. Nested
calls between contracts run inside the same transaction with msg.sender
set to the calling contract.

Contracts refer to each other by address and resolve through the ledger,
so storage snapshots never alias another contract's state.
"""

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from eth_utils import keccak, to_checksum_address

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound="Contract")


def view(fn: F) -> F:
    """Mark a contract method as read-only."""
    fn._view = True  # type: ignore[attr-defined]
    return fn


def make_account(label: str) -> str:
    """Deterministic externally-owned account address for a label."""
    return to_checksum_address(keccak(text=label)[12:])


def create_address(deployer: str, nonce: int) -> str:
    """Contract address derived from its deployer and the deployer's nonce."""
    return to_checksum_address(keccak(bytes.fromhex(deployer[2:]) + nonce.to_bytes(32, "big"))[12:])


# --- Records ---

@dataclass(frozen=True)
class Event:
    name: str
    address: str
    args: Dict[str, Any]
    tx_index: int
    log_index: int


@dataclass
class Receipt:
    tx_index: int
    sender: str
    result: Any = None
    events: List[Event] = field(default_factory=list)


@dataclass
class _Frame:
    sender: str
    address: str


# --- Contracts ---

class Contract:
    """Base class for ledger-resident contracts.

    Subclasses keep storage in plain attributes. `chain` and `address` are
    bound at deployment and excluded from snapshots.
    """

    _NOT_STORAGE = ("chain", "address")

    def __init__(self) -> None:
        self.chain: Optional["Chain"] = None
        self.address: str = ZERO_ADDRESS

    @property
    def msg_sender(self) -> str:
        return self.chain.msg_sender

    def emit(self, name: str, **args: Any) -> None:
        self.chain._emit(self.address, name, args)

    def call(self, target: str, method: str, *args: Any) -> Any:
        """Call another contract with this contract as msg.sender."""
        return self.chain._invoke(self.address, target, method, args)

    def _snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy({k: v for k, v in vars(self).items() if k not in self._NOT_STORAGE})

    def _restore(self, state: Dict[str, Any]) -> None:
        for k in [k for k in vars(self) if k not in self._NOT_STORAGE]:
            delattr(self, k)
        for k, v in state.items():
            setattr(self, k, v)


class ContractProxy:
    """Caller-bound handle: attribute calls become transactions.

    Methods marked @view run as read-only calls.
    """

    def __init__(self, chain: "Chain", address: str, sender: str):
        self._chain = chain
        self._address = address
        self._sender = sender

    @property
    def address(self) -> str:
        return self._address

    def __getattr__(self, method: str) -> Callable[..., Any]:
        fn = getattr(self._chain.get(self._address), method)
        if getattr(fn, "_view", False):
            return lambda *args: self._chain.call(self._address, method, *args, sender=self._sender)
        return lambda *args: self._chain.transact(self._sender, self._address, method, *args).result


# --- Ledger ---

class Chain:
    """Totally ordered ledger of contracts, transactions and events."""

    def __init__(self) -> None:
        self._contracts: Dict[str, Contract] = {}
        self._nonces: Dict[str, int] = defaultdict(int)
        self._frames: List[_Frame] = []
        self._buffer: Optional[List[Event]] = None
        self.events: List[Event] = []
        self.tx_count = 0

    # --- Deployment ---

    def deploy(self, deployer: str, contract: C) -> C:
        """Register a contract at the next address of `deployer`."""
        address = create_address(deployer, self._nonces[deployer])
        self._nonces[deployer] += 1
        contract.chain = self
        contract.address = address
        self._contracts[address] = contract
        logger.debug("deployed %s at %s", type(contract).__name__, address)
        return contract

    def clone(self, deployer: str, template: str) -> str:
        """Deploy a fresh, uninitialized instance of a template's class.

        The clone shares the template's code but none of its storage.
        """
        cls: Type[Contract] = type(self.get(template))
        return self.deploy(deployer, cls()).address

    def get(self, address: str) -> Contract:
        try:
            return self._contracts[address]
        except KeyError:
            raise KeyError(f"no contract at {address}") from None

    def has(self, address: str) -> bool:
        return address in self._contracts

    def at(self, address: str, sender: str) -> ContractProxy:
        return ContractProxy(self, address, sender)

    # --- Execution ---

    @property
    def msg_sender(self) -> str:
        if not self._frames:
            raise RuntimeError("msg.sender is only defined inside a call")
        return self._frames[-1].sender

    def transact(self, sender: str, address: str, method: str, *args: Any) -> Receipt:
        """Run one call as an atomic transaction.

        Raises whatever the call raised, after rolling back.
        """
        if self._frames:
            raise RuntimeError("transactions cannot be nested; use Contract.call")

        snapshot = self._snapshot()
        self._buffer = []
        tx_index = self.tx_count
        try:
            result = self._invoke(sender, address, method, args)
        except Exception as e:
            self._rollback(snapshot)
            logger.debug("tx %d %s.%s reverted: %s", tx_index, address, method, e)
            raise
        finally:
            self._frames = []

        events = self._buffer
        self._buffer = None
        self.events.extend(events)
        self.tx_count += 1
        return Receipt(tx_index=tx_index, sender=sender, result=result, events=events)

    def call(self, address: str, method: str, *args: Any, sender: str = ZERO_ADDRESS) -> Any:
        """Run a call and discard every state change and event."""
        if self._frames:
            raise RuntimeError("read-only calls cannot be nested; use Contract.call")

        snapshot = self._snapshot()
        self._buffer = []
        try:
            return self._invoke(sender, address, method, args)
        finally:
            self._frames = []
            self._rollback(snapshot)

    def _invoke(self, sender: str, address: str, method: str, args: tuple) -> Any:
        if method.startswith("_"):
            raise AttributeError(f"{method} is not an external method")
        fn = getattr(self.get(address), method)
        self._frames.append(_Frame(sender=sender, address=address))
        try:
            return fn(*args)
        finally:
            self._frames.pop()

    def _emit(self, address: str, name: str, args: Dict[str, Any]) -> None:
        if self._buffer is None:
            raise RuntimeError("events can only be emitted inside a transaction")
        log_index = len(self.events) + len(self._buffer)
        self._buffer.append(Event(name=name, address=address, args=dict(args),
                                  tx_index=self.tx_count, log_index=log_index))

    # --- Snapshots ---

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "contracts": dict(self._contracts),
            "nonces": dict(self._nonces),
            "storage": {a: c._snapshot() for a, c in self._contracts.items()},
        }

    def _rollback(self, snapshot: Dict[str, Any]) -> None:
        self._contracts = snapshot["contracts"]
        self._nonces = defaultdict(int, snapshot["nonces"])
        for address, state in snapshot["storage"].items():
            self._contracts[address]._restore(state)
        self._buffer = None

    # --- Event Queries ---

    def get_events(
        self,
        name: Optional[str] = None,
        address: Optional[str] = None,
        from_index: int = 0,
    ) -> List[Event]:
        return [
            e for e in self.events[from_index:]
            if (name is None or e.name == name) and (address is None or e.address == address)
        ]
