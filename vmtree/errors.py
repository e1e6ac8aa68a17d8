"""Named failure conditions of the tree and payment contracts.

Every one of these aborts the transaction that raised it; the ledger rolls
back all state touched by that call.
"""


class VMTreeError(Exception):
    """Base class for contract-level failures."""


class CapacityExceeded(VMTreeError):
    """Commit against a full pending queue."""


class InvalidProof(VMTreeError):
    """The verifier rejected a submitted update."""


class InsufficientLinkBalance(VMTreeError):
    """The tree's payer cannot cover the oracle payment."""


class InsufficientBalance(VMTreeError):
    """Withdrawal or transfer exceeds the recorded balance."""


class Unauthorized(VMTreeError):
    """Caller lacks the role required by the operation."""


class AlreadyInitialized(VMTreeError):
    """A cloned tree was initialized twice."""


class UnknownTree(VMTreeError):
    """Address is not a tree deployed by this arborist."""
