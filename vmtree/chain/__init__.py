"""Chain - the ordered ledger and its token collaborator."""

from vmtree.chain.abi import (
    DeployPayload,
    decode_deploy,
    encode_deploy,
    encode_deploy_address,
    request_id,
)
from vmtree.chain.ledger import (
    ZERO_ADDRESS,
    Chain,
    Contract,
    ContractProxy,
    Event,
    Receipt,
    create_address,
    make_account,
    view,
)
from vmtree.chain.token import LinkToken

__all__ = [
    "Chain",
    "Contract",
    "ContractProxy",
    "Event",
    "Receipt",
    "ZERO_ADDRESS",
    "create_address",
    "make_account",
    "view",
    "LinkToken",
    "DeployPayload",
    "decode_deploy",
    "encode_deploy",
    "encode_deploy_address",
    "request_id",
]
