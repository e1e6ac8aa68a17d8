"""
End-to-end simulation of an arborist, one tree and one oracle node.

Deploys the token and arborist, funds a tree with transfer_and_call,
commits random leaves batch by batch and lets the node prove and submit
each batch. Prints balances and roots as it goes.

Usage:
    python -m vmtree.simulate --batches 2 --fund 0.1
    python -m vmtree.simulate --config arborist.json -v
"""

import argparse
import logging
import random
import sys
from decimal import Decimal
from pathlib import Path

from vmtree.chain import Chain, LinkToken, encode_deploy, make_account
from vmtree.config import ArboristConfig, OracleMode, TreeConfig
from vmtree.contracts import deploy_arborist
from vmtree.errors import VMTreeError
from vmtree.oracle import OracleNode
from vmtree.primitives.field import BN254_PRIME
from vmtree.protocol import CircuitKind, setup

UNIT = 10 ** LinkToken.DECIMALS


def to_units(amount: str) -> int:
    return int(Decimal(amount) * UNIT)


def build_config(args: argparse.Namespace) -> ArboristConfig:
    if args.config is not None:
        return ArboristConfig.from_json(args.config)
    return ArboristConfig(
        payment=to_units(args.payment),
        mode=OracleMode(args.mode),
        tree=TreeConfig(depth=args.depth, batch_size=args.batch_size),
    )


def run(args: argparse.Namespace) -> int:
    config = build_config(args)
    rng = random.Random(args.seed)

    chain = Chain()
    owner = make_account("owner")
    controller = make_account("controller")
    node_address = make_account("node")

    token = chain.deploy(owner, LinkToken(holder=owner))
    arborist = deploy_arborist(chain, owner, token.address, config)

    receipt = chain.transact(
        owner, token.address, "transfer_and_call",
        arborist.address, to_units(args.fund), encode_deploy(controller, "VMTree"),
    )
    tree = chain.get_events("TreeCreated", arborist.address)[-1].args["tree"]
    print(f"tree {tree} created in tx {receipt.tx_index}")

    pk, _ = setup(CircuitKind.MASS_UPDATE, config.tree.depth, config.tree.batch_size)
    node = OracleNode(chain, node_address, arborist.address, pk)

    for batch in range(args.batches):
        for _ in range(config.tree.batch_size):
            chain.transact(controller, tree, "commit", rng.randrange(BN254_PRIME))
        updated = node.poll()
        root = chain.call(tree, "get_root")
        print(f"batch {batch}: {updated} update(s), root {root}")
        print(f"  payer balance {Decimal(chain.call(arborist.address, 'link_payer_balance', owner)) / UNIT}")
        print(f"  node balance  {Decimal(chain.call(arborist.address, 'link_node_balance', node_address)) / UNIT}")

    collected = node.collect()
    print(f"node collected {Decimal(collected) / UNIT} LINK")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate VMTree batching with a paid oracle node")
    parser.add_argument("--config", type=Path, default=None, help="Arborist JSON config (overrides shape flags)")
    parser.add_argument("--depth", type=int, default=20, help="Tree depth")
    parser.add_argument("--batch-size", type=int, default=10, help="Leaves per mass update")
    parser.add_argument("--payment", type=str, default="0.1", help="LINK paid per mass update")
    parser.add_argument("--fund", type=str, default="1", help="LINK sent when creating the tree")
    parser.add_argument("--mode", choices=[m.value for m in OracleMode], default=OracleMode.REQUEST.value)
    parser.add_argument("--batches", type=int, default=1, help="Number of full batches to commit")
    parser.add_argument("--seed", type=int, default=0, help="Leaf RNG seed")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log contract activity")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except VMTreeError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
