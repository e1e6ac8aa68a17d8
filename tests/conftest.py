"""Shared fixtures: a ledger with a token, an arborist and a funded tree."""

import random

import pytest

from vmtree.chain import Chain, LinkToken, encode_deploy, make_account
from vmtree.config import ArboristConfig, OracleMode, TreeConfig
from vmtree.contracts import deploy_arborist
from vmtree.primitives.field import BN254_PRIME, ZERO_VALUE
from vmtree.primitives.mimc import hash_left_right
from vmtree.protocol import CircuitKind, prove_mass_update, setup

LINK = 10 ** 18
PAYMENT = LINK // 10

# Small trees keep MiMC-heavy tests fast; the depth-20 scenario lives in test_scenario.py
DEPTH = 5
BATCH = 4


def random_leaves(n, seed=0):
    rng = random.Random(seed)
    return [rng.randrange(BN254_PRIME) for _ in range(n)]


def naive_root(leaves, depth):
    """Root of the full tree, padding empty slots with ZERO_VALUE."""
    level = list(leaves) + [ZERO_VALUE] * ((1 << depth) - len(leaves))
    for _ in range(depth):
        level = [hash_left_right(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


def prove_pending(world, tree=None):
    """Prove whatever the tree has queued, from its live state."""
    leaves, frontier, start = world.view(tree or world.tree, "check_mass_update")
    return prove_mass_update(world.mass_pk, start, leaves, frontier)


def submit(world, update, sender=None, tree=None):
    return world.chain.transact(
        sender or world.node, tree or world.tree, "perform_mass_update",
        update.root, list(update.frontier), update.proof,
    )


class World:
    """Accounts, contracts and proving keys of one test ledger."""

    def __init__(self, config: ArboristConfig, fund: int = LINK):
        self.config = config
        self.chain = Chain()
        self.owner = make_account("owner")
        self.payer = make_account("payer")
        self.controller = make_account("controller")
        self.node = make_account("node")
        self.rival = make_account("rival")

        self.token = self.chain.deploy(self.owner, LinkToken(holder=self.owner))
        self.arborist = deploy_arborist(self.chain, self.owner, self.token.address, config)
        self.chain.transact(self.owner, self.token.address, "transfer", self.payer, 100 * LINK)

        depth, batch = config.tree.depth, config.tree.batch_size
        self.single_pk, self.single_vk = setup(CircuitKind.SINGLE_UPDATE, depth)
        self.mass_pk, self.mass_vk = setup(CircuitKind.MASS_UPDATE, depth, batch)

        self.tree = self.create_tree(fund) if fund is not None else None

    def create_tree(self, amount: int, name: str = "VMTree") -> str:
        receipt = self.chain.transact(
            self.payer, self.token.address, "transfer_and_call",
            self.arborist.address, amount, encode_deploy(self.controller, name),
        )
        return [e for e in receipt.events if e.name == "TreeCreated"][-1].args["tree"]

    def commit(self, leaves, tree=None):
        for leaf in leaves:
            self.chain.transact(self.controller, tree or self.tree, "commit", leaf)

    def request(self, tree=None):
        """Ask the arborist for an oracle request covering the pending leaves."""
        return self.chain.transact(self.payer, self.arborist.address, "request_mass_update", tree or self.tree).result

    def view(self, address, method, *args):
        return self.chain.call(address, method, *args)

    def payer_balance(self):
        return self.view(self.arborist.address, "link_payer_balance", self.payer)

    def node_balance(self, node=None):
        return self.view(self.arborist.address, "link_node_balance", node or self.node)


def small_config(mode: OracleMode = OracleMode.REQUEST) -> ArboristConfig:
    return ArboristConfig(payment=PAYMENT, mode=mode, tree=TreeConfig(depth=DEPTH, batch_size=BATCH))


@pytest.fixture
def world():
    return World(small_config())


@pytest.fixture
def ready_world():
    return World(small_config(OracleMode.READY))


@pytest.fixture
def unfunded_world():
    return World(small_config(), fund=0)
