"""Tests for the VMTree contract: commitments, updates and their guards."""

import pytest

from vmtree.config import ArboristConfig, TreeConfig
from vmtree.errors import AlreadyInitialized, CapacityExceeded, InvalidProof, Unauthorized
from vmtree.primitives.accumulator import initial_frontier, zero_hashes
from vmtree.chain import request_id
from vmtree.primitives.field import BN254_PRIME
from vmtree.protocol import prove_mass_update, prove_single_update

from tests.conftest import BATCH, DEPTH, LINK, PAYMENT, World, naive_root, prove_pending, random_leaves, submit


class TestInitialization:

    def test_fresh_tree_state(self, world) -> None:
        """A new tree is empty, bound to its controller and payer."""
        tree = world.chain.get(world.tree)
        assert tree.initialized
        assert tree.controller == world.controller
        assert tree.payer == world.payer
        assert tree.arborist == world.arborist.address
        assert tree.name == "VMTree"
        assert world.view(world.tree, "get_root") == zero_hashes(DEPTH)[DEPTH]
        assert world.view(world.tree, "get_filled_subtrees") == initial_frontier(DEPTH)
        assert world.view(world.tree, "get_start_index") == 0

    def test_initialize_once(self, world) -> None:
        """A second initialize reverts."""
        with pytest.raises(AlreadyInitialized):
            world.chain.transact(
                world.payer, world.tree, "initialize",
                world.payer, world.payer, "hijack", world.single_vk, world.mass_vk,
            )
        assert world.chain.get(world.tree).controller == world.controller


class TestCommit:
    """Queueing leaves."""

    def test_indices_and_events(self, world) -> None:
        """Commit returns global indices and emits Committed."""
        results = [world.chain.transact(world.controller, world.tree, "commit", leaf).result
                   for leaf in [10, 20]]
        assert results == [0, 1]
        committed = world.chain.get_events("Committed", world.tree)
        assert [(e.args["leaf"], e.args["index"]) for e in committed] == [(10, 0), (20, 1)]
        assert world.view(world.tree, "get_pending") == [10, 20]

    def test_only_controller(self, world) -> None:
        with pytest.raises(Unauthorized):
            world.chain.transact(world.payer, world.tree, "commit", 1)
        assert world.view(world.tree, "get_pending") == []

    def test_rejects_non_field_leaf(self, world) -> None:
        with pytest.raises(ValueError):
            world.chain.transact(world.controller, world.tree, "commit", BN254_PRIME)

    def test_queue_full(self, world) -> None:
        """The (B+1)th commit fails and the queue is unchanged."""
        leaves = random_leaves(BATCH)
        world.commit(leaves)
        with pytest.raises(CapacityExceeded):
            world.chain.transact(world.controller, world.tree, "commit", 1)
        assert world.view(world.tree, "get_pending") == leaves

    def test_full_queue_triggers_request(self, world) -> None:
        """The Bth commit emits the oracle request in the same transaction."""
        world.commit(random_leaves(BATCH - 1))
        receipt = world.chain.transact(world.controller, world.tree, "commit", 5)
        requests = [e for e in receipt.events if e.name == "OracleRequest"]
        assert len(requests) == 1
        assert requests[0].args["callback_target"] == world.tree
        assert requests[0].args["payment"] == PAYMENT

    def test_check_mass_update(self, world) -> None:
        """Returns pending leaves, current frontier and start index."""
        world.commit([1, 2])
        leaves, frontier, start = world.view(world.tree, "check_mass_update")
        assert leaves == [1, 2]
        assert frontier == initial_frontier(DEPTH)
        assert start == 0


class TestMassUpdate:

    def test_full_batch(self, world) -> None:
        """A verified batch moves the tree forward and clears the queue."""
        leaves = random_leaves(BATCH, seed=1)
        world.commit(leaves)
        update = prove_pending(world)
        receipt = submit(world, update)

        assert world.view(world.tree, "get_root") == naive_root(leaves, DEPTH)
        assert world.view(world.tree, "get_pending") == []
        assert world.view(world.tree, "get_start_index") == BATCH
        assert world.view(world.tree, "get_filled_subtrees") == list(update.frontier)
        names = [e.name for e in receipt.events]
        assert names.index("Updated") < names.index("Harvested")

    def test_partial_batch(self, world) -> None:
        """Fewer than B pending leaves are padded and absorbed."""
        world.commit([7, 8])
        world.request()
        submit(world, prove_pending(world))
        assert world.view(world.tree, "get_root") == naive_root([7, 8], DEPTH)
        assert world.view(world.tree, "get_start_index") == 2

    def test_consecutive_batches(self, world) -> None:
        """Roots agree with the full tree after several batches."""
        leaves = random_leaves(2 * BATCH + 1, seed=2)
        for chunk in (leaves[:BATCH], leaves[BATCH:2 * BATCH], leaves[2 * BATCH:]):
            world.commit(chunk)
            world.request()
            submit(world, prove_pending(world))
        assert world.view(world.tree, "get_root") == naive_root(leaves, DEPTH)
        assert world.view(world.tree, "get_start_index") == len(leaves)

    def test_invalid_proof_leaves_state(self, world) -> None:
        """A rejected proof changes nothing, balances included."""
        world.commit(random_leaves(BATCH, seed=3))
        update = prove_pending(world)
        calldata = update.proof.to_calldata()
        calldata[0] = (calldata[0] + 1) % BN254_PRIME

        root = world.view(world.tree, "get_root")
        payer_before = world.payer_balance()
        events_before = len(world.chain.events)
        with pytest.raises(InvalidProof):
            world.chain.transact(world.node, world.tree, "perform_mass_update",
                                 update.root, list(update.frontier), calldata)
        assert world.view(world.tree, "get_root") == root
        assert len(world.view(world.tree, "get_pending")) == BATCH
        assert world.payer_balance() == payer_before
        assert world.node_balance() == 0
        assert len(world.chain.events) == events_before

    def test_wrong_root_rejected(self, world) -> None:
        """The submitted root must match the proven transition."""
        world.commit([1])
        update = prove_pending(world)
        with pytest.raises(InvalidProof):
            world.chain.transact(world.node, world.tree, "perform_mass_update",
                                 (update.root + 1) % BN254_PRIME, list(update.frontier), update.proof)

    def test_bad_frontier_shape(self, world) -> None:
        world.commit([1])
        update = prove_pending(world)
        with pytest.raises(InvalidProof):
            world.chain.transact(world.node, world.tree, "perform_mass_update",
                                 update.root, list(update.frontier)[:-1], update.proof)

    def test_nothing_pending(self, world) -> None:
        update = prove_mass_update(world.mass_pk, 0, [1], initial_frontier(DEPTH))
        with pytest.raises(InvalidProof):
            submit(world, update)

    def test_unrequested_update_reverts(self, world) -> None:
        """Without an open oracle request a mass update is neither applied nor paid."""
        for leaf in random_leaves(BATCH - 1, seed=9):
            world.commit([leaf])
            with pytest.raises(Unauthorized):
                submit(world, prove_pending(world))
        assert world.chain.get_events("OracleRequest") == []
        assert world.view(world.tree, "get_start_index") == 0
        assert len(world.view(world.tree, "get_pending")) == BATCH - 1
        assert world.node_balance() == 0
        assert world.payer_balance() == LINK

    def test_one_payment_per_request(self, world) -> None:
        """Once a requested batch settles, the next partial batch needs its own request."""
        world.commit([1])
        world.request()
        submit(world, prove_pending(world))
        world.commit([2])
        with pytest.raises(Unauthorized):
            submit(world, prove_pending(world))
        assert world.node_balance() == PAYMENT
        assert world.payer_balance() == LINK - PAYMENT

    def test_non_numeric_frontier(self, world) -> None:
        world.commit([1])
        world.request()
        update = prove_pending(world)
        with pytest.raises(InvalidProof):
            world.chain.transact(world.node, world.tree, "perform_mass_update",
                                 update.root, [None] * DEPTH, update.proof)

    def test_replay_rejected(self, world) -> None:
        """A proof that already landed cannot be applied to the next batch."""
        world.commit([1, 2])
        world.request()
        update = prove_pending(world)
        submit(world, update)
        world.commit([3, 4])
        with pytest.raises(InvalidProof):
            submit(world, update)
        assert world.view(world.tree, "get_start_index") == 2


class TestSingleUpdate:
    """Controller-only, unpaid path."""

    def test_absorbs_queue_head(self, world) -> None:
        world.commit([5, 6])
        frontier = world.view(world.tree, "get_filled_subtrees")
        update = prove_single_update(world.single_pk, 0, 5, frontier)
        world.chain.transact(world.controller, world.tree, "update", update.proof, list(update.frontier))

        assert world.view(world.tree, "get_pending") == [6]
        assert world.view(world.tree, "get_start_index") == 1
        assert world.view(world.tree, "get_root") == naive_root([5], DEPTH)
        assert world.payer_balance() == LINK
        assert world.chain.get_events("Harvested") == []

    def test_only_controller(self, world) -> None:
        world.commit([5])
        update = prove_single_update(world.single_pk, 0, 5, initial_frontier(DEPTH))
        with pytest.raises(Unauthorized):
            world.chain.transact(world.node, world.tree, "update", update.proof, list(update.frontier))

    def test_wrong_leaf_rejected(self, world) -> None:
        """A proof for a leaf other than the queue head fails."""
        world.commit([5])
        update = prove_single_update(world.single_pk, 0, 6, initial_frontier(DEPTH))
        with pytest.raises(InvalidProof):
            world.chain.transact(world.controller, world.tree, "update", update.proof, list(update.frontier))

    def test_empty_queue(self, world) -> None:
        update = prove_single_update(world.single_pk, 0, 5, initial_frontier(DEPTH))
        with pytest.raises(InvalidProof):
            world.chain.transact(world.controller, world.tree, "update", update.proof, list(update.frontier))

    def test_mixed_paths(self, world) -> None:
        """Single and mass updates compose into the same tree."""
        world.commit([1, 2, 3])
        first = prove_single_update(world.single_pk, 0, 1, initial_frontier(DEPTH))
        world.chain.transact(world.controller, world.tree, "update", first.proof, list(first.frontier))
        world.request()
        submit(world, prove_pending(world))
        assert world.view(world.tree, "get_root") == naive_root([1, 2, 3], DEPTH)

    def test_closes_open_request(self, world) -> None:
        """A single update retires the open request; the refilled queue gets a new id."""
        world.commit(random_leaves(BATCH, seed=6))
        head = world.view(world.tree, "get_pending")[0]
        single = prove_single_update(world.single_pk, 0, head, initial_frontier(DEPTH))
        world.chain.transact(world.controller, world.tree, "update", single.proof, list(single.frontier))

        world.commit([42])
        ids = [e.args["request_id"] for e in world.chain.get_events("OracleRequest")]
        assert ids == [request_id(world.tree, 0), request_id(world.tree, 1)]

    def test_non_numeric_frontier(self, world) -> None:
        """Garbage in the submitted frontier is an invalid proof."""
        world.commit([5])
        update = prove_single_update(world.single_pk, 0, 5, initial_frontier(DEPTH))
        with pytest.raises(InvalidProof):
            world.chain.transact(world.controller, world.tree, "update", update.proof, ["x"] * DEPTH)


class TestTreeCapacity:

    @pytest.fixture
    def tiny(self):
        return World(ArboristConfig(payment=PAYMENT, tree=TreeConfig(depth=2, batch_size=2)))

    def test_fill_tree(self, tiny) -> None:
        """Exactly 2**depth leaves fit; the last root is the full-tree root."""
        leaves = random_leaves(4, seed=8)
        for chunk in (leaves[:2], leaves[2:]):
            tiny.commit(chunk)
            submit(tiny, prove_pending(tiny))
        assert tiny.view(tiny.tree, "get_root") == naive_root(leaves, 2)
        with pytest.raises(CapacityExceeded):
            tiny.chain.transact(tiny.controller, tiny.tree, "commit", 1)
