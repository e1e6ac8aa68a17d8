"""Tests for configuration loading and the simulation entry point."""

import argparse
import json

import pytest

from vmtree.config import DEFAULT_JOB_SPEC_ID, DEFAULT_PAYMENT, ArboristConfig, OracleMode, TreeConfig
from vmtree.simulate import run, to_units


class TestTreeConfig:

    def test_defaults(self) -> None:
        """Depth 20, batches of ten."""
        cfg = TreeConfig()
        assert (cfg.depth, cfg.batch_size) == (20, 10)

    @pytest.mark.parametrize("depth,batch", [(0, 1), (33, 1), (4, 0), (2, 5)])
    def test_rejects_bad_shapes(self, depth: int, batch: int) -> None:
        with pytest.raises(ValueError):
            TreeConfig(depth=depth, batch_size=batch)


class TestArboristConfig:

    def test_defaults(self) -> None:
        cfg = ArboristConfig()
        assert cfg.payment == DEFAULT_PAYMENT
        assert cfg.job_spec_id == DEFAULT_JOB_SPEC_ID
        assert cfg.mode is OracleMode.REQUEST

    def test_validation(self) -> None:
        with pytest.raises(ValueError):
            ArboristConfig(payment=-1)
        with pytest.raises(ValueError):
            ArboristConfig(job_spec_id=b"\x00" * 31)

    def test_from_dict(self) -> None:
        """JSON keys map onto the config fields."""
        cfg = ArboristConfig.from_dict({
            "payment": "5",
            "jobSpecId": "0x" + "11" * 32,
            "mode": "ready",
            "depth": 8,
            "batchSize": 4,
        })
        assert cfg.payment == 5
        assert cfg.job_spec_id == b"\x11" * 32
        assert cfg.mode is OracleMode.READY
        assert cfg.tree == TreeConfig(depth=8, batch_size=4)

    def test_from_dict_defaults(self) -> None:
        assert ArboristConfig.from_dict({}) == ArboristConfig()

    def test_from_json(self, tmp_path) -> None:
        path = tmp_path / "arborist.json"
        path.write_text(json.dumps({"depth": 6, "batchSize": 3}))
        cfg = ArboristConfig.from_json(path)
        assert cfg.tree == TreeConfig(depth=6, batch_size=3)


class TestSimulate:

    def test_to_units(self) -> None:
        assert to_units("0.1") == 10 ** 17
        assert to_units("1") == 10 ** 18

    def test_run(self, capsys) -> None:
        """A short simulation completes and reports the node's earnings."""
        args = argparse.Namespace(
            config=None, depth=4, batch_size=2, payment="0.1", fund="1",
            mode="request", batches=2, seed=1, verbose=False,
        )
        assert run(args) == 0
        out = capsys.readouterr().out
        assert "batch 1: 1 update(s)" in out
        assert "node collected 0.2 LINK" in out
