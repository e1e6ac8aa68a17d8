"""Tree and arborist configuration."""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

# 0.1 LINK with 18 decimals
DEFAULT_PAYMENT = 10 ** 17
DEFAULT_JOB_SPEC_ID = bytes.fromhex("0badc0de" * 4 + "00" * 16)


class OracleMode(Enum):
    """How a full queue is announced.

    REQUEST emits a paid oracle job request; READY emits a bare
    notification and takes no payment.
    """
    REQUEST = "request"
    READY = "ready"


@dataclass(frozen=True)
class TreeConfig:
    """Shape of every tree an arborist clones.

    Attributes:
        depth: Merkle tree depth (capacity 2**depth leaves)
        batch_size: Pending queue capacity and mass-update circuit size
    """
    depth: int = 20
    batch_size: int = 10

    def __post_init__(self) -> None:
        if not 1 <= self.depth <= 32:
            raise ValueError(f"depth must be in [1, 32], got {self.depth}")
        if not 1 <= self.batch_size <= 1 << self.depth:
            raise ValueError(f"batch_size must be in [1, 2**depth], got {self.batch_size}")


@dataclass(frozen=True)
class ArboristConfig:
    """
    Arborist parameters.

    Attributes:
        payment: Token amount paid per mass update (smallest unit)
        job_spec_id: 32-byte oracle job specification id
        mode: REQUEST (paid oracle job) or READY (notification only)
        tree: Shape of deployed trees
    """
    payment: int = DEFAULT_PAYMENT
    job_spec_id: bytes = DEFAULT_JOB_SPEC_ID
    mode: OracleMode = OracleMode.REQUEST
    tree: TreeConfig = field(default_factory=TreeConfig)

    def __post_init__(self) -> None:
        if self.payment < 0:
            raise ValueError(f"payment must be non-negative, got {self.payment}")
        if len(self.job_spec_id) != 32:
            raise ValueError(f"job_spec_id must be 32 bytes, got {len(self.job_spec_id)}")

    @classmethod
    def from_dict(cls, j: dict[str, Any]) -> "ArboristConfig":
        """Build from a parsed JSON object.

        Keys: payment (int or decimal string), jobSpecId (0x hex), mode,
        depth, batchSize. Missing keys take the defaults.
        """
        job = j.get("jobSpecId")
        tree = TreeConfig(
            depth=int(j.get("depth", TreeConfig.depth)),
            batch_size=int(j.get("batchSize", TreeConfig.batch_size)),
        )
        return cls(
            payment=int(j.get("payment", DEFAULT_PAYMENT)),
            job_spec_id=bytes.fromhex(job[2:] if job.startswith("0x") else job) if job else DEFAULT_JOB_SPEC_ID,
            mode=OracleMode(j.get("mode", OracleMode.REQUEST.value)),
            tree=tree,
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ArboristConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))
