"""Update proof data structures and serialization."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Tuple, Union

from vmtree.primitives.field import is_field_element
from vmtree.primitives.transcript import Transcript

# --- Type Aliases ---
G1Point = Tuple[int, int]
G2Point = Tuple[Tuple[int, int], Tuple[int, int]]

PROOF_SIZE = 8


# --- Proof Data Structures ---

@dataclass(frozen=True)
class Proof:
    """Proof in Groth16 shape.

    Attributes:
        a: G1 element [x, y]
        b: G2 element [[x0, x1], [y0, y1]]
        c: G1 element [x, y]
    """
    a: G1Point
    b: G2Point
    c: G1Point

    def to_calldata(self) -> list[int]:
        """Flatten to the verifier's scalar order: a0 a1 b00 b01 b10 b11 c0 c1."""
        return [
            self.a[0], self.a[1],
            self.b[0][0], self.b[0][1], self.b[1][0], self.b[1][1],
            self.c[0], self.c[1],
        ]

    @classmethod
    def from_calldata(cls, values: Sequence[int]) -> "Proof":
        if len(values) != PROOF_SIZE:
            raise ValueError(f"proof must have {PROOF_SIZE} scalars, got {len(values)}")
        v = [int(x) for x in values]
        if not all(is_field_element(x) for x in v):
            raise ValueError("proof scalars must be field elements")
        return cls(a=(v[0], v[1]), b=((v[2], v[3]), (v[4], v[5])), c=(v[6], v[7]))


def coerce_proof(proof: Union[Proof, Sequence[int]]) -> Proof:
    """Accept either a Proof or its flattened calldata."""
    if isinstance(proof, Proof):
        return proof
    return Proof.from_calldata(proof)


# --- Binding ---

def derive_proof(key_digest: int, public_signals: Sequence[int]) -> Proof:
    """Bind a proof to a circuit key and its public signals.

    The key digest seeds the transcript, then the signals are absorbed in
    schema order and eight scalars are squeezed. Any change to the key, a
    signal or the ordering changes every scalar.
    """
    transcript = Transcript(key=key_digest)
    transcript.put([key_digest])
    transcript.put([int(s) for s in public_signals])
    return Proof.from_calldata(transcript.get_fields(PROOF_SIZE))


# --- JSON Serialization ---

def proof_to_json(proof: Proof) -> dict[str, Any]:
    """Convert a proof to a snarkjs-style dictionary of decimal strings."""
    return {
        "pi_a": [str(x) for x in proof.a],
        "pi_b": [[str(x) for x in row] for row in proof.b],
        "pi_c": [str(x) for x in proof.c],
        "protocol": "groth16",
        "curve": "bn128",
    }


def proof_from_json(j: dict[str, Any]) -> Proof:
    a = j["pi_a"][:2]
    b = [row[:2] for row in j["pi_b"][:2]]
    c = j["pi_c"][:2]
    return Proof.from_calldata([*a, *b[0], *b[1], *c])


def save_proof(proof: Proof, public_signals: Sequence[int], path: Union[str, Path]) -> None:
    """Write proof and public signals to a JSON file."""
    j = proof_to_json(proof)
    j["publicSignals"] = [str(int(s)) for s in public_signals]
    with open(path, "w") as f:
        json.dump(j, f, indent=2)


def load_proof(path: Union[str, Path]) -> tuple[Proof, list[int]]:
    """Load proof and public signals from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    proof = proof_from_json(data)
    public_signals = [int(s) for s in data.get("publicSignals", [])]
    return proof, public_signals
