"""ABI helpers for deployment payloads and oracle request ids."""

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_checksum_address

ADDRESS_WORD = 32


@dataclass(frozen=True)
class DeployPayload:
    controller: str
    name: str = ""


def encode_deploy(controller: str, name: str) -> bytes:
    """ABI-encode `(address controller, string name)`."""
    return encode(["address", "string"], [controller, name])


def encode_deploy_address(controller: str) -> bytes:
    """Short form: the controller address left-padded to one word."""
    return bytes.fromhex(controller[2:]).rjust(ADDRESS_WORD, b"\x00")


def decode_deploy(data: bytes) -> DeployPayload:
    """Decode either deployment payload form.

    A single 32-byte word is the padded-address form; anything longer must
    be an ABI-encoded `(address, string)` tuple.
    """
    if len(data) == ADDRESS_WORD:
        if any(data[:12]):
            raise ValueError("padded address payload has non-zero high bytes")
        return DeployPayload(controller=to_checksum_address(data[12:]))
    if len(data) < 3 * ADDRESS_WORD:
        raise ValueError(f"deploy payload of {len(data)} bytes is neither form")
    controller, name = decode(["address", "string"], data)
    return DeployPayload(controller=to_checksum_address(controller), name=name)


def request_id(tree: str, epoch: int) -> bytes:
    """Deterministic oracle request id for one batch of one tree."""
    return keccak(encode_packed(["address", "uint256"], [tree, epoch]))
