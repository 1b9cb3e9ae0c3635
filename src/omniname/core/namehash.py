"""ENS-style namehash (EIP-137) used by EVM-compatible naming authorities."""

from eth_utils import keccak

from .normalization import split_labels

EMPTY_NODE = b"\x00" * 32


def labelhash(label: str) -> bytes:
    """Keccak-256 of a single label."""
    return keccak(text=label)


def namehash(name: str) -> bytes:
    """
    Compute the 32-byte namehash of a domain.

    ``namehash("") = 0x00 * 32`` and
    ``namehash(label.parent) = keccak256(namehash(parent) + keccak256(label))``.
    The name is lowercased before hashing.
    """
    node = EMPTY_NODE
    if not name:
        return node

    for label in reversed(split_labels(name.lower())):
        node = keccak(node + labelhash(label))
    return node


def namehash_hex(name: str) -> str:
    """Namehash as a ``0x``-prefixed hex string."""
    return "0x" + namehash(name).hex()


def reverse_node_name(address: str) -> str:
    """Name under ``addr.reverse`` holding an address' primary name."""
    addr = address.lower()
    if addr.startswith("0x"):
        addr = addr[2:]
    return f"{addr}.addr.reverse"
