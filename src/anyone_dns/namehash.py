"""
Registry token ids.

The registry keys every name by its namehash: starting from 32 zero bytes,
each label from the TLD inwards is folded in as
``node = keccak256(node || keccak256(label))``.
"""

from eth_hash.auto import keccak

ROOT_NODE = b"\x00" * 32


def namehash(name: str) -> bytes:
    """
    Return the 32 byte namehash of a (normalized) domain name.

    Raises:
        ValueError: If the name has an empty label (``a..anyone``, ``.anyone``)
    """
    node = ROOT_NODE
    if not name:
        return node
    labels = name.split(".")
    if "" in labels:
        raise ValueError(f"Domain name has an empty label: {name!r}")
    for label in reversed(labels):
        node = keccak(node + keccak(label.encode("utf-8")))
    return node


def token_id(name: str) -> int:
    """
    Return the registry token id for a domain name.

    Raises:
        ValueError: If the name is empty or has an empty label
    """
    if not name:
        raise ValueError("Cannot compute a token id for an empty domain name")
    return int.from_bytes(namehash(name), "big")
