"""Hashers and well-known storage keys."""

from __future__ import annotations

import hashlib

import xxhash

from chainlens.codec.scale import bytes_to_hex, hex_to_bytes


def blake2_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2_512(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=64).digest()


def twox_128(data: bytes) -> bytes:
    """Two concatenated xxHash64 digests (seeds 0 and 1), little-endian."""
    return b"".join(
        xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little")
        for seed in (0, 1)
    )


def storage_prefix(pallet: str, item: str) -> str:
    """Storage key of a plain storage value: twox128(pallet) ++ twox128(item)."""
    return bytes_to_hex(twox_128(pallet.encode()) + twox_128(item.encode()))


def extrinsic_hash(extrinsic_hex: str) -> str:
    return bytes_to_hex(blake2_256(hex_to_bytes(extrinsic_hex)))


# ":code" raw key
CODE_KEY = "0x3a636f6465"
SYSTEM_EVENTS_KEY = storage_prefix("System", "Events")
TIMESTAMP_NOW_KEY = storage_prefix("Timestamp", "Now")
