"""Tests for hashers and well-known storage keys."""

from __future__ import annotations

from chainlens.codec.hashing import (
    CODE_KEY,
    SYSTEM_EVENTS_KEY,
    TIMESTAMP_NOW_KEY,
    blake2_256,
    extrinsic_hash,
    storage_prefix,
    twox_128,
)


def test_twox_128_of_pallet_name() -> None:
    assert twox_128(b"System").hex() == "26aa394eea5630e07c48ae0c9558cef7"


def test_system_events_key() -> None:
    assert SYSTEM_EVENTS_KEY == "0x26aa394eea5630e07c48ae0c9558cef780d41e5e16056765bc8461851072c9d7"


def test_timestamp_now_key() -> None:
    assert TIMESTAMP_NOW_KEY == "0xf0c365c3cf59d671eb72da0e7a4113c49f1f0515f462cdcf84e0f1d6045dfcbb"
    assert storage_prefix("Timestamp", "Now") == TIMESTAMP_NOW_KEY


def test_code_key_is_raw_colon_code() -> None:
    assert bytes.fromhex(CODE_KEY[2:]) == b":code"


def test_extrinsic_hash_is_blake2_256() -> None:
    assert extrinsic_hash("0x0102") == "0x" + blake2_256(b"\x01\x02").hex()
    assert len(extrinsic_hash("0x0102")) == 66
