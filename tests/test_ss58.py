"""Tests for SS58 address encoding."""

from __future__ import annotations

import pytest

from chainlens.codec.ss58 import (
    base58_decode,
    base58_encode,
    decode_address,
    encode_address,
    encode_prefix,
    is_valid_address,
)
from chainlens.core.errors import InvalidAddress

from conftest import ALICE, ALICE_SS58, BOB, BOB_SS58


class TestEncode:
    def test_generic_substrate_format(self) -> None:
        assert encode_address(ALICE) == ALICE_SS58
        assert encode_address(BOB, 42) == BOB_SS58

    def test_accepts_hex(self) -> None:
        assert encode_address("0x" + ALICE.hex()) == ALICE_SS58

    def test_format_zero(self) -> None:
        assert encode_address(ALICE, 0) == "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"

    def test_two_byte_prefix(self) -> None:
        prefix = encode_prefix(1000)
        assert len(prefix) == 2
        assert prefix[0] & 0x40

    @pytest.mark.parametrize("ss58_format", [-1, 16384])
    def test_format_out_of_range(self, ss58_format: int) -> None:
        with pytest.raises(ValueError):
            encode_address(ALICE, ss58_format)


class TestDecode:
    @pytest.mark.parametrize("ss58_format", [0, 2, 42, 63, 64, 1000, 16383])
    def test_recovers_raw_and_format(self, ss58_format: int) -> None:
        assert decode_address(encode_address(ALICE, ss58_format)) == (ALICE, ss58_format)

    def test_checksum_mismatch(self) -> None:
        corrupted = ALICE_SS58[:-1] + ("Z" if ALICE_SS58[-1] != "Z" else "Y")
        with pytest.raises(InvalidAddress):
            decode_address(corrupted)
        assert not is_valid_address(corrupted)

    def test_invalid_character(self) -> None:
        with pytest.raises(InvalidAddress):
            decode_address("0OIl")

    def test_valid(self) -> None:
        assert is_valid_address(ALICE_SS58)


class TestBase58:
    def test_leading_zeros(self) -> None:
        assert base58_encode(b"\x00\x00\x01") == "112"
        assert base58_decode("112") == b"\x00\x00\x01"

    def test_round_trip(self) -> None:
        data = bytes(range(40))
        assert base58_decode(base58_encode(data)) == data
