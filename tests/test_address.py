"""Tests for MultiAddress and Era codecs."""

from __future__ import annotations

import pytest

from chainlens.codec.address import (
    encode_account_reference,
    encode_era,
    read_account_reference,
    read_era,
)
from chainlens.core.errors import BufferUnderflow, UnknownTag
from chainlens.core.types import (
    AccountId,
    AccountIndex,
    AccountRaw,
    Address20,
    Address32,
    ImmortalEra,
    MortalEra,
)

from conftest import ALICE


class TestMultiAddress:
    @pytest.mark.parametrize(
        "ref",
        [
            AccountId(ALICE),
            AccountIndex(0),
            AccountIndex(70000),
            AccountRaw(b"\x01\x02\x03"),
            Address32(b"\x07" * 32),
            Address20(b"\x09" * 20),
        ],
    )
    def test_re_encodes_to_same_bytes(self, ref) -> None:
        encoded = encode_account_reference(ref)
        decoded, consumed = read_account_reference(encoded + b"trailing", 0)
        assert decoded == ref
        assert consumed == len(encoded)
        assert encode_account_reference(decoded) == encoded

    def test_id_is_33_bytes(self) -> None:
        ref, consumed = read_account_reference(b"\x00" + ALICE, 0)
        assert ref == AccountId(ALICE)
        assert consumed == 33

    def test_unknown_tag(self) -> None:
        with pytest.raises(UnknownTag) as info:
            read_account_reference(b"\x05" + b"\x00" * 32, 0)
        assert info.value.tag == 5

    def test_truncated_id(self) -> None:
        with pytest.raises(BufferUnderflow):
            read_account_reference(b"\x00" + ALICE[:10], 0)


class TestEra:
    def test_immortal(self) -> None:
        assert read_era(b"\x00\xff", 0) == (ImmortalEra(), 1)
        assert encode_era(ImmortalEra()) == b"\x00"

    def test_mortal_known_bytes(self) -> None:
        era, consumed = read_era(b"\x86\x02", 0)
        assert era == MortalEra(period=64, phase=10)
        assert consumed == 2
        assert encode_era(MortalEra(period=64, phase=10)) == b"\x86\x02"

    @pytest.mark.parametrize("period, phase", [(4, 3), (64, 63), (1024, 512), (4096, 1000), (65536, 1600)])
    def test_mortal_round_trip(self, period: int, phase: int) -> None:
        era, _ = read_era(encode_era(MortalEra(period, phase)), 0)
        assert era == MortalEra(period, phase)
        assert era.is_valid

    def test_period_is_power_of_two(self) -> None:
        era, _ = read_era(b"\x4b\x01", 0)
        assert isinstance(era, MortalEra)
        assert era.period & (era.period - 1) == 0

    def test_non_power_of_two_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode_era(MortalEra(period=100, phase=1))

    def test_mortal_needs_two_bytes(self) -> None:
        with pytest.raises(BufferUnderflow):
            read_era(b"\x86", 0)

    def test_validity(self) -> None:
        assert not MortalEra(period=64, phase=64).is_valid
        assert MortalEra(period=64, phase=0).is_valid
