"""Tests for runtime metadata descriptions and the on-disk store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from chainlens.runtime.metadata import (
    MetadataCache,
    MetadataDescription,
    RuntimeMetadata,
    build_call_index_map,
    get_call_name,
    get_pallet_name,
)
from chainlens.runtime.store import MetadataStore, load_metadata_file

from conftest import BALANCES_CALLS, METADATA_DESCRIPTION


class TestCallIndexMap:
    def test_pallets_without_calls_skipped(self, metadata: RuntimeMetadata) -> None:
        assert set(metadata.call_map) == {0, 1, 2}
        assert 5 not in metadata.call_map

    def test_call_counts_and_names(self, metadata: RuntimeMetadata) -> None:
        balances = metadata.call_map[2]
        assert balances.name == "Balances"
        assert balances.call_count == len(BALANCES_CALLS)
        assert balances.call_name_by_index[3] == "transfer_keep_alive"

    def test_lookup_helpers(self, metadata: RuntimeMetadata) -> None:
        assert get_pallet_name(metadata.call_map, 2) == "Balances"
        assert get_pallet_name(metadata.call_map, 99) is None
        assert get_call_name(metadata.call_map, 1, 0) == "set"
        assert get_call_name(metadata.call_map, 1, 5) is None
        assert metadata.get_pallet_name(5) == "TransactionPayment"
        assert metadata.get_call_name(2, 0) == "transfer_allow_death"

    def test_explicit_index_mapping(self) -> None:
        description = MetadataDescription.model_validate(
            {"spec_version": 1, "pallets": [{"index": 40, "name": "Utility", "calls": {"0": "batch", "2": "batch_all"}}]}
        )
        call_map = build_call_index_map(description)
        assert call_map[40].call_name_by_index == {0: "batch", 2: "batch_all"}
        assert call_map[40].call_count == 3


class TestDescription:
    def test_event_layout(self, metadata: RuntimeMetadata) -> None:
        section, event = metadata.event_layout(2, 2)
        assert section == "Balances"
        assert event.name == "Transfer"
        assert [f.type for f in event.fields] == ["AccountId32", "AccountId32", "u128"]
        assert metadata.event_layout(2, 0) is None
        assert metadata.event_layout(77, 0) is None

    def test_bare_field_types(self) -> None:
        description = MetadataDescription.model_validate(
            {"spec_version": 1, "pallets": [{"index": 0, "name": "X", "events": [{"name": "E", "fields": ["u32"]}]}]}
        )
        field = description.pallets[0].events[0].fields[0]
        assert field.type == "u32"
        assert field.name is None

    def test_pallet_index_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MetadataDescription.model_validate({"spec_version": 1, "pallets": [{"index": 300, "name": "X"}]})


class TestMetadataCache:
    def test_keyed_by_genesis_and_version(self, metadata: RuntimeMetadata) -> None:
        cache = MetadataCache()
        cache.put("0xgenesis", metadata)
        assert cache.get("0xgenesis", 100) is metadata
        assert cache.get("0xother", 100) is None
        assert cache.get("0xgenesis", 101) is None
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0


class TestMetadataStore:
    def test_loads_json_and_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "100.json").write_text(json.dumps(METADATA_DESCRIPTION))
        (tmp_path / "101.yaml").write_text(yaml.safe_dump({**METADATA_DESCRIPTION, "spec_version": 101}))
        (tmp_path / "notes.txt").write_text("ignored")

        store = MetadataStore(tmp_path)
        assert store.list_versions() == [100, 101]
        assert store.has_version(101)
        assert store.load(100).call_map[2].name == "Balances"
        assert store.load(101).spec_version == 101
        assert store.load(102) is None
        assert [m.spec_version for m in store.iter_metadata()] == [100, 101]

    def test_load_is_cached(self, tmp_path: Path) -> None:
        (tmp_path / "100.json").write_text(json.dumps(METADATA_DESCRIPTION))
        store = MetadataStore(tmp_path)
        assert store.load(100) is store.load(100)

    def test_refresh_picks_up_new_files(self, tmp_path: Path) -> None:
        store = MetadataStore(tmp_path)
        assert store.list_versions() == []
        (tmp_path / "100.json").write_text(json.dumps(METADATA_DESCRIPTION))
        store.refresh()
        assert store.list_versions() == [100]

    def test_missing_directory(self, tmp_path: Path) -> None:
        store = MetadataStore(tmp_path / "absent")
        assert store.list_versions() == []

    def test_load_metadata_file(self, tmp_path: Path) -> None:
        path = tmp_path / "meta.yml"
        path.write_text(yaml.safe_dump(METADATA_DESCRIPTION))
        assert load_metadata_file(path).spec_name == "node"
