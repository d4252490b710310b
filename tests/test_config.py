"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from chainlens.core.config import ChainlensConfig, DecoderConfig


class TestDefaults:
    def test_decoder_defaults(self) -> None:
        config = DecoderConfig()
        assert config.scan_window == 4096
        assert config.candidate_scan_window == 512
        assert config.supported_versions == (4, 5)
        assert config.signature_candidates == (65, 66, 7187, 7188)

    def test_custom_pq_length(self) -> None:
        config = DecoderConfig(pq_signature_with_public_length=100)
        assert config.signature_candidates == (65, 66, 100, 101)

    def test_root_defaults(self) -> None:
        config = ChainlensConfig()
        assert config.discovery.cache_ttl == 300.0
        assert config.discovery.use_best is False
        assert config.chain.ss58_format == 42
        assert config.metadata.resolve_from_node is True
        assert config.log_level == "INFO"

    def test_validation(self) -> None:
        with pytest.raises(ValidationError):
            DecoderConfig(scan_window=-1)
        with pytest.raises(ValidationError):
            ChainlensConfig(log_level="LOUD")


class TestSources:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAINLENS_DECODER__SCAN_WINDOW", "128")
        monkeypatch.setenv("CHAINLENS_LOG_LEVEL", "DEBUG")
        config = ChainlensConfig()
        assert config.decoder.scan_window == 128
        assert config.log_level == "DEBUG"

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "chainlens.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "discovery": {"endpoint": "ws://127.0.0.1:9944", "max_height": 1000},
                    "chain": {"symbol": "TAO", "decimals": 9},
                    "log_level": "WARNING",
                }
            )
        )
        config = ChainlensConfig.from_yaml(path)
        assert config.discovery.endpoint == "ws://127.0.0.1:9944"
        assert config.discovery.max_height == 1000
        assert config.chain.symbol == "TAO"
        assert config.chain.decimals == 9
        assert config.decoder.scan_window == 4096
        assert config.log_level == "WARNING"

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ChainlensConfig.from_yaml(path).chain.symbol == "UNIT"
