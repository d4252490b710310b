"""Configuration management for chainlens."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class DecoderConfig(BaseModel):
    """Extrinsic decoding heuristics."""

    scan_window: int = Field(default=4096, ge=0, description="Bytes scanned for a call header")
    candidate_scan_window: int = Field(default=512, ge=0, description="Scan window while testing signature lengths")
    max_reasonable_tip_units: int = Field(default=1000, ge=0, description="Tip ceiling in whole tokens")
    supported_versions: tuple[int, ...] = Field(default=(4, 5))
    pq_signature_with_public_length: int = Field(
        default=7187, gt=0, description="ML-DSA-87 signature (4595) plus public key (2592)"
    )
    max_nonce: int = Field(default=2**64, gt=0)

    @property
    def signature_candidates(self) -> tuple[int, ...]:
        pq = self.pq_signature_with_public_length
        return (1 + 64, 1 + 65, pq, 1 + pq)


class DiscoveryConfig(BaseModel):
    """Runtime span discovery settings."""

    endpoint: str = Field(default="wss://a.t.res.fm")
    use_best: bool = Field(default=False, description="Walk to the best head instead of the finalized head")
    max_height: int | None = Field(default=None, ge=0)
    request_timeout: float = Field(default=10.0, gt=0)
    cache_ttl: float = Field(default=300.0, ge=0)


class ChainConfig(BaseModel):
    """Fallback chain properties when the node does not report them."""

    ss58_format: int = Field(default=42, ge=0, lt=16384)
    decimals: int = Field(default=12, ge=0)
    symbol: str = Field(default="UNIT")
    block_time_ms: int = Field(default=6000, gt=0)


class MetadataConfig(BaseModel):
    metadata_dir: Path = Field(default=Path("metadata"))
    resolve_from_node: bool = Field(
        default=True,
        description="Fetch state_getMetadata when no description file exists for a runtime",
    )


class ChainlensConfig(BaseSettings):
    """Root configuration for chainlens."""

    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    model_config = {"env_prefix": "CHAINLENS_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> ChainlensConfig:
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
