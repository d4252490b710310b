"""On-disk source of resolved runtime metadata descriptions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import structlog
import yaml

from chainlens.runtime.metadata import RuntimeMetadata

logger = structlog.get_logger()

SUFFIXES = (".json", ".yaml", ".yml")


def load_metadata_file(path: Path) -> RuntimeMetadata:
    """Load one JSON or YAML metadata description."""
    with open(path) as f:
        data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
    return RuntimeMetadata.from_dict(data or {})


class MetadataStore:
    """Directory of ``<spec_version>.json|yaml`` metadata descriptions."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self._index: dict[int, Path] = {}
        self._loaded: dict[int, RuntimeMetadata] = {}
        self._scan()

    def load(self, spec_version: int) -> RuntimeMetadata | None:
        """Load the description for a spec version, if present."""
        if spec_version in self._loaded:
            return self._loaded[spec_version]

        path = self._index.get(spec_version)
        if path is None or not path.exists():
            return None

        metadata = load_metadata_file(path)
        if metadata.spec_version != spec_version:
            logger.warning(
                "metadata_version_mismatch",
                path=str(path),
                expected=spec_version,
                found=metadata.spec_version,
            )
        self._loaded[spec_version] = metadata
        logger.debug("metadata_loaded", spec_version=spec_version, path=str(path))
        return metadata

    def has_version(self, spec_version: int) -> bool:
        return spec_version in self._index

    def list_versions(self) -> list[int]:
        return sorted(self._index.keys())

    def iter_metadata(self) -> Iterator[RuntimeMetadata]:
        for version in self.list_versions():
            metadata = self.load(version)
            if metadata:
                yield metadata

    def refresh(self) -> None:
        self._index.clear()
        self._loaded.clear()
        self._scan()

    def _scan(self) -> None:
        if not self.base_path.is_dir():
            logger.warning("metadata_dir_missing", path=str(self.base_path))
            return

        for path in sorted(self.base_path.iterdir()):
            if path.suffix not in SUFFIXES or not path.stem.isdigit():
                continue
            self._index[int(path.stem)] = path
