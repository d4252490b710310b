"""CLI entry point for chainlens."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from pathlib import Path
from typing import Any, Optional

import typer
import structlog

from chainlens.core.config import ChainlensConfig
from chainlens.core.errors import ChainlensError
from chainlens.core.logging import configure_logging
from chainlens.core.types import ParsedExtrinsic

app = typer.Typer(
    name="chainlens",
    help="Substrate extrinsic, event and digest decoding with runtime span discovery",
)

logger = structlog.get_logger()

CONFIG_OPTION = typer.Option(
    Path("chainlens.yaml"),
    "--config", "-c",
    help="Path to configuration file",
)


def _load_config(config_path: Path) -> ChainlensConfig:
    config = ChainlensConfig.from_yaml(config_path) if config_path.exists() else ChainlensConfig()
    configure_logging(config.log_level)
    return config


def to_jsonable(value: Any) -> Any:
    """Convert decoded records into JSON-ready values."""
    from chainlens.codec.scale import bytes_to_hex

    if isinstance(value, ParsedExtrinsic):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data: dict[str, Any] = {"type": type(value).__name__}
        for f in dataclasses.fields(value):
            data[f.name] = to_jsonable(getattr(value, f.name))
        return data
    if isinstance(value, (bytes, bytearray)):
        return bytes_to_hex(bytes(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _emit(value: Any) -> None:
    typer.echo(json.dumps(to_jsonable(value), indent=2))


@app.command("decode-extrinsic")
def decode_extrinsic(
    extrinsic: str = typer.Argument(..., help="Hex-encoded extrinsic"),
    metadata_path: Path = typer.Option(
        ...,
        "--metadata", "-m",
        help="Metadata description (JSON or YAML)",
    ),
    ss58_format: Optional[int] = typer.Option(None, "--ss58"),
    decimals: Optional[int] = typer.Option(None, "--decimals"),
    symbol: Optional[str] = typer.Option(None, "--symbol"),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Decode one extrinsic against a metadata description."""
    from chainlens.decoding.extrinsic import parse_extrinsic_header_and_call
    from chainlens.runtime.store import load_metadata_file

    config = _load_config(config_path)
    metadata = load_metadata_file(metadata_path)
    description = metadata.description

    parsed = parse_extrinsic_header_and_call(
        extrinsic,
        _pick(ss58_format, description.ss58_format, config.chain.ss58_format),
        _pick(decimals, description.token_decimals, config.chain.decimals),
        metadata.call_map,
        _pick(symbol, description.token_symbol, config.chain.symbol),
        config=config.decoder,
    )
    _emit(parsed)
    if not parsed.ok:
        raise typer.Exit(1)


@app.command("decode-digest")
def decode_digest(
    logs: list[str] = typer.Argument(..., help="Hex-encoded digest items"),
    ss58_format: Optional[int] = typer.Option(None, "--ss58"),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Decode header digest items and report the block author."""
    from chainlens.chain.properties import format_author_address
    from chainlens.decoding.digest import decode_digest as decode

    config = _load_config(config_path)
    digest = decode(logs)
    result = to_jsonable(digest)
    result["authorAddress"] = format_author_address(digest.author, _pick(ss58_format, config.chain.ss58_format))
    typer.echo(json.dumps(result, indent=2))


@app.command("decode-events")
def decode_events(
    events: str = typer.Argument(..., help="Hex-encoded System.Events storage value"),
    metadata_path: Path = typer.Option(
        ...,
        "--metadata", "-m",
        help="Metadata description (JSON or YAML)",
    ),
    ss58_format: Optional[int] = typer.Option(None, "--ss58"),
    decimals: Optional[int] = typer.Option(None, "--decimals"),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Decode a block's events grouped by extrinsic."""
    from chainlens.decoding.events import decode_block_events
    from chainlens.decoding.registry import default_registry
    from chainlens.runtime.store import load_metadata_file

    config = _load_config(config_path)
    metadata = load_metadata_file(metadata_path)
    description = metadata.description

    block_events = decode_block_events(
        default_registry(),
        metadata,
        events,
        _pick(ss58_format, description.ss58_format, config.chain.ss58_format),
        _pick(decimals, description.token_decimals, config.chain.decimals),
    )
    _emit(block_events)
    if block_events.error:
        typer.echo(f"Warning: {block_events.error}", err=True)


@app.command("encode-address")
def encode_address(
    public_key: str = typer.Argument(..., help="Hex-encoded account bytes"),
    ss58_format: int = typer.Option(42, "--format", "-f", help="SS58 network format"),
) -> None:
    """Encode account bytes as an SS58 address."""
    from chainlens.codec.ss58 import encode_address as encode

    try:
        typer.echo(encode(public_key, ss58_format))
    except (ValueError, ChainlensError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


@app.command("decode-address")
def decode_address(
    address: str = typer.Argument(..., help="SS58 address"),
) -> None:
    """Decode an SS58 address into account bytes and network format."""
    from chainlens.codec.scale import bytes_to_hex
    from chainlens.codec.ss58 import decode_address as decode

    try:
        raw, ss58_format = decode(address)
    except ChainlensError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    _emit({"publicKey": bytes_to_hex(raw), "ss58Format": ss58_format})


@app.command()
def spans(
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Node WebSocket URL"),
    max_height: Optional[int] = typer.Option(None, "--max-height"),
    use_best: bool = typer.Option(False, "--best", help="Walk to the best head instead of finalized"),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Discover runtime version spans from genesis to the chain head."""
    from chainlens.discovery.spans import WalkOptions, walk_runtime_spans

    config = _load_config(config_path)
    discovery = config.discovery
    options = WalkOptions(
        max_height=max_height if max_height is not None else discovery.max_height,
        use_best=use_best or discovery.use_best,
        request_timeout=discovery.request_timeout,
        on_progress=lambda current, total, message: logger.info(
            "walk_progress", current=current, total=total, message=message
        ),
    )

    try:
        found = asyncio.run(walk_runtime_spans(endpoint or discovery.endpoint, options))
    except ChainlensError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    for span in found:
        typer.echo(
            f"{span.spec_name} v{span.spec_version}: "
            f"blocks {span.start_block}-{span.end_block} ({span.length} blocks) "
            f"code {span.code_hash}"
        )


@app.command()
def block(
    height: int = typer.Argument(..., help="Block number"),
    index: Optional[int] = typer.Option(None, "--index", "-i", help="Show one extrinsic"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Node WebSocket URL"),
    metadata_dir: Optional[Path] = typer.Option(
        None,
        "--metadata-dir", "-d",
        help="Directory of <spec_version>.json|yaml metadata descriptions",
    ),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Fetch and decode a block (or one of its extrinsics) from a node."""
    from chainlens.client.explorer import ChainExplorer

    config = _load_config(config_path)
    if endpoint:
        config.discovery.endpoint = endpoint
    if metadata_dir:
        config.metadata.metadata_dir = metadata_dir

    explorer = ChainExplorer(config)

    async def run() -> Any:
        await explorer.connect()
        try:
            if index is None:
                return await explorer.decode_block(height)
            return await explorer.decode_extrinsic(height, index)
        finally:
            await explorer.disconnect()

    try:
        view = asyncio.run(run())
    except (ChainlensError, IndexError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    _emit(view)


def _pick(*values: Any) -> Any:
    return next(v for v in values if v is not None)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
