"""Event field decoding on top of scalecodec's runtime type registry.

Type strings follow the runtime's own spelling (``Compact<u128>``,
``Vec<AccountId32>``, ``Option<u32>``, ``[u8; 32]``, ``(u32, u64)``) or
point into a metadata portable registry as ``scale_info::<id>``. Chains
register their own structs and enums on top of the ``core`` preset.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog
from scalecodec.base import RuntimeConfigurationObject, ScaleBytes, ScaleType
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException
from scalecodec.type_registry import load_type_registry_preset

from chainlens.core.errors import BufferUnderflow, DecodeError

logger = structlog.get_logger()

SCALE_DECODE_ERRORS = (
    RemainingScaleBytesNotEmptyException,
    ValueError,
    TypeError,
    KeyError,
    IndexError,
    NotImplementedError,
    OverflowError,
)


class UnknownType(DecodeError):
    """No decoder is registered for a type name."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"No decoder registered for type {type_name!r}")
        self.type_name = type_name


class U512(ScaleType):
    """Unsigned 512-bit integer; wide balance type on some chains."""

    def process(self) -> int:
        return int.from_bytes(self.get_next_bytes(64), byteorder="little")


class TypeRegistry:
    """Named SCALE types resolved through a scalecodec runtime configuration."""

    def __init__(self, runtime_config: RuntimeConfigurationObject | None = None) -> None:
        self.runtime_config = runtime_config or RuntimeConfigurationObject()

    def register(self, name: str, scale_type: type[ScaleType]) -> None:
        self.runtime_config.type_registry["types"][name.lower()] = scale_type

    def alias(self, name: str, target: str) -> None:
        self.runtime_config.update_type_registry_types({name: target})

    def register_struct(self, name: str, fields: Sequence[tuple[str, str]]) -> None:
        """Struct of ``(field_name, type_name)`` decoded in order into a dict."""
        self.runtime_config.update_type_registry_types(
            {name: {"type": "struct", "type_mapping": [[field, type_name] for field, type_name in fields]}}
        )

    def register_enum(self, name: str, variants: Sequence[tuple[str, str | None]]) -> None:
        """Enum with a one-byte discriminator; ``None`` marks a unit variant."""
        self.runtime_config.update_type_registry_types(
            {
                name: {
                    "type": "enum",
                    "type_mapping": [[variant, payload or "Null"] for variant, payload in variants],
                }
            }
        )

    def add_portable_registry(self, metadata: Any) -> None:
        """Make ``scale_info::<id>`` names from decoded v14+ metadata resolvable."""
        self.runtime_config.add_portable_registry(metadata)

    def has(self, type_name: str) -> bool:
        return self._resolve(type_name) is not None

    def decode(self, type_name: str, data: bytes, offset: int) -> tuple[Any, int]:
        name = self._resolve(type_name)
        if name is None:
            raise UnknownType(type_name)

        scale_bytes = ScaleBytes(bytearray(data[offset:]))
        try:
            scale_obj = self.runtime_config.create_scale_object(name, data=scale_bytes)
            scale_obj.decode(check_remaining=False)
        except SCALE_DECODE_ERRORS as exc:
            raise DecodeError(f"Cannot decode {type_name} at offset {offset}: {exc}") from exc

        if scale_bytes.offset > scale_bytes.length:
            raise BufferUnderflow(scale_bytes.offset, offset, len(data))
        return scale_obj.value, scale_bytes.offset

    def _resolve(self, type_name: str) -> str | None:
        if self.runtime_config.get_decoder_class(type_name) is not None:
            return type_name
        # Path-qualified names such as sp_runtime::DispatchError
        if "::" in type_name and not type_name.startswith("scale_info::"):
            short = type_name.rsplit("::", 1)[1]
            if self.runtime_config.get_decoder_class(short) is not None:
                return short
        return None


def default_registry() -> TypeRegistry:
    """Registry on the ``core`` preset plus the frame-system types events use."""
    runtime_config = RuntimeConfigurationObject()
    runtime_config.update_type_registry(load_type_registry_preset("core"))
    registry = TypeRegistry(runtime_config)

    registry.register("u512", U512)
    for name in ("AccountId32", "AccountId"):
        registry.alias(name, "GenericAccountId")
    for name in ("Hash", "BlockHash"):
        registry.alias(name, "H256")
    for name in ("Balance", "BalanceOf"):
        registry.alias(name, "u128")
    for name in ("BlockNumber", "SessionIndex", "EraIndex", "ProposalIndex", "ReferendumIndex", "AccountIndex"):
        registry.alias(name, "u32")
    registry.alias("Nonce", "u64")

    registry.register_enum(
        "MultiAddress",
        [
            ("Id", "AccountId32"),
            ("Index", "Compact<u32>"),
            ("Raw", "Bytes"),
            ("Address32", "H256"),
            ("Address20", "H160"),
        ],
    )

    registry.register_struct("Weight", [("ref_time", "Compact<u64>"), ("proof_size", "Compact<u64>")])
    registry.register_enum("DispatchClass", [("Normal", None), ("Operational", None), ("Mandatory", None)])
    registry.register_enum("Pays", [("Yes", None), ("No", None)])
    registry.register_struct(
        "DispatchInfo",
        [("weight", "Weight"), ("class", "DispatchClass"), ("pays_fee", "Pays")],
    )
    registry.register_struct("ModuleError", [("index", "u8"), ("error", "[u8; 4]")])
    registry.register_enum(
        "TokenError",
        [
            (variant, None)
            for variant in (
                "FundsUnavailable",
                "OnlyProvider",
                "BelowMinimum",
                "CannotCreate",
                "UnknownAsset",
                "Frozen",
                "Unsupported",
                "CannotCreateHold",
                "NotExpendable",
                "Blocked",
            )
        ],
    )
    registry.register_enum("ArithmeticError", [("Underflow", None), ("Overflow", None), ("DivisionByZero", None)])
    registry.register_enum("TransactionalError", [("LimitReached", None), ("NoLayer", None)])
    registry.register_enum(
        "DispatchError",
        [
            ("Other", None),
            ("CannotLookup", None),
            ("BadOrigin", None),
            ("Module", "ModuleError"),
            ("ConsumerRemaining", None),
            ("NoProviders", None),
            ("TooManyConsumers", None),
            ("Token", "TokenError"),
            ("Arithmetic", "ArithmeticError"),
            ("Transactional", "TransactionalError"),
            ("Exhausted", None),
            ("Corruption", None),
            ("Unavailable", None),
            ("RootNotAllowed", None),
        ],
    )
    registry.register_enum("DispatchResult", [("Ok", None), ("Err", "DispatchError")])

    logger.debug("type_registry_ready", types=len(runtime_config.type_registry["types"]))
    return registry
