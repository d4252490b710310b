"""Shared fixtures: metadata descriptions, extrinsic builders and a simulated node."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest

from chainlens.codec.scale import bytes_to_hex, encode_compact, encode_length_prefixed
from chainlens.rpc.client import RpcClient
from chainlens.runtime.metadata import RuntimeMetadata

ALICE = bytes.fromhex("d43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d")
BOB = bytes.fromhex("8eaf04151687736326c9fea17e25fc5287613693c912909cb226aa4794f26a48")
ALICE_SS58 = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB_SS58 = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"

BALANCES_CALLS = [
    "transfer_allow_death",
    "set_balance_deprecated",
    "force_transfer",
    "transfer_keep_alive",
    "transfer_all",
    "force_unreserve",
]

ACCOUNT_FIELD = "AccountId32"

METADATA_DESCRIPTION: dict[str, Any] = {
    "spec_name": "node",
    "spec_version": 100,
    "ss58_format": 42,
    "token_symbol": "UNIT",
    "token_decimals": 12,
    "pallets": [
        {
            "index": 0,
            "name": "System",
            "calls": [
                "remark",
                "set_heap_pages",
                "set_code",
                "set_code_without_checks",
                "set_storage",
                "kill_storage",
                "kill_prefix",
                "remark_with_event",
            ],
            "events": [
                {"name": "ExtrinsicSuccess", "fields": [{"name": "dispatch_info", "type": "DispatchInfo"}]},
                {
                    "name": "ExtrinsicFailed",
                    "fields": [
                        {"name": "dispatch_error", "type": "DispatchError"},
                        {"name": "dispatch_info", "type": "DispatchInfo"},
                    ],
                },
            ],
        },
        {"index": 1, "name": "Timestamp", "calls": ["set"]},
        {
            "index": 2,
            "name": "Balances",
            "calls": BALANCES_CALLS,
            "events": {
                2: {
                    "name": "Transfer",
                    "fields": [
                        {"name": "from", "type": ACCOUNT_FIELD},
                        {"name": "to", "type": ACCOUNT_FIELD},
                        {"name": "amount", "type": "u128"},
                    ],
                }
            },
        },
        {
            "index": 5,
            "name": "TransactionPayment",
            "events": [
                {
                    "name": "TransactionFeePaid",
                    "fields": [
                        {"name": "who", "type": ACCOUNT_FIELD},
                        {"name": "actual_fee", "type": "u128"},
                        {"name": "tip", "type": "u128"},
                    ],
                }
            ],
        },
    ],
}

TRANSFER_KEEP_ALIVE_CALL = b"\x02\x03" + b"\x00" + BOB + encode_compact(10**12)
TIMESTAMP_SET_CALL = b"\x01\x00" + encode_compact(1_700_000_000_000)
SR25519_SIGNATURE = b"\x01" + b"\xaa" * 64


def build_extrinsic(
    call: bytes,
    *,
    signed: bool = True,
    version: int = 4,
    signature: bytes = SR25519_SIGNATURE,
    signer: bytes = b"\x00" + ALICE,
    era: bytes = b"\x00",
    nonce: int = 3,
    tip: int = 0,
    extra: bytes = b"",
) -> str:
    """Length-prefixed extrinsic hex; ``extra`` sits between nonce and tip."""
    if not signed:
        body = bytes([version]) + call
    else:
        body = (
            bytes([0x80 | version])
            + signer
            + signature
            + era
            + encode_compact(nonce)
            + extra
            + encode_compact(tip)
            + call
        )
    return bytes_to_hex(encode_length_prefixed(body))


def pq_blob(length: int = 7187) -> bytes:
    """Untagged signature-like blob whose bytes never name a known pallet."""
    return bytes(0x80 | (i * 37 % 128) for i in range(length))


# Events

def dispatch_info(ref_time: int = 1000, proof_size: int = 0) -> bytes:
    return encode_compact(ref_time) + encode_compact(proof_size) + b"\x00" + b"\x00"


def event_record(phase: bytes, pallet: int, event: int, fields: bytes, topics: int = 0) -> bytes:
    return phase + bytes([pallet, event]) + fields + encode_compact(topics) + b"\x11" * 32 * topics


def apply_extrinsic(index: int) -> bytes:
    return b"\x00" + index.to_bytes(4, "little")


FINALIZATION = b"\x01"
INITIALIZATION = b"\x02"


def success_event(index: int) -> bytes:
    return event_record(apply_extrinsic(index), 0, 0, dispatch_info())


def transfer_event(index: int, frm: bytes, to: bytes, amount: int) -> bytes:
    return event_record(apply_extrinsic(index), 2, 2, frm + to + amount.to_bytes(16, "little"))


def fee_paid_event(index: int, who: bytes, fee: int, tip: int = 0) -> bytes:
    return event_record(
        apply_extrinsic(index), 5, 0, who + fee.to_bytes(16, "little") + tip.to_bytes(16, "little")
    )


def events_hex(*records: bytes) -> str:
    return bytes_to_hex(encode_compact(len(records)) + b"".join(records))


@pytest.fixture
def metadata() -> RuntimeMetadata:
    return RuntimeMetadata.from_dict(METADATA_DESCRIPTION)


@pytest.fixture
def call_map(metadata: RuntimeMetadata):
    return metadata.call_map


# Simulated node

class NodeError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def block_hash(height: int) -> str:
    return "0x" + f"{height:064x}"


class SimulatedChain:
    """Answers the RPC methods discovery needs from a version schedule.

    ``upgrades`` maps the first height of each runtime to its spec version.
    """

    def __init__(self, tip: int, upgrades: dict[int, int], spec_name: str = "node") -> None:
        self.tip = tip
        self.upgrades = sorted(upgrades.items())
        self.spec_name = spec_name
        self.extra: dict[str, Callable[[list[Any]], Any]] = {}

    def version_at(self, height: int) -> int:
        version = self.upgrades[0][1]
        for start, spec_version in self.upgrades:
            if height >= start:
                version = spec_version
        return version

    def height_of(self, hash_: str) -> int:
        return int(hash_, 16)

    def handle(self, method: str, params: list[Any]) -> Any:
        if method in self.extra:
            return self.extra[method](params)
        if method == "chain_getFinalizedHead":
            return block_hash(self.tip)
        if method == "chain_getHeader":
            height = self.tip if not params else self.height_of(params[0])
            return {"number": hex(height), "parentHash": block_hash(max(height - 1, 0)), "digest": {"logs": []}}
        if method == "chain_getBlockHash":
            height = params[0]
            return block_hash(height) if height <= self.tip else None
        if method == "state_getRuntimeVersion":
            return {"specName": self.spec_name, "specVersion": self.version_at(self.height_of(params[0]))}
        if method == "state_getStorageHash":
            return "0xc0de" + f"{self.version_at(self.height_of(params[1])):08x}"
        raise NodeError(-32601, f"Method not found: {method}")


class FakeConnection:
    """In-memory stand-in for a WebSocket connection to a node."""

    def __init__(self, handler: Callable[[str, list[Any]], Any], silent: set[str] | None = None) -> None:
        self.handler = handler
        self.silent = silent or set()
        self.sent: list[str] = []
        self.closed = False
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, message: str) -> None:
        request = json.loads(message)
        self.sent.append(request["method"])
        if request["method"] in self.silent:
            return
        try:
            response = {"jsonrpc": "2.0", "id": request["id"], "result": self.handler(request["method"], request["params"])}
        except NodeError as exc:
            response = {"jsonrpc": "2.0", "id": request["id"], "error": {"code": exc.code, "message": exc.message}}
        await self._queue.put(json.dumps(response))

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message

    async def close(self) -> None:
        self.closed = True
        await self._queue.put(None)


class FakeConnector:
    """Connector that records every connection it opens."""

    def __init__(self, handler: Callable[[str, list[Any]], Any], silent: set[str] | None = None) -> None:
        self.handler = handler
        self.silent = silent
        self.connections: list[FakeConnection] = []

    async def __call__(self, endpoint: str, request_timeout: float = 10.0) -> RpcClient:
        connection = FakeConnection(self.handler, self.silent)
        self.connections.append(connection)
        return RpcClient(connection, request_timeout)

    @property
    def sent(self) -> list[str]:
        return [method for conn in self.connections for method in conn.sent]
