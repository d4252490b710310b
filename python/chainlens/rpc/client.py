"""JSON-RPC 2.0 client multiplexing requests over one WebSocket."""

from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any, AsyncIterator, Protocol

import structlog
import websockets
from websockets.exceptions import ConnectionClosed

from chainlens.core.errors import RpcError, TransportFailure

logger = structlog.get_logger()


class Connection(Protocol):
    """The subset of a WebSocket connection the client relies on."""

    async def send(self, message: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...


class RpcClient:
    """Request multiplexer: responses are routed back to callers by id."""

    def __init__(self, connection: Connection, request_timeout: float = 10.0) -> None:
        self.request_timeout = request_timeout
        self._connection = connection
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[str, asyncio.Future[Any]]] = {}
        self._reader: asyncio.Task[None] | None = None
        self._closed = False
        self._lost = False

    @classmethod
    async def connect(cls, endpoint: str, request_timeout: float = 10.0) -> RpcClient:
        try:
            connection = await asyncio.wait_for(
                websockets.connect(endpoint, max_size=None),
                request_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as exc:
            raise TransportFailure(f"Cannot connect to {endpoint}: {exc}") from exc
        logger.info("rpc_connected", endpoint=endpoint)
        return cls(connection, request_timeout)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one request and wait for its result.

        Raises :class:`TransportFailure` on timeout or a dropped connection
        and :class:`RpcError` when the node answers with an error object.
        """
        if self._closed or self._lost:
            raise TransportFailure(f"{method}: connection is closed")
        self._ensure_reader()

        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = (method, future)
        message = json.dumps(
            {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        )
        try:
            await self._connection.send(message)
            return await asyncio.wait_for(future, self.request_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("rpc_timeout", method=method, timeout=self.request_timeout)
            raise TransportFailure(f"{method} timed out after {self.request_timeout}s") from exc
        except ConnectionClosed as exc:
            raise TransportFailure(f"{method}: connection closed ({exc})") from exc
        finally:
            self._pending.pop(request_id, None)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fail_pending(TransportFailure("Connection closed by client"))
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        await self._connection.close()
        logger.debug("rpc_closed")

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _ensure_reader(self) -> None:
        if self._reader is None:
            self._reader = asyncio.get_running_loop().create_task(self._read_loop())

    async def _read_loop(self) -> None:
        try:
            async for message in self._connection:
                self._dispatch(message)
        except ConnectionClosed as exc:
            logger.warning("rpc_connection_lost", error=str(exc))
            self._fail_pending(TransportFailure(f"Connection lost: {exc}"))
        else:
            self._fail_pending(TransportFailure("Connection ended"))
        self._lost = True

    def _dispatch(self, message: str | bytes) -> None:
        try:
            payload = json.loads(message)
        except json.JSONDecodeError as exc:
            logger.warning("rpc_malformed_message", error=str(exc))
            return
        if not isinstance(payload, dict):
            # Batch replies and bare scalars carry no id to route by
            logger.warning("rpc_unexpected_message", kind=type(payload).__name__)
            return

        entry = self._pending.get(payload.get("id"))
        if entry is None:
            logger.debug("rpc_unmatched_response", id=payload.get("id"))
            return
        method, future = entry
        if future.done():
            return

        error = payload.get("error")
        if isinstance(error, dict):
            future.set_exception(RpcError(method, error.get("code"), error.get("message", "")))
        elif error is not None:
            future.set_exception(RpcError(method, None, str(error)))
        else:
            future.set_result(payload.get("result"))

    def _fail_pending(self, error: TransportFailure) -> None:
        for _, future in self._pending.values():
            if not future.done():
                future.set_exception(error)
