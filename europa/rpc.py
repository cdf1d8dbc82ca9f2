"""RPC methods for moving the chain height and inspecting modified state."""

from __future__ import annotations

import queue
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

from europa.statekv import StateKv


class ErrorCode(IntEnum):
    """JSON-RPC error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class RpcError(Exception):
    """An error returned to an RPC caller."""

    def __init__(self, code: ErrorCode, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


def internal_error(error: object) -> RpcError:
    """Wrap an unexpected error as an internal RPC error."""
    return RpcError(ErrorCode.INTERNAL_ERROR, "Unknown error occurred", repr(error))


def _describe(number_or_hash: int | bytes) -> str:
    if isinstance(number_or_hash, int):
        return f"Number({number_or_hash})"
    return f"Hash(0x{bytes(number_or_hash).hex()})"


class EuropaRpcError(Exception):
    """An error raised by the node RPC methods."""

    def to_rpc_error(self) -> RpcError:
        return internal_error(self)


class InvalidForwardHeight(EuropaRpcError):
    def __init__(self, forward: int, best: int) -> None:
        super().__init__(forward, best)
        self.forward = forward
        self.best = best

    def to_rpc_error(self) -> RpcError:
        return RpcError(
            ErrorCode.INVALID_PARAMS,
            "forward height should more than current best: "
            f"forward: {self.forward}|best: {self.best}",
        )


class InvalidBackwardHeight(EuropaRpcError):
    def __init__(self, backward: int, best: int) -> None:
        super().__init__(backward, best)
        self.backward = backward
        self.best = best

    def to_rpc_error(self) -> RpcError:
        return RpcError(
            ErrorCode.INVALID_PARAMS,
            "backward height should less than current best: "
            f"backward: {self.backward}|best: {self.best}",
        )


class InvalidBlockNumber(EuropaRpcError):
    def __init__(self, number: int) -> None:
        super().__init__(number)
        self.number = number

    def to_rpc_error(self) -> RpcError:
        return RpcError(
            ErrorCode.INVALID_PARAMS, f"invalid or not existed block number: {self.number}"
        )


class NoStateKvs(EuropaRpcError):
    def __init__(self, number_or_hash: int | bytes) -> None:
        super().__init__(number_or_hash)
        self.number_or_hash = number_or_hash

    def to_rpc_error(self) -> RpcError:
        return RpcError(
            ErrorCode.INVALID_PARAMS,
            f"No state kvs for this block: {_describe(self.number_or_hash)}",
        )


class NoChildStateKvs(EuropaRpcError):
    def __init__(self, number_or_hash: int | bytes, child: bytes) -> None:
        super().__init__(number_or_hash, child)
        self.number_or_hash = number_or_hash
        self.child = bytes(child)

    def to_rpc_error(self) -> RpcError:
        return RpcError(
            ErrorCode.INVALID_PARAMS,
            f"No child state kvs for this block: {_describe(self.number_or_hash)}"
            f"|child:0x{self.child.hex()}",
        )


class ClientError(EuropaRpcError):
    """A failure reported by the client or backend."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(error)
        self.error = error


@dataclass(frozen=True)
class ForwardMessage:
    """Request to produce `count` empty blocks."""

    count: int


class _ChainClient(Protocol):
    def best_number(self) -> int: ...

    def block_hash(self, number: int) -> bytes | None: ...

    def state_kv(self) -> StateKv: ...


class _Backend(Protocol):
    def revert(self, count: int, revert_finalized: bool) -> Any: ...


def _fail(error: EuropaRpcError) -> RpcError:
    rpc_error = error.to_rpc_error()
    rpc_error.__cause__ = error
    return rpc_error


class Europa:
    """The `europa_*` RPC methods; forward requests are put on `messages`."""

    def __init__(self, client: _ChainClient, backend: _Backend) -> None:
        self.client = client
        self.backend = backend
        self.messages: queue.SimpleQueue[ForwardMessage] = queue.SimpleQueue()

    def forward_to_height(self, height: int) -> None:
        """Ask for empty blocks until the chain reaches `height`."""
        best = self.client.best_number()
        if height <= best:
            raise _fail(InvalidForwardHeight(height, best))
        self.messages.put(ForwardMessage(height - best))

    def backward_to_height(self, height: int) -> None:
        """Revert the chain to `height`, which must be below the current best."""
        best = self.client.best_number()
        if height >= best:
            raise _fail(InvalidBackwardHeight(height, best))
        try:
            self.backend.revert(best - height, True)
        except Exception as exc:
            raise _fail(ClientError(exc)) from exc

    def state_kvs(
        self, number_or_hash: int | bytes | str, child: bytes | None = None
    ) -> dict[bytes, bytes | None]:
        """Return the state modified in a block, `None` marking deleted keys."""
        if isinstance(number_or_hash, str):
            if not number_or_hash.startswith("0x"):
                raise RpcError(ErrorCode.INVALID_PARAMS, "block hash must start with '0x'")
            try:
                number_or_hash = bytes.fromhex(number_or_hash[2:])
            except ValueError as exc:
                raise RpcError(ErrorCode.INVALID_PARAMS, str(exc)) from exc
        if isinstance(number_or_hash, bool) or not isinstance(
            number_or_hash, (int, bytes, bytearray)
        ):
            raise RpcError(ErrorCode.INVALID_PARAMS, "expected a block number or hash")

        if isinstance(number_or_hash, int):
            try:
                block_hash = self.client.block_hash(number_or_hash)
            except Exception as exc:
                raise _fail(ClientError(exc)) from exc
            if block_hash is None:
                raise _fail(InvalidBlockNumber(number_or_hash))
        else:
            number_or_hash = bytes(number_or_hash)
            block_hash = number_or_hash

        state_kv = self.client.state_kv()
        if child is not None:
            kvs = state_kv.get_child_kvs_by_hash(block_hash, child)
            if kvs is None:
                raise _fail(NoChildStateKvs(number_or_hash, child))
        else:
            kvs = state_kv.get_kvs_by_hash(block_hash)
            if kvs is None:
                raise _fail(NoStateKvs(number_or_hash))
        return dict(kvs)