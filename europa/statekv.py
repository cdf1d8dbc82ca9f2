"""Per-block storage of modified state key/values, backed by SQLite."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Iterable, Iterator

SEPARATOR = b"|"
# A stored empty value is meaningful (e.g. `Option<()>` in a runtime), so a
# deletion is recorded with this marker instead.
DELETE_HOLDER = b":DELETE:"
DB_PATH_NAME = "state_kv"
DEFAULT_HASH = bytes(32)

_U64_MAX = 2**64 - 1
_NUMBER_WIDTH = 8
_DB_FILE_NAME = "state_kv.sqlite3"


class Column(IntEnum):
    """Columns of the state kv database."""

    META = 0
    STATE_KV = 1
    STATE_CHILD_KV = 2
    STATE_KV_INDEX = 3
    STATE_CHILD_KV_INDEX = 4
    HASH_TO_NUMBER = 5
    NUMBER_TO_HASH = 6


NUM_COLUMNS = len(Column)


class OperationKind(Enum):
    INSERT = "insert"
    DELETE = "delete"
    DELETE_PREFIX = "delete_prefix"


@dataclass(frozen=True)
class Operation:
    """One write operation of a database transaction."""

    kind: OperationKind
    column: int
    key: bytes
    value: bytes | None = None


def real_key(block_hash: bytes, key: bytes) -> bytes:
    """Return the stored key for `key` in block `block_hash`."""
    return bytes(block_hash) + SEPARATOR + bytes(key)


def real_child_key(block_hash: bytes, child: bytes, key: bytes) -> bytes:
    """Return the stored key for `key` of child storage `child` in block `block_hash`."""
    return bytes(block_hash) + SEPARATOR + bytes(child) + SEPARATOR + bytes(key)


def _child_prefix(block_hash: bytes, child: bytes) -> bytes:
    return bytes(block_hash) + SEPARATOR + bytes(child)


def _saturate_u64(number: int) -> int:
    return min(max(int(number), 0), _U64_MAX)


def _number_bytes(number: int) -> bytes:
    return _saturate_u64(number).to_bytes(_NUMBER_WIDTH, "little")


def state_kv_db_path(db_path: str | Path) -> Path:
    """Return the state kv directory that sits beside the main database directory."""
    path = Path(db_path)
    if path.name == "":
        raise ValueError(f"not a valid database path: {str(db_path)!r}")
    return path.parent / f"db_{DB_PATH_NAME}"


class KeyValueDatabase:
    """A column-based key/value store with prefix iteration."""

    def __init__(self, connection: sqlite3.Connection, read_only: bool) -> None:
        self._connection = connection
        self.read_only = read_only

    def get(self, column: int, key: bytes) -> bytes | None:
        row = self._connection.execute(
            "SELECT value FROM kv WHERE col = ? AND key = ?", (int(column), bytes(key))
        ).fetchone()
        return None if row is None else bytes(row[0])

    def iter_with_prefix(self, column: int, prefix: bytes) -> Iterator[tuple[bytes, bytes]]:
        prefix = bytes(prefix)
        rows = self._connection.execute(
            "SELECT key, value FROM kv WHERE col = ? AND substr(key, 1, ?) = ? ORDER BY key",
            (int(column), len(prefix), prefix),
        )
        for key, value in rows:
            yield bytes(key), bytes(value)

    def write(self, operations: Iterable[Operation]) -> None:
        if self.read_only:
            raise PermissionError("state kv database is opened read-only")
        with self._connection:
            for op in operations:
                if op.kind is OperationKind.INSERT:
                    self._connection.execute(
                        "INSERT OR REPLACE INTO kv (col, key, value) VALUES (?, ?, ?)",
                        (int(op.column), op.key, op.value),
                    )
                elif op.kind is OperationKind.DELETE:
                    self._connection.execute(
                        "DELETE FROM kv WHERE col = ? AND key = ?", (int(op.column), op.key)
                    )
                else:
                    self._connection.execute(
                        "DELETE FROM kv WHERE col = ? AND substr(key, 1, ?) = ?",
                        (int(op.column), len(op.key), op.key),
                    )

    def close(self) -> None:
        self._connection.close()


def open_state_kv_database(db_path: str | Path, read_only: bool = False) -> KeyValueDatabase:
    """Open the state kv database that belongs to the main database at `db_path`."""
    directory = state_kv_db_path(db_path)
    db_file = directory / _DB_FILE_NAME
    if read_only:
        if not db_file.is_file():
            raise FileNotFoundError(f"no state kv database at {directory}")
        connection = sqlite3.connect(db_file.resolve().as_uri() + "?mode=ro", uri=True)
    else:
        directory.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(db_file)
        with connection:
            connection.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                "col INTEGER NOT NULL, key BLOB NOT NULL, value BLOB NOT NULL, "
                "PRIMARY KEY (col, key))"
            )
    return KeyValueDatabase(connection, read_only)


class StateKvTransaction:
    """A batch of state kv writes for one block, applied by `StateKv.commit`."""

    def __init__(self, block_hash: bytes = DEFAULT_HASH) -> None:
        self.block_hash = bytes(block_hash)
        self._operations: list[Operation] = []

    @property
    def operations(self) -> tuple[Operation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def _put(self, column: int, key: bytes, value: bytes | None) -> None:
        stored = DELETE_HOLDER if value is None else bytes(value)
        self._operations.append(Operation(OperationKind.INSERT, column, key, stored))

    def _remove(self, column: int, key: bytes) -> None:
        position = next(
            (
                index
                for index, op in enumerate(self._operations)
                if op.column == column and op.key == key
            ),
            None,
        )
        if position is not None:
            del self._operations[position]

    def set_kv(self, key: bytes, value: bytes | None) -> None:
        self._put(Column.STATE_KV, real_key(self.block_hash, key), value)

    def set_child_kv(self, child: bytes, key: bytes, value: bytes | None) -> None:
        self._put(Column.STATE_CHILD_KV, real_child_key(self.block_hash, child, key), value)

    def remove(self, key: bytes) -> None:
        """Drop an earlier record for `key` from this transaction."""
        self._remove(Column.STATE_KV, real_key(self.block_hash, key))

    def remove_child(self, key: bytes, child: bytes) -> None:
        """Drop an earlier child record for `key` from this transaction."""
        self._remove(Column.STATE_CHILD_KV, real_child_key(self.block_hash, child, key))

    def clear(self) -> None:
        self._operations.clear()


class StateKv:
    """Records which state keys each block modified, and block hash/number links."""

    def __init__(self, db_path: str | Path, read_only: bool = False) -> None:
        self._db = open_state_kv_database(db_path, read_only)

    def __enter__(self) -> "StateKv":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._db.close()

    def _set(self, column: int, key: bytes, value: bytes | None) -> None:
        stored = DELETE_HOLDER if value is None else bytes(value)
        self._db.write([Operation(OperationKind.INSERT, column, key, stored)])

    def _collect(
        self, column: int, prefix: bytes
    ) -> list[tuple[bytes, bytes | None]] | None:
        start = len(prefix)
        result = []
        for key, value in self._db.iter_with_prefix(column, prefix):
            if key[start : start + 1] != SEPARATOR:
                raise ValueError(f"malformed state kv key: {key.hex()}")
            result.append((key[start + 1 :], None if value == DELETE_HOLDER else value))
        return result or None

    def set_kv(self, block_hash: bytes, key: bytes, value: bytes | None) -> None:
        self._set(Column.STATE_KV, real_key(block_hash, key), value)

    def set_child_kv(
        self, block_hash: bytes, child: bytes, key: bytes, value: bytes | None
    ) -> None:
        self._set(Column.STATE_CHILD_KV, real_child_key(block_hash, child, key), value)

    def transaction(self, block_hash: bytes) -> StateKvTransaction:
        return StateKvTransaction(block_hash)

    def commit(self, transaction: StateKvTransaction) -> None:
        self._db.write(transaction.operations)

    def get(self, block_hash: bytes, key: bytes) -> bytes | None:
        return self._db.get(Column.STATE_KV, real_key(block_hash, key))

    def get_child(self, block_hash: bytes, child: bytes, key: bytes) -> bytes | None:
        return self._db.get(Column.STATE_CHILD_KV, real_child_key(block_hash, child, key))

    def get_kvs_by_hash(self, block_hash: bytes) -> list[tuple[bytes, bytes | None]] | None:
        """Return the keys modified in a block, `None` values marking deletions."""
        return self._collect(Column.STATE_KV, bytes(block_hash))

    def get_child_kvs_by_hash(
        self, block_hash: bytes, child: bytes
    ) -> list[tuple[bytes, bytes | None]] | None:
        return self._collect(Column.STATE_CHILD_KV, _child_prefix(block_hash, child))

    def delete_kvs_by_hash(self, block_hash: bytes) -> None:
        self._db.write(
            [Operation(OperationKind.DELETE_PREFIX, Column.STATE_KV, bytes(block_hash))]
        )

    def delete_child_kvs_by_hash(self, block_hash: bytes, child: bytes) -> None:
        prefix = _child_prefix(block_hash, child)
        self._db.write([Operation(OperationKind.DELETE_PREFIX, Column.STATE_CHILD_KV, prefix)])

    def set_hash_and_number(self, block_hash: bytes, number: int) -> None:
        encoded = _number_bytes(number)
        self._set(Column.HASH_TO_NUMBER, bytes(block_hash), encoded)
        self._set(Column.NUMBER_TO_HASH, encoded, bytes(block_hash))

    def get_number(self, block_hash: bytes) -> int | None:
        value = self._db.get(Column.HASH_TO_NUMBER, bytes(block_hash))
        if value is None:
            return None
        if len(value) != _NUMBER_WIDTH:
            raise ValueError(f"stored block number has {len(value)} bytes, expected 8")
        return int.from_bytes(value, "little")

    def get_hash(self, number: int) -> bytes | None:
        return self._db.get(Column.NUMBER_TO_HASH, _number_bytes(number))