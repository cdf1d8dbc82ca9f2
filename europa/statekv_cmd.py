"""The `state-kv` command: print the state a block modified."""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass, field

from europa.config import CliConfiguration, InputError
from europa.params import ImportParams, SharedParams
from europa.statekv import StateKv

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[0-9]+")
_HASH_HEX_LENGTH = 64


def parse_bytes(text: str) -> bytes:
    """Parse a `0x`-prefixed hex string."""
    if not text.startswith("0x"):
        raise ValueError("child bytes should be hex string and start with '0x'")
    try:
        return bytes.fromhex(text[2:])
    except ValueError as exc:
        raise ValueError(str(exc)) from exc


def parse_block_number_or_hash(text: str) -> int | bytes:
    """Parse a block number, or a `0x`-prefixed 32-byte block hash."""
    if text.startswith("0x"):
        digits = text[2:]
        bad = next((i for i, c in enumerate(digits) if c not in string.hexdigits), None)
        if bad is not None:
            raise InputError(
                f"Expected block hash, found illegal hex character at position: {2 + bad}"
            )
        if len(digits) != _HASH_HEX_LENGTH:
            raise InputError(f"Invalid block hash length: {text}")
        return bytes.fromhex(digits)
    if not _NUMBER.fullmatch(text):
        raise InputError(f"Expected block number, found illegal digit in: {text!r}")
    return int(text)


def _format_kv(key: bytes, value: bytes | None) -> str:
    shown = value.hex() if value is not None else "[DELETED]"
    return f"\tkey:{key.hex()}|value:{shown}"


@dataclass
class StateKvCmd(CliConfiguration):
    """Print the modified state key/values of one block."""

    input: str
    child: bytes | None = None
    shared: SharedParams = field(default_factory=SharedParams)
    imports: ImportParams = field(default_factory=ImportParams)

    def shared_params(self) -> SharedParams:
        return self.shared

    def import_params(self) -> ImportParams | None:
        return self.imports

    def run(self, state_kv: StateKv) -> list[str]:
        """Log the block's modified state and return the lines logged."""
        target = parse_block_number_or_hash(self.input)
        if isinstance(target, int):
            block_hash = state_kv.get_hash(target)
            if block_hash is None:
                raise InputError(f"do not have block hash for this block number: {target}")
        else:
            block_hash = target
        shown_hash = "0x" + block_hash.hex()

        kvs = state_kv.get_kvs_by_hash(block_hash)
        if kvs is None:
            raise InputError(f"do not have state for this block hash: {shown_hash}")
        lines = [f"modified state for block:{shown_hash}"]
        lines.extend(_format_kv(k, v) for k, v in kvs)

        if self.child is not None:
            child_kvs = state_kv.get_child_kvs_by_hash(block_hash, self.child)
            if child_kvs is None:
                raise InputError(
                    f"do not have state for this child:{self.child.hex()} "
                    f"in block hash:{shown_hash}"
                )
            lines.append(
                f"modified child state for block:{shown_hash}|child:{self.child.hex()}"
            )
            lines.extend(_format_kv(k, v) for k, v in child_kvs)

        for line in lines:
            logger.info("%s", line)
        return lines