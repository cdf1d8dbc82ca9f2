"""Command-line parameter groups shared by the node commands."""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_STATE_CACHE_SIZE = 67108864
_U32_MAX = 2**32 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")


class Database(Enum):
    """Database backend variants."""

    ROCKS_DB = "RocksDb"
    PARITY_DB = "ParityDb"

    @classmethod
    def from_str(cls, text: str) -> "Database":
        """Parse a backend name, ignoring case."""
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise ValueError(f"unknown database backend: {text!r}")


@dataclass(frozen=True)
class PruningMode:
    """State pruning: keep the last `keep_blocks` blocks, or everything when `None`."""

    keep_blocks: int | None = None

    @classmethod
    def archive_all(cls) -> "PruningMode":
        return cls(None)

    @classmethod
    def keep(cls, blocks: int) -> "PruningMode":
        return cls(blocks)

    @property
    def is_archive(self) -> bool:
        return self.keep_blocks is None


@dataclass
class SharedParams:
    """Parameters used by every command."""

    chain: str | None = None
    base_path: Path | None = None
    workspace: str | None = None
    log: list[str] = field(default_factory=list)
    disable_log_color: bool = False
    disable_log_reloading: bool = False
    tracing_targets: str | None = None

    def chain_id(self) -> str:
        return self.chain if self.chain is not None else ""

    def log_filters(self) -> list[str]:
        return list(self.log)


@dataclass
class PruningParams:
    """The requested pruning: a number of blocks to keep or 'archive'."""

    pruning: str | None = None

    def pruning_mode(self, unsafe_pruning: bool = False) -> PruningMode:
        if self.pruning is None or self.pruning == "archive":
            return PruningMode.archive_all()
        if not _UNSIGNED.fullmatch(self.pruning) or int(self.pruning) > _U32_MAX:
            raise ValueError("Invalid pruning mode specified")
        return PruningMode.keep(int(self.pruning))


@dataclass
class DatabaseParams:
    """Database backend and its cache size in MiB."""

    database: Database | None = None
    database_cache_size: int | None = None


@dataclass
class ImportParams:
    """Parameters for block import."""

    pruning_params: PruningParams = field(default_factory=PruningParams)
    database_params: DatabaseParams = field(default_factory=DatabaseParams)
    unsafe_pruning: bool = False
    state_cache_size: int = DEFAULT_STATE_CACHE_SIZE


def _database_arg(text: str) -> Database:
    try:
        return Database.from_str(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def add_shared_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options of `SharedParams` to `parser`."""
    parser.add_argument("--chain", metavar="CHAIN_SPEC", help="chain specification")
    parser.add_argument("-d", "--base-path", type=Path, metavar="PATH", help="custom base path")
    parser.add_argument("-w", "--workspace", metavar="WORKSPACE", help="workspace to use")
    parser.add_argument(
        "-l", "--log", action="append", metavar="LOG_PATTERN", help="logging filter <target>=<level>"
    )
    parser.add_argument("--disable-log-color", action="store_true", help="disable log colours")
    parser.add_argument(
        "--disable-log-reloading", action="store_true", help="disable log filter reloading"
    )
    parser.add_argument("--tracing-targets", metavar="TARGETS", help="profiling filter")


def add_import_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options of `ImportParams` to `parser`."""
    parser.add_argument("--pruning", metavar="PRUNING_MODE", help="blocks to keep or 'archive'")
    parser.add_argument(
        "--database", "--db", dest="database", type=_database_arg, metavar="DB",
        help="database backend (RocksDb or ParityDb)",
    )
    parser.add_argument("--db-cache", dest="db_cache", type=int, metavar="MiB", help="cache size")
    parser.add_argument(
        "--unsafe-pruning", action="store_true", help="force start with unsafe pruning settings"
    )
    parser.add_argument(
        "--state-cache-size", type=int, default=DEFAULT_STATE_CACHE_SIZE, metavar="Bytes",
        help="state cache size",
    )


def shared_params_from_namespace(namespace: argparse.Namespace) -> SharedParams:
    base_path = namespace.base_path
    return SharedParams(
        chain=namespace.chain,
        base_path=Path(base_path) if base_path is not None else None,
        workspace=namespace.workspace,
        log=list(namespace.log or []),
        disable_log_color=namespace.disable_log_color,
        disable_log_reloading=namespace.disable_log_reloading,
        tracing_targets=namespace.tracing_targets,
    )


def import_params_from_namespace(namespace: argparse.Namespace) -> ImportParams:
    return ImportParams(
        pruning_params=PruningParams(namespace.pruning),
        database_params=DatabaseParams(namespace.database, namespace.db_cache),
        unsafe_pruning=namespace.unsafe_pruning,
        state_cache_size=namespace.state_cache_size,
    )