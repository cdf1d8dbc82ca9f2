"""Turning command-line parameters into a node configuration."""

from __future__ import annotations

import copy
import json
import logging
import os
import random
import sys
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from europa.params import (
    Database,
    DatabaseParams,
    ImportParams,
    PruningMode,
    PruningParams,
    SharedParams,
)

logger = logging.getLogger(__name__)

METADATA_FILE = "_metadata"
DEFAULT_WORKSPACE = "default"
RECOMMENDED_OPEN_FILE_DESCRIPTOR_LIMIT = 10_000
DEFAULT_DATABASE_CACHE_SIZE = 128
RPC_HTTP_LISTEN_PORT = 9933
RPC_WS_LISTEN_PORT = 9944
NODE_NAME_MAX_LENGTH = 64

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}
_NAME_ADJECTIVES = (
    "amber", "brave", "calm", "eager", "gentle", "jolly", "lucky", "quiet", "rapid", "witty",
)
_NAME_NOUNS = (
    "badger", "comet", "falcon", "harbor", "lantern", "meadow", "otter", "river", "summit", "willow",
)


class CliError(Exception):
    """An error reported by a command."""


class InputError(CliError):
    """The user supplied invalid input."""


class RpcMethods(Enum):
    """Which RPC methods are exposed."""

    AUTO = "Auto"
    SAFE = "Safe"
    UNSAFE = "Unsafe"

    @classmethod
    def from_str(cls, text: str) -> "RpcMethods":
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise InputError(f"unknown RPC method set: {text!r}")


@dataclass
class BasePath:
    """The directory the node keeps its data in; a temporary one is removed on exit."""

    path: Path
    temporary: bool = False
    _tempdir: tempfile.TemporaryDirectory | None = field(
        default=None, repr=False, compare=False
    )


def default_base_path(executable_name: str) -> BasePath:
    """Return the per-user data directory for `executable_name`."""
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        root = Path(local) if local else Path.home() / "AppData" / "Local"
        return BasePath(root / executable_name / "data")
    if sys.platform == "darwin":
        return BasePath(Path.home() / "Library" / "Application Support" / executable_name)
    xdg = os.environ.get("XDG_DATA_HOME")
    root = Path(xdg) if xdg and Path(xdg).is_absolute() else Path.home() / ".local" / "share"
    return BasePath(root / "".join(executable_name.split()).lower())


def new_temp_base_path() -> BasePath:
    """Create a fresh temporary base path, removed when it is garbage collected."""
    tempdir = tempfile.TemporaryDirectory(prefix="substrate")
    return BasePath(Path(tempdir.name), temporary=True, _tempdir=tempdir)


@dataclass
class ChainSpec:
    """Identity and properties of a chain."""

    name: str
    id: str
    chain_type: str = "Development"
    properties: dict = field(default_factory=dict)


@dataclass
class CliInfo:
    """Static description of the command-line program and its chain specs."""

    spec_loader: Callable[[str], ChainSpec]
    impl_name: str = "Europa Dev Node"
    impl_version: str = "0.1.0"
    description: str = ""
    author: str = ""
    support_url: str = ""
    copyright_start_year: int = 2020
    executable_name: str = "europa"
    native_runtime_version: str = "europa-1 (europa-1.tx1.au1)"

    def load_spec(self, chain_id: str) -> ChainSpec:
        try:
            return self.spec_loader(chain_id)
        except (KeyError, ValueError) as exc:
            raise InputError(str(exc)) from exc


@dataclass
class DatabaseConfig:
    """Where and how the node database is stored."""

    database: Database
    path: Path
    cache_size: int | None = None

    def __str__(self) -> str:
        return self.database.value


@dataclass
class Configuration:
    """Everything needed to start the node."""

    impl_name: str
    impl_version: str
    chain_spec: ChainSpec
    database: DatabaseConfig
    state_cache_size: int
    pruning: PruningMode
    rpc_http: tuple[str, int] | None
    rpc_ws: tuple[str, int] | None
    rpc_ipc: str | None
    rpc_methods: RpcMethods
    rpc_ws_max_connections: int | None
    rpc_cors: list[str] | None
    tracing_targets: str | None
    announce_block: bool
    base_path: BasePath
    workspace: str
    workspace_list: list[str]


@dataclass
class Metadata:
    """Workspaces recorded under a base path."""

    workspaces: list[str] | None = None
    current_workspace: str | None = None

    @classmethod
    def from_json(cls, data: bytes) -> "Metadata":
        try:
            raw = json.loads(data)
        except ValueError as exc:
            raise CliError(f"metadata file do not contains a valid json, e:{exc}") from exc
        if not isinstance(raw, dict):
            raise CliError("metadata file do not contains a valid json, e:expected an object")
        workspaces = raw.get("workspaces")
        current = raw.get("current_workspace")
        if workspaces is not None and not (
            isinstance(workspaces, list) and all(isinstance(w, str) for w in workspaces)
        ):
            raise CliError("metadata file do not contains a valid json, e:invalid workspaces")
        if current is not None and not isinstance(current, str):
            raise CliError(
                "metadata file do not contains a valid json, e:invalid current_workspace"
            )
        return cls(workspaces, current)

    def to_json(self) -> bytes:
        return json.dumps(
            {"workspaces": self.workspaces, "current_workspace": self.current_workspace},
            separators=(",", ":"),
        ).encode()


def metadata(base_path: BasePath | Path, update: Callable[[Metadata], Metadata]) -> Metadata:
    """Load the metadata under `base_path`, apply `update`, and save it if it changed."""
    directory = base_path.path if isinstance(base_path, BasePath) else Path(base_path)
    directory.mkdir(parents=True, exist_ok=True)
    file = directory / METADATA_FILE
    if not file.exists():
        file.write_text("{}")
    old = Metadata.from_json(file.read_bytes())
    new = update(copy.deepcopy(old))
    if new != old:
        file.write_bytes(new.to_json())
    return new


def _generate_node_name() -> str:
    name = f"{random.choice(_NAME_ADJECTIVES)}-{random.choice(_NAME_NOUNS)}-{random.randint(0, 9999)}"
    return name[: NODE_NAME_MAX_LENGTH - 1]


def _init_logger(pattern: str) -> None:
    root_level = logging.INFO
    for directive in (part.strip() for part in pattern.split(",")):
        if not directive:
            continue
        target, sep, level = directive.rpartition("=")
        if not sep:
            if directive.lower() in _LOG_LEVELS:
                root_level = _LOG_LEVELS[directive.lower()]
            else:
                logging.getLogger(directive).setLevel(logging.DEBUG)
            continue
        resolved = _LOG_LEVELS.get(level.strip().lower())
        if resolved is None:
            raise InputError(f"invalid log level in filter: {directive!r}")
        if target.strip():
            logging.getLogger(target.strip()).setLevel(resolved)
        else:
            root_level = resolved
    logging.basicConfig(format="%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger().setLevel(root_level)


def _raise_fd_limit() -> int | None:
    try:
        import resource
    except ImportError:
        return None
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    if hard == resource.RLIM_INFINITY:
        return None
    if soft < hard:
        try:
            resource.setrlimit(resource.RLIMIT_NOFILE, (hard, hard))
            soft = hard
        except (ValueError, OSError):
            pass
    return soft


class CliConfiguration(ABC):
    """A command whose parameters can be turned into a `Configuration`."""

    @abstractmethod
    def shared_params(self) -> SharedParams:
        """Parameters shared by every command."""

    def import_params(self) -> ImportParams | None:
        return None

    def pruning_params(self) -> PruningParams | None:
        params = self.import_params()
        return params.pruning_params if params is not None else None

    def database_params(self) -> DatabaseParams | None:
        params = self.import_params()
        return params.database_params if params is not None else None

    def base_path(self) -> BasePath | None:
        path = self.shared_params().base_path
        return BasePath(Path(path)) if path is not None else None

    def workspace(self) -> str | None:
        return self.shared_params().workspace

    def database_cache_size(self) -> int | None:
        params = self.database_params()
        return params.database_cache_size if params is not None else None

    def database(self) -> Database | None:
        params = self.database_params()
        return params.database if params is not None else None

    def database_config(self, base_path: Path, cache_size: int, database: Database) -> DatabaseConfig:
        if database is Database.PARITY_DB:
            return DatabaseConfig(database, Path(base_path) / "paritydb")
        return DatabaseConfig(database, Path(base_path) / "db", cache_size)

    def state_cache_size(self) -> int:
        params = self.import_params()
        return params.state_cache_size if params is not None else 0

    def pruning(self, unsafe_pruning: bool) -> PruningMode:
        params = self.pruning_params()
        if params is None:
            return PruningMode.archive_all()
        try:
            return params.pruning_mode(unsafe_pruning)
        except ValueError as exc:
            raise InputError(str(exc)) from exc

    def chain_id(self) -> str:
        return self.shared_params().chain_id()

    def node_name(self) -> str:
        return _generate_node_name()

    def rpc_http(self, default_listen_port: int) -> tuple[str, int] | None:
        return None

    def rpc_ws(self, default_listen_port: int) -> tuple[str, int] | None:
        return None

    def rpc_ipc(self) -> str | None:
        return None

    def rpc_methods(self) -> RpcMethods:
        return RpcMethods.AUTO

    def rpc_ws_max_connections(self) -> int | None:
        return None

    def rpc_cors(self) -> list[str] | None:
        return []

    def tracing_targets(self) -> str | None:
        return self.shared_params().tracing_targets

    def announce_block(self) -> bool:
        return True

    def log_filters(self) -> str:
        return ",".join(self.shared_params().log_filters())

    def create_configuration(self, cli: CliInfo) -> Configuration:
        """Build the node configuration, recording the selected workspace."""
        chain_spec = cli.load_spec(self.chain_id())
        base_path = self.base_path() or default_base_path(cli.executable_name)
        requested = self.workspace()

        def select_workspace(meta: Metadata) -> Metadata:
            if requested is not None:
                workspace = requested
            elif meta.current_workspace is not None:
                workspace = meta.current_workspace
            else:
                workspace = DEFAULT_WORKSPACE
            if meta.workspaces is None:
                meta.workspaces = [workspace]
            elif workspace not in meta.workspaces:
                meta.workspaces.append(workspace)
            meta.current_workspace = workspace
            return meta

        meta = metadata(base_path, select_workspace)
        workspace = meta.current_workspace
        workspace_list = list(meta.workspaces or [])
        if not base_path.temporary:
            base_path = BasePath(base_path.path / workspace)

        config_dir = base_path.path / "chains" / chain_spec.id
        cache_size = self.database_cache_size()
        if cache_size is None:
            cache_size = DEFAULT_DATABASE_CACHE_SIZE
        database = self.database() or Database.ROCKS_DB
        import_params = self.import_params()
        unsafe_pruning = import_params.unsafe_pruning if import_params is not None else False

        return Configuration(
            impl_name=cli.impl_name,
            impl_version=cli.impl_version,
            chain_spec=chain_spec,
            database=self.database_config(config_dir, cache_size, database),
            state_cache_size=self.state_cache_size(),
            pruning=self.pruning(unsafe_pruning),
            rpc_http=self.rpc_http(RPC_HTTP_LISTEN_PORT),
            rpc_ws=self.rpc_ws(RPC_WS_LISTEN_PORT),
            rpc_ipc=self.rpc_ipc(),
            rpc_methods=self.rpc_methods(),
            rpc_ws_max_connections=self.rpc_ws_max_connections(),
            rpc_cors=self.rpc_cors(),
            tracing_targets=self.tracing_targets(),
            announce_block=self.announce_block(),
            base_path=base_path,
            workspace=workspace,
            workspace_list=workspace_list,
        )

    def init(self, cli: CliInfo) -> None:
        """Set up logging and raise the open file limit; call once per process."""
        _init_logger(self.log_filters())
        new_limit = _raise_fd_limit()
        if new_limit is not None and new_limit < RECOMMENDED_OPEN_FILE_DESCRIPTOR_LIMIT:
            logger.warning(
                "Low open file descriptor limit configured for the process. "
                "Current value: %s, recommended value: %s.",
                new_limit,
                RECOMMENDED_OPEN_FILE_DESCRIPTOR_LIMIT,
            )