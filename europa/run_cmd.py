"""The `run` command that starts a node."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from europa.config import (
    NODE_NAME_MAX_LENGTH,
    BasePath,
    CliConfiguration,
    InputError,
    RpcMethods,
    new_temp_base_path,
)
from europa.params import ImportParams, SharedParams

logger = logging.getLogger(__name__)

DEFAULT_NODE_NAME = "europa-sandbox"
UNSPECIFIED_ADDRESS = "0.0.0.0"
LOCALHOST_ADDRESS = "127.0.0.1"

_INVALID_CHARS = re.compile(r"[\\.@]")
_INVALID_PATTERNS = re.compile(r"(https?:\\/+)?(www)+")


@dataclass(frozen=True)
class Cors:
    """Allowed browser origins; `origins` of `None` allows every origin."""

    origins: tuple[str, ...] | None = None

    @classmethod
    def all(cls) -> "Cors":
        return cls(None)

    @classmethod
    def only(cls, origins: list[str] | tuple[str, ...]) -> "Cors":
        return cls(tuple(origins))

    @property
    def allows_all(self) -> bool:
        return self.origins is None

    def as_list(self) -> list[str] | None:
        """The origin list, or `None` when every origin is allowed."""
        return None if self.origins is None else list(self.origins)


def parse_cors(text: str) -> Cors:
    """Parse a comma separated list of origins; `all` or `*` allows every origin."""
    origins: list[str] = []
    for part in text.split(","):
        if part in ("all", "*"):
            return Cors.all()
        origins.append(part)
    return Cors.only(origins)


def is_node_name_valid(name: str) -> None:
    """Raise `ValueError` with the reason if `name` is not an acceptable node name."""
    if len(name) >= NODE_NAME_MAX_LENGTH:
        raise ValueError("Node name too long")
    if _INVALID_CHARS.search(name):
        raise ValueError("Node name should not contain invalid chars such as '.' and '@'")
    if _INVALID_PATTERNS.search(name):
        raise ValueError("Node name should not contain urls")


def rpc_interface(
    is_external: bool,
    is_unsafe_external: bool,
    rpc_methods: RpcMethods,
    is_validator: bool,
) -> str:
    """Return the address an RPC server should listen on."""
    if is_external and is_validator and rpc_methods is not RpcMethods.UNSAFE:
        raise InputError(
            "--rpc-external and --ws-external options shouldn't be used if the node is "
            "running as a validator. Use `--unsafe-rpc-external` or `--rpc-methods=unsafe` "
            "if you understand the risks. See the options description for more information."
        )
    if is_external or is_unsafe_external:
        if rpc_methods is RpcMethods.UNSAFE:
            logger.warning(
                "It isn't safe to expose RPC publicly without a proxy server that filters "
                "available set of RPC methods."
            )
        return UNSPECIFIED_ADDRESS
    return LOCALHOST_ADDRESS


@dataclass
class RunCmd(CliConfiguration):
    """Options of the command that runs a node."""

    rpc_external: bool = False
    unsafe_rpc_external: bool = False
    methods: RpcMethods = RpcMethods.AUTO
    ws_external: bool = False
    unsafe_ws_external: bool = False
    ipc_path: str | None = None
    rpc_port: int | None = None
    ws_port: int | None = None
    ws_max_connections: int | None = None
    cors: Cors | None = None
    name: str | None = None
    shared: SharedParams = field(default_factory=SharedParams)
    imports: ImportParams = field(default_factory=ImportParams)
    force_authoring: bool = False
    max_runtime_instances: int | None = None
    tmp: bool = False

    def __post_init__(self) -> None:
        if self.tmp and (self.shared.base_path is not None or self.shared.workspace is not None):
            raise InputError("--tmp cannot be used with --base-path or --workspace")
        for label, port in (("rpc-port", self.rpc_port), ("ws-port", self.ws_port)):
            if port is not None and not 0 <= port <= 0xFFFF:
                raise InputError(f"--{label} must be between 0 and 65535")

    def shared_params(self) -> SharedParams:
        return self.shared

    def import_params(self) -> ImportParams | None:
        return self.imports

    def node_name(self) -> str:
        name = self.name if self.name is not None else DEFAULT_NODE_NAME
        try:
            is_node_name_valid(name)
        except ValueError as exc:
            raise InputError(
                f"Invalid node name '{name}'. Reason: {exc}. If unsure, use none."
            ) from exc
        return name

    def rpc_ws_max_connections(self) -> int | None:
        return self.ws_max_connections

    def rpc_cors(self) -> list[str] | None:
        return (self.cors or Cors.all()).as_list()

    def rpc_http(self, default_listen_port: int) -> tuple[str, int] | None:
        interface = rpc_interface(self.rpc_external, self.unsafe_rpc_external, self.methods, True)
        port = self.rpc_port if self.rpc_port is not None else default_listen_port
        return interface, port

    def rpc_ipc(self) -> str | None:
        return self.ipc_path

    def rpc_ws(self, default_listen_port: int) -> tuple[str, int] | None:
        interface = rpc_interface(self.ws_external, self.unsafe_ws_external, self.methods, True)
        port = self.ws_port if self.ws_port is not None else default_listen_port
        return interface, port

    def rpc_methods(self) -> RpcMethods:
        return self.methods

    def base_path(self) -> BasePath | None:
        if self.tmp:
            return new_temp_base_path()
        return super().base_path()