"""The `europa` command: run a sandbox node or inspect its stored data."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from europa.config import ChainSpec, CliError, CliInfo, Configuration, InputError, RpcMethods
from europa.params import (
    add_import_arguments,
    add_shared_arguments,
    import_params_from_namespace,
    shared_params_from_namespace,
)
from europa.run_cmd import RunCmd, parse_cors
from europa.runner import build_runner
from europa.statekv import StateKv
from europa.statekv_cmd import StateKvCmd, parse_bytes
from europa.workspace_cmd import WorkspaceAction, WorkspaceCmd

logger = logging.getLogger(__name__)


def development_config() -> ChainSpec:
    """The development chain specification."""
    return ChainSpec(
        name="Development",
        id="dev",
        chain_type="Development",
        properties={"ss58Format": 42, "tokenDecimals": 10, "tokenSymbol": "DOT"},
    )


def europa_cli() -> CliInfo:
    """Describe the program; every chain id loads the development spec."""
    return CliInfo(
        spec_loader=lambda chain_id: development_config(),
        impl_name="Europa Dev Node",
        copyright_start_year=2020,
        executable_name="europa",
    )


def new_state_kv(config: Configuration, read_only: bool) -> StateKv:
    """Open the state kv store that belongs to the configured database."""
    return StateKv(config.database.path, read_only)


def _rpc_methods_arg(text: str) -> RpcMethods:
    try:
        return RpcMethods.from_str(text)
    except InputError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _bytes_arg(text: str) -> bytes:
    try:
        return parse_bytes(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--rpc-external", action="store_true", help="listen to all RPC interfaces")
    parser.add_argument(
        "--unsafe-rpc-external", action="store_true", help="same as --rpc-external"
    )
    parser.add_argument(
        "--rpc-methods", type=_rpc_methods_arg, default=RpcMethods.AUTO,
        metavar="METHOD SET", help="RPC methods to expose: Auto, Safe or Unsafe",
    )
    parser.add_argument("--ws-external", action="store_true", help="listen to all WS interfaces")
    parser.add_argument(
        "--unsafe-ws-external", action="store_true", help="same as --ws-external"
    )
    parser.add_argument("--ipc-path", metavar="PATH", help="IPC RPC server path")
    parser.add_argument("--rpc-port", type=int, metavar="PORT", help="HTTP RPC server port")
    parser.add_argument("--ws-port", type=int, metavar="PORT", help="WebSockets RPC server port")
    parser.add_argument(
        "--ws-max-connections", type=int, metavar="COUNT", help="maximum WS RPC connections"
    )
    parser.add_argument(
        "--rpc-cors", type=parse_cors, metavar="ORIGINS", help="allowed origins, or 'all'"
    )
    parser.add_argument("--name", metavar="NAME", help="human-readable node name")
    parser.add_argument(
        "--force-authoring", action="store_true", help="enable authoring even when offline"
    )
    parser.add_argument(
        "--max-runtime-instances", type=int, help="size of the instances cache per runtime"
    )
    parser.add_argument("--tmp", action="store_true", help="run a temporary node")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the `europa` command."""
    parser = argparse.ArgumentParser(prog="europa", description="Europa sandbox node")
    add_shared_arguments(parser)
    add_import_arguments(parser)
    _add_run_arguments(parser)

    subcommands = parser.add_subparsers(dest="subcommand")

    state_kv = subcommands.add_parser(
        "state-kv", help="print modified stored state kvs for a block"
    )
    state_kv.add_argument("input", metavar="HASH or NUMBER", help="block hash or number")
    state_kv.add_argument("--child", type=_bytes_arg, metavar="CHILD HASH", help="child storage")
    add_shared_arguments(state_kv)
    add_import_arguments(state_kv)

    workspace = subcommands.add_parser("workspace", help="workspace operations")
    add_shared_arguments(workspace)
    actions = workspace.add_subparsers(dest="workspace_action", required=True)
    actions.add_parser(WorkspaceAction.LIST.value, help="list all workspaces")
    default = actions.add_parser(WorkspaceAction.DEFAULT.value, help="set the default workspace")
    default.add_argument("workspace_name", metavar="DEFAULT WORKSPACE")
    delete = actions.add_parser(
        WorkspaceAction.DELETE.value, help="delete a workspace and all its data"
    )
    delete.add_argument("workspace_name", metavar="DEL WORKSPACE")
    return parser


def _run_cmd_from_namespace(args: argparse.Namespace) -> RunCmd:
    return RunCmd(
        rpc_external=args.rpc_external,
        unsafe_rpc_external=args.unsafe_rpc_external,
        methods=args.rpc_methods,
        ws_external=args.ws_external,
        unsafe_ws_external=args.unsafe_ws_external,
        ipc_path=args.ipc_path,
        rpc_port=args.rpc_port,
        ws_port=args.ws_port,
        ws_max_connections=args.ws_max_connections,
        cors=args.rpc_cors,
        name=args.name,
        shared=shared_params_from_namespace(args),
        imports=import_params_from_namespace(args),
        force_authoring=args.force_authoring,
        max_runtime_instances=args.max_runtime_instances,
        tmp=args.tmp,
    )


async def _serve_forever() -> None:
    logger.info("Node running; send SIGINT or SIGTERM to stop")
    await asyncio.Event().wait()


def _full_node(config: Configuration):
    state_kv = new_state_kv(config, False)
    return _serve_forever(), state_kv.close


def _dispatch(args: argparse.Namespace, cli: CliInfo) -> None:
    if args.subcommand == "state-kv":
        command = StateKvCmd(
            input=args.input,
            child=args.child,
            shared=shared_params_from_namespace(args),
            imports=import_params_from_namespace(args),
        )
        runner = build_runner(cli, command)

        def show(config: Configuration) -> list[str]:
            with new_state_kv(config, True) as state_kv:
                return command.run(state_kv)

        runner.sync_run(show)
    elif args.subcommand == "workspace":
        WorkspaceCmd(
            WorkspaceAction(args.workspace_action),
            getattr(args, "workspace_name", None),
            shared_params_from_namespace(args),
        ).init_and_run(cli)
    else:
        runner = build_runner(cli, _run_cmd_from_namespace(args))
        runner.node_infos()
        runner.async_run(_full_node)


def main(argv: list[str] | None = None) -> int:
    """Parse the command line and run; return the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        _dispatch(args, europa_cli())
    except (CliError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())