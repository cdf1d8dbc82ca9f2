"""Running a command's work with the node configuration it describes."""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import inspect
import logging
import signal
from typing import Any, Awaitable, Callable, TypeVar

from europa.config import CliConfiguration, CliError, CliInfo, Configuration

logger = logging.getLogger(__name__)

T = TypeVar("T")
Shutdown = Callable[[], Any]


def _as_cli_error(exc: BaseException) -> CliError:
    if isinstance(exc, CliError):
        return exc
    error = CliError(str(exc))
    error.__cause__ = exc
    return error


def _stop_signals() -> list[int]:
    signals = [signal.SIGINT]
    term = getattr(signal, "SIGTERM", None)
    if term is not None:
        signals.append(term)
    return signals


async def _run_until_exit(work: Awaitable[Any], shutdown: Shutdown | None) -> None:
    """Run `work` until it finishes or SIGINT/SIGTERM arrives, then shut down."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed = []
    for signum in _stop_signals():
        try:
            loop.add_signal_handler(signum, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(signum)

    task = asyncio.ensure_future(work)
    stopper = asyncio.ensure_future(stop.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
        stopper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stopper

    if task.done():
        exc = task.exception()
        if exc is not None:
            raise _as_cli_error(exc)
    else:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    if shutdown is not None:
        result = shutdown()
        if inspect.isawaitable(result):
            await result


class Runner:
    """Holds the configuration built from a command and runs work with it."""

    def __init__(self, cli: CliInfo, command: CliConfiguration) -> None:
        self.cli = cli
        self.config: Configuration = command.create_configuration(cli)

    def node_infos(self) -> list[str]:
        """Log information about the node and return the lines logged."""
        cli = self.cli
        config = self.config
        workspaces = "[" + ", ".join(f'"{w}"' for w in config.workspace_list) + "]"
        lines = [
            cli.impl_name,
            f"✌️  version {cli.impl_version}",
            f"❤️  by {cli.author}, {cli.copyright_start_year}-{datetime.date.today().year}",
            f"📋 Chain specification: {config.chain_spec.name}",
            f"💾 Database: {config.database} at {config.database.path}",
            f"📖 Workspace: {config.workspace} | Current workspace list: {workspaces}",
            f"⛓  Native runtime: {cli.native_runtime_version}",
        ]
        for line in lines:
            logger.info("%s", line)
        return lines

    def sync_run(self, runner: Callable[[Configuration], T]) -> T:
        """Call `runner` with the configuration and return what it returns."""
        return runner(self.config)

    def async_run(
        self,
        runner: Callable[
            [Configuration], Awaitable[Any] | tuple[Awaitable[Any], Shutdown | None]
        ],
    ) -> None:
        """Run the awaitable `runner` builds until it ends or the process is told to stop.

        `runner` returns an awaitable, or an awaitable and a shutdown callable
        (plain or async) that is called once the awaitable has stopped cleanly.
        """
        built = runner(self.config)
        if isinstance(built, tuple):
            work, shutdown = built
        else:
            work, shutdown = built, None
        asyncio.run(_run_until_exit(work, shutdown))


def build_runner(cli: CliInfo, command: CliConfiguration) -> Runner:
    """Initialise logging for `command` and build its runner."""
    command.init(cli)
    return Runner(cli, command)