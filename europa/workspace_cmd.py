"""The `workspace` command: list, select and delete workspaces."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from europa.config import (
    DEFAULT_WORKSPACE,
    BasePath,
    CliConfiguration,
    CliInfo,
    Metadata,
    default_base_path,
    metadata,
)
from europa.params import SharedParams

logger = logging.getLogger(__name__)

_HEADING = "\x1b[1;33m{}\x1b[0m"


class WorkspaceAction(Enum):
    """What the workspace command does."""

    LIST = "list"
    DEFAULT = "default"
    DELETE = "delete"


@dataclass
class WorkspaceCmd(CliConfiguration):
    """Operate on the workspaces recorded under a base path."""

    action: WorkspaceAction
    name: str | None = None
    shared: SharedParams = field(default_factory=SharedParams)

    def __post_init__(self) -> None:
        if self.action is not WorkspaceAction.LIST and self.name is None:
            raise ValueError(f"the {self.action.value} action needs a workspace name")

    def shared_params(self) -> SharedParams:
        return self.shared

    def run(self, base_path: BasePath | Path) -> list[str]:
        """Apply the action under `base_path` and return the lines logged."""
        base = base_path if isinstance(base_path, BasePath) else BasePath(Path(base_path))
        colour = not self.shared.disable_log_color
        lines: list[str] = []

        def emit(text: str, heading: bool = False) -> None:
            lines.append(text)
            logger.info("%s", _HEADING.format(text) if heading and colour else text)

        def update(meta: Metadata) -> Metadata:
            emit("Current default workspace:", heading=True)
            if meta.current_workspace is not None:
                default = meta.current_workspace
                emit(f"\t{default}")
            else:
                default = DEFAULT_WORKSPACE
                emit(
                    "\t[Notice:have not set default workspace, would use "
                    f'"{DEFAULT_WORKSPACE}" as default workspace name]'
                )
            emit("")

            if self.action is WorkspaceAction.LIST:
                emit("List all recorded workspaces:", heading=True)
                if meta.workspaces is None:
                    emit("\tcurrent do not have any workspace!")
                else:
                    for item in meta.workspaces:
                        marker = "\t<---[default workspace]" if item == default else ""
                        emit(f"\t{item}{marker}")
            elif self.action is WorkspaceAction.DEFAULT:
                emit(f"Set [{self.name}] as default workspace.", heading=True)
                meta.current_workspace = self.name
            else:
                emit(f"Delete workspace [{self.name}].", heading=True)
                if meta.current_workspace == self.name:
                    emit(f"\tdelete default record: [{meta.current_workspace}]")
                    meta.current_workspace = None
                if meta.workspaces is not None and self.name in meta.workspaces:
                    emit(f"\tdelete workspace:[{self.name}] from workspace list")
                    meta.workspaces = [w for w in meta.workspaces if w != self.name]
                shutil.rmtree(base.path / self.name, ignore_errors=True)
            return meta

        metadata(base, update)
        return lines

    def init_and_run(self, cli: CliInfo) -> list[str]:
        """Initialise logging and run; needs no runner."""
        self.init(cli)
        base = self.base_path() or default_base_path(cli.executable_name)
        return self.run(base)