import pytest

from europa.config import DEFAULT_WORKSPACE, ChainSpec, CliInfo, Metadata, metadata
from europa.params import SharedParams
from europa.workspace_cmd import WorkspaceAction, WorkspaceCmd


def _read(base):
    return metadata(base, lambda m: m)


def test_list_without_workspaces(tmp_path):
    lines = WorkspaceCmd(WorkspaceAction.LIST).run(tmp_path)
    assert "\tcurrent do not have any workspace!" in lines
    assert _read(tmp_path) == Metadata(None, None)


def test_default_sets_current(tmp_path):
    lines = WorkspaceCmd(WorkspaceAction.DEFAULT, "dev").run(tmp_path)
    assert "Set [dev] as default workspace." in lines
    meta = _read(tmp_path)
    assert meta.current_workspace == "dev"
    assert meta.workspaces is None


def test_list_marks_default(tmp_path):
    def seed(m):
        m.workspaces = ["a", "b"]
        m.current_workspace = "b"
        return m

    metadata(tmp_path, seed)
    lines = WorkspaceCmd(WorkspaceAction.LIST).run(tmp_path)
    assert "\ta" in lines
    assert "\tb\t<---[default workspace]" in lines


def test_list_uses_fallback_default(tmp_path):
    metadata(tmp_path, lambda m: Metadata([DEFAULT_WORKSPACE], None))
    lines = WorkspaceCmd(WorkspaceAction.LIST).run(tmp_path)
    assert f"\t{DEFAULT_WORKSPACE}\t<---[default workspace]" in lines


def test_delete_removes_record_and_data(tmp_path):
    metadata(tmp_path, lambda m: Metadata(["a", "b"], "a"))
    (tmp_path / "a" / "chains").mkdir(parents=True)
    WorkspaceCmd(WorkspaceAction.DELETE, "a").run(tmp_path)
    meta = _read(tmp_path)
    assert meta.workspaces == ["b"]
    assert meta.current_workspace is None
    assert not (tmp_path / "a").exists()


def test_action_needs_name():
    with pytest.raises(ValueError):
        WorkspaceCmd(WorkspaceAction.DELETE)


def test_init_and_run_uses_base_path(tmp_path):
    cli = CliInfo(spec_loader=lambda chain_id: ChainSpec("Development", "dev"))
    cmd = WorkspaceCmd(WorkspaceAction.DEFAULT, "w", SharedParams(base_path=tmp_path))
    cmd.init_and_run(cli)
    assert _read(tmp_path).current_workspace == "w"