from pathlib import Path

import pytest

from europa.config import BasePath, InputError, RpcMethods
from europa.params import SharedParams
from europa.run_cmd import (
    DEFAULT_NODE_NAME,
    LOCALHOST_ADDRESS,
    UNSPECIFIED_ADDRESS,
    Cors,
    RunCmd,
    is_node_name_valid,
    parse_cors,
    rpc_interface,
)


def test_node_name_good():
    assert RunCmd(name="short name").node_name() == "short name"


@pytest.mark.parametrize(
    "name",
    [
        "very very long names are really not very cool for the ui at all, really they're not",
        "Dots.not.Ok",
        "http://visit.me",
        "https://visit.me",
        "www.visit.me",
        "email@domain",
    ],
)
def test_node_name_bad(name):
    with pytest.raises(ValueError):
        is_node_name_valid(name)


def test_node_name_too_long_reason():
    with pytest.raises(ValueError, match="Node name too long"):
        is_node_name_valid("x" * 64)


def test_node_name_url_reason():
    with pytest.raises(ValueError, match="should not contain urls"):
        is_node_name_valid("wwwhost")


def test_node_name_default():
    assert RunCmd().node_name() == DEFAULT_NODE_NAME


def test_node_name_invalid_raises_input_error():
    with pytest.raises(InputError, match="Invalid node name 'Dots.not.Ok'"):
        RunCmd(name="Dots.not.Ok").node_name()


def test_parse_cors_list():
    cors = parse_cors("http://localhost,https://example.com")
    assert cors.as_list() == ["http://localhost", "https://example.com"]
    assert not cors.allows_all


@pytest.mark.parametrize("text", ["all", "*", "http://localhost,*", "all,http://localhost"])
def test_parse_cors_all(text):
    assert parse_cors(text) == Cors.all()
    assert parse_cors(text).as_list() is None


def test_rpc_cors_defaults_to_all():
    assert RunCmd().rpc_cors() is None


def test_rpc_cors_list():
    cmd = RunCmd(cors=parse_cors("http://localhost"))
    assert cmd.rpc_cors() == ["http://localhost"]


def test_rpc_interface_local():
    assert rpc_interface(False, False, RpcMethods.AUTO, True) == LOCALHOST_ADDRESS


def test_rpc_interface_unsafe_external():
    assert rpc_interface(False, True, RpcMethods.AUTO, True) == UNSPECIFIED_ADDRESS


def test_rpc_interface_external_unsafe_methods():
    assert rpc_interface(True, False, RpcMethods.UNSAFE, True) == UNSPECIFIED_ADDRESS


def test_rpc_interface_external_validator_rejected():
    with pytest.raises(InputError, match="--rpc-external"):
        rpc_interface(True, False, RpcMethods.SAFE, True)


def test_rpc_interface_external_not_validator():
    assert rpc_interface(True, False, RpcMethods.SAFE, False) == UNSPECIFIED_ADDRESS


def test_rpc_http_uses_default_port():
    assert RunCmd().rpc_http(9933) == (LOCALHOST_ADDRESS, 9933)


def test_rpc_http_custom_port_and_external():
    cmd = RunCmd(unsafe_rpc_external=True, rpc_port=8000)
    assert cmd.rpc_http(9933) == (UNSPECIFIED_ADDRESS, 8000)


def test_rpc_ws_external_rejected():
    with pytest.raises(InputError):
        RunCmd(ws_external=True).rpc_ws(9944)


def test_rpc_ws_port():
    assert RunCmd(ws_port=7000).rpc_ws(9944) == (LOCALHOST_ADDRESS, 7000)


def test_simple_accessors():
    cmd = RunCmd(ipc_path="/tmp/node.ipc", ws_max_connections=10, methods=RpcMethods.SAFE)
    assert cmd.rpc_ipc() == "/tmp/node.ipc"
    assert cmd.rpc_ws_max_connections() == 10
    assert cmd.rpc_methods() is RpcMethods.SAFE


def test_base_path_from_shared(tmp_path):
    cmd = RunCmd(shared=SharedParams(base_path=tmp_path))
    assert cmd.base_path() == BasePath(Path(tmp_path))


def test_base_path_tmp():
    base = RunCmd(tmp=True).base_path()
    assert base.temporary is True
    assert base.path.is_dir()


def test_tmp_conflicts_with_workspace():
    with pytest.raises(InputError):
        RunCmd(tmp=True, shared=SharedParams(workspace="w"))


def test_invalid_port():
    with pytest.raises(InputError):
        RunCmd(rpc_port=70000)