import json
import logging

import pytest

from europa.cli import build_parser, development_config, europa_cli, main, new_state_kv
from europa.config import METADATA_FILE
from europa.params import SharedParams
from europa.statekv import StateKv
from europa.statekv_cmd import StateKvCmd

BLOCK_HASH = bytes(range(32))


def _db_path(base):
    return base / "default" / "chains" / "dev" / "db"


def test_development_config():
    spec = development_config()
    assert spec.name == "Development"
    assert spec.id == "dev"
    assert spec.properties == {"ss58Format": 42, "tokenDecimals": 10, "tokenSymbol": "DOT"}


def test_every_chain_id_loads_development_spec():
    cli = europa_cli()
    assert cli.impl_name == "Europa Dev Node"
    assert cli.load_spec("whatever") == development_config()
    assert cli.load_spec("") == development_config()


def test_parser_state_kv_child():
    args = build_parser().parse_args(["state-kv", "5", "--child", "0x0102"])
    assert args.subcommand == "state-kv"
    assert args.input == "5"
    assert args.child == b"\x01\x02"


def test_parser_rejects_child_without_prefix():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["state-kv", "5", "--child", "0102"])


def test_parser_workspace_default():
    args = build_parser().parse_args(["workspace", "default", "alpha"])
    assert args.workspace_action == "default"
    assert args.workspace_name == "alpha"


def test_parser_run_options():
    args = build_parser().parse_args(["--rpc-port", "4242", "--rpc-cors", "all"])
    assert args.subcommand is None
    assert args.rpc_port == 4242
    assert args.rpc_cors.allows_all


def test_new_state_kv_round_trip(tmp_path):
    command = StateKvCmd("0", shared=SharedParams(base_path=tmp_path))
    config = command.create_configuration(europa_cli())
    with new_state_kv(config, False) as state_kv:
        state_kv.set_kv(BLOCK_HASH, b"k", b"v")
    assert (config.database.path.parent / "db_state_kv").is_dir()
    with new_state_kv(config, True) as state_kv:
        assert state_kv.get(BLOCK_HASH, b"k") == b"v"


def test_main_workspace_default_updates_metadata(tmp_path):
    assert main(["workspace", "-d", str(tmp_path), "default", "alpha"]) == 0
    stored = json.loads((tmp_path / METADATA_FILE).read_text())
    assert stored["current_workspace"] == "alpha"


def test_main_state_kv_by_number(tmp_path, caplog):
    with StateKv(_db_path(tmp_path)) as state_kv:
        state_kv.set_kv(BLOCK_HASH, b"\x01", b"\x02")
        state_kv.set_kv(BLOCK_HASH, b"\x03", None)
        state_kv.set_hash_and_number(BLOCK_HASH, 0)
    caplog.set_level(logging.INFO)
    assert main(["state-kv", "-d", str(tmp_path), "0"]) == 0
    assert "key:01|value:02" in caplog.text
    assert "key:03|value:[DELETED]" in caplog.text


def test_main_state_kv_by_hash(tmp_path, caplog):
    with StateKv(_db_path(tmp_path)) as state_kv:
        state_kv.set_kv(BLOCK_HASH, b"\x0a", b"\x0b")
    caplog.set_level(logging.INFO)
    assert main(["state-kv", "-d", str(tmp_path), "0x" + BLOCK_HASH.hex()]) == 0
    assert "key:0a|value:0b" in caplog.text


def test_main_state_kv_unknown_number_fails(tmp_path, capsys):
    with StateKv(_db_path(tmp_path)) as state_kv:
        state_kv.set_kv(BLOCK_HASH, b"\x01", b"\x02")
    assert main(["state-kv", "-d", str(tmp_path), "7"]) == 1
    assert "do not have block hash for this block number: 7" in capsys.readouterr().err


def test_main_state_kv_without_database_fails(tmp_path):
    assert main(["state-kv", "-d", str(tmp_path), "0"]) == 1


def test_main_tmp_conflicts_with_base_path(tmp_path):
    assert main(["--tmp", "-d", str(tmp_path)]) == 1