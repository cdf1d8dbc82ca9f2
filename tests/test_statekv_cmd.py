import pytest

from europa.config import InputError
from europa.statekv import StateKv
from europa.statekv_cmd import StateKvCmd, parse_block_number_or_hash, parse_bytes

BLOCK = bytes(range(32))


@pytest.fixture
def state_kv(tmp_path):
    with StateKv(tmp_path / "db") as kv:
        kv.set_kv(BLOCK, b"\x01", b"\x02")
        kv.set_kv(BLOCK, b"\x03", None)
        kv.set_child_kv(BLOCK, b"\xaa", b"\x04", b"\x05")
        kv.set_hash_and_number(BLOCK, 5)
        yield kv


def test_parse_bytes_round_trip():
    assert parse_bytes("0x" + b"\x01\xff".hex()) == b"\x01\xff"


def test_parse_bytes_requires_prefix():
    with pytest.raises(ValueError):
        parse_bytes("01ff")


def test_parse_bytes_rejects_bad_hex():
    with pytest.raises(ValueError):
        parse_bytes("0xzz")


def test_parse_number_and_hash():
    assert parse_block_number_or_hash("42") == 42
    assert parse_block_number_or_hash("0x" + BLOCK.hex()) == BLOCK


@pytest.mark.parametrize("text", ["abc", "-1", "", "0x12", "0x" + "g" * 64])
def test_parse_block_number_or_hash_errors(text):
    with pytest.raises(InputError):
        parse_block_number_or_hash(text)


def test_run_by_number(state_kv):
    lines = StateKvCmd(input="5").run(state_kv)
    assert lines[0] == "modified state for block:0x" + BLOCK.hex()
    assert "\tkey:01|value:02" in lines
    assert "\tkey:03|value:[DELETED]" in lines
    assert len(lines) == 3


def test_run_by_hash_with_child(state_kv):
    lines = StateKvCmd(input="0x" + BLOCK.hex(), child=b"\xaa").run(state_kv)
    assert lines[-2] == f"modified child state for block:0x{BLOCK.hex()}|child:aa"
    assert lines[-1] == "\tkey:04|value:05"


def test_run_unknown_number(state_kv):
    with pytest.raises(InputError):
        StateKvCmd(input="6").run(state_kv)


def test_run_unknown_child(state_kv):
    with pytest.raises(InputError):
        StateKvCmd(input="5", child=b"\xbb").run(state_kv)


def test_run_unknown_hash(state_kv):
    with pytest.raises(InputError):
        StateKvCmd(input="0x" + bytes(32).hex()).run(state_kv)