import argparse
from pathlib import Path

import pytest

from europa.params import (
    Database,
    PruningMode,
    PruningParams,
    SharedParams,
    add_import_arguments,
    add_shared_arguments,
    import_params_from_namespace,
    shared_params_from_namespace,
)


@pytest.fixture
def parser():
    p = argparse.ArgumentParser()
    add_shared_arguments(p)
    add_import_arguments(p)
    return p


@pytest.mark.parametrize("value", [None, "archive"])
def test_pruning_archive(value):
    mode = PruningParams(value).pruning_mode(False)
    assert mode == PruningMode.archive_all()
    assert mode.is_archive


def test_pruning_keep_blocks():
    assert PruningParams("100").pruning_mode(True) == PruningMode.keep(100)


@pytest.mark.parametrize("value", ["abc", "-1", "", "1.5", str(2**32)])
def test_pruning_invalid(value):
    with pytest.raises(ValueError, match="Invalid pruning mode specified"):
        PruningParams(value).pruning_mode(False)


def test_chain_id_defaults_to_empty():
    assert SharedParams().chain_id() == ""
    assert SharedParams(chain="dev").chain_id() == "dev"


def test_database_from_str_case_insensitive():
    assert Database.from_str("rocksdb") is Database.ROCKS_DB
    assert Database.from_str("PARITYDB") is Database.PARITY_DB
    with pytest.raises(ValueError):
        Database.from_str("nope")


def test_parse_shared(parser):
    ns = parser.parse_args(
        ["--chain", "dev", "-lsync=debug", "-l", "info", "-w", "ws1", "-d", "/tmp/base"]
    )
    shared = shared_params_from_namespace(ns)
    assert shared.chain_id() == "dev"
    assert shared.log_filters() == ["sync=debug", "info"]
    assert shared.workspace == "ws1"
    assert shared.base_path == Path("/tmp/base")
    assert shared.disable_log_color is False


def test_parse_import_defaults(parser):
    params = import_params_from_namespace(parser.parse_args([]))
    assert params.state_cache_size == 67108864
    assert params.unsafe_pruning is False
    assert params.database_params.database is None
    assert params.pruning_params.pruning_mode(False).is_archive


def test_parse_import_values(parser):
    ns = parser.parse_args(
        ["--pruning", "256", "--db", "paritydb", "--db-cache", "64", "--unsafe-pruning"]
    )
    params = import_params_from_namespace(ns)
    assert params.pruning_params.pruning_mode(True) == PruningMode.keep(256)
    assert params.database_params.database is Database.PARITY_DB
    assert params.database_params.database_cache_size == 64
    assert params.unsafe_pruning is True


def test_parse_invalid_database(parser):
    with pytest.raises(SystemExit):
        parser.parse_args(["--database", "mongo"])