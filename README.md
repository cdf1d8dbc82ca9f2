# europa

Tooling for a sandbox development node. It keeps a record of every state key
and value that each block modified, links block hashes to block numbers,
manages named workspaces under a base directory, and turns command-line
options into a node configuration.

It needs nothing beyond the Python standard library (3.10 or later); the
state records are kept in SQLite.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
europa --help
```

Options shared by all commands: `--chain`, `-d/--base-path`, `-w/--workspace`,
`-l/--log` (repeatable, `<target>=<level>` or a bare level), `--disable-log-color`,
`--disable-log-reloading` and `--tracing-targets`. Import options: `--pruning`
(a number of blocks or `archive`), `--database`/`--db` (`RocksDb` or
`ParityDb`), `--db-cache`, `--unsafe-pruning` and `--state-cache-size`.
The `state-kv` and `workspace` subcommands take the shared options after the
subcommand name.

### Running

```
europa --name my-node --rpc-port 9933 --rpc-cors all
europa --tmp
```

With no subcommand, `europa` records the workspace in the base path's
`_metadata` file, builds the configuration, logs the node information, opens
the state kv store for the configured database and then waits until it
receives SIGINT or SIGTERM, when it closes the store. `--tmp` uses a fresh
temporary base path and cannot be combined with `--base-path` or
`--workspace`.

Further run options: `--rpc-external`, `--unsafe-rpc-external`,
`--rpc-methods` (`Auto`, `Safe`, `Unsafe`), `--ws-external`,
`--unsafe-ws-external`, `--ipc-path`, `--ws-port`, `--ws-max-connections`,
`--force-authoring` and `--max-runtime-instances`. Node names must be
shorter than 64 characters and may not contain `.`, `@`, `\` or URLs;
the default name is `europa-sandbox`.

### Modified state of a block

Given a block number or a `0x` block hash of 32 bytes:

```
europa state-kv 12
europa state-kv 0x<block hash> --child 0x<child key>
```

Each modified key is logged as `key:<hex>|value:<hex>`, with `[DELETED]` for
keys the block removed.

### Workspaces

```
europa workspace list
europa workspace default my-workspace
europa workspace delete old-workspace
```

Deleting a workspace removes it from the recorded list and removes all of
its data from the base path.

The command exits with status 1 and an `Error:` message on failure.

## Library use

`europa.statekv.StateKv` stores modified key/value pairs per block hash,
marking deleted keys, and maps block hashes to numbers and back. It is given
the path of the main database directory and keeps its own data in a
`db_state_kv` directory beside it:

```python
from europa.statekv import StateKv

with StateKv("/tmp/node/chains/dev/db") as kv:
    block = bytes(32)
    kv.set_kv(block, b"key", b"value")
    kv.set_kv(block, b"gone", None)      # recorded as deleted
    kv.set_hash_and_number(block, 1)

    kv.get_kvs_by_hash(block)            # [(b"gone", None), (b"key", b"value")]
    kv.get_hash(1)                       # block
```

Several changes can be collected with `StateKv.transaction` and written at
once with `StateKv.commit`; `StateKvTransaction.remove` drops a change that
was collected earlier. Child storage has the `*_child_*` counterparts.

Other modules:

- `europa.params` – `SharedParams`, `ImportParams`, `PruningParams`,
  `PruningMode` and the argparse helpers that fill them.
- `europa.config` – `CliConfiguration`, `Configuration`, `CliInfo`,
  `BasePath` and the workspace `metadata` function.
- `europa.run_cmd` – `RunCmd`, `is_node_name_valid`, `parse_cors`,
  `rpc_interface`.
- `europa.statekv_cmd` – `StateKvCmd`, `parse_bytes`,
  `parse_block_number_or_hash`.
- `europa.workspace_cmd` – `WorkspaceCmd` and `WorkspaceAction`.
- `europa.rpc` – the `Europa` handler (`forward_to_height`,
  `backward_to_height`, `state_kvs`) and its errors, which convert to
  JSON-RPC error objects.
- `europa.runner` – `build_runner` and `Runner`.
- `europa.constants` – currency units and `deposit`.

## What it does not do

The package does not produce or import blocks and executes no runtime or
contract code; running a node only prepares its configuration and state
store and waits for a stop signal. It starts no RPC server: `europa.rpc.Europa`
is a handler that must be given a chain client and backend, and it only
queues forward requests as `ForwardMessage` items. The `ParityDb` setting is
recorded in the configuration but the state records are always kept in SQLite.