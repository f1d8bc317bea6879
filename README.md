# xmrblocks

The building blocks of a Monero blockchain explorer:

- `xmrblocks.rpc` has `DaemonRpc`, a client for the JSON and JSON-RPC endpoints
  of a Monero daemon. It covers height, transaction pool, network info, hard-fork
  info, fee estimate, alternative blocks, block lookup and sending raw
  transactions.
- `xmrblocks.mempool` has `MempoolMonitor`. It runs in the background and keeps a
  snapshot of the transaction pool, newest first, along with the latest
  `NetworkInfo`.
- `xmrblocks.emission` has `EmissionMonitor`. It runs in the background, adds up
  the coinbase and fee emission block by block, and stores its progress in a
  checksummed text file.
- `xmrblocks.txsummary` has helpers for decoded (JSON) transactions. They sum
  inputs and outputs, count non-RingCT inputs, find the ring size, and parse
  `tx_extra` for payment IDs and transaction public keys.
- `xmrblocks.tools` has general helpers. They format XMR amounts and timestamps,
  decode URL-encoded form data, work out metric prefixes and find default LMDB
  paths.
- `xmrblocks.options` has `CmdLineOptions`, a parser for the explorer's
  command-line options.

## Talking to a daemon

```python
from xmrblocks.rpc import DaemonRpc, RpcError

rpc = DaemonRpc(daemon_url="http://127.0.0.1:18081", timeout=200000)  # timeout in ms

try:
    height = rpc.get_current_height()
    pool = rpc.get_mempool()          # newest transactions first
    info = rpc.get_network_info()
    fee = rpc.get_fee_estimate(grace_blocks=10)
except RpcError as exc:
    print("daemon call failed:", exc)
```

`RpcError` is raised when the daemon cannot be reached or sends something that is
not a JSON object. The JSON-RPC calls, `get_mempool` and `get_alt_blocks` also
raise it when the daemon answers with a status other than `OK`, and
`send_raw_transaction` raises it when the status is `Failed`. `DaemonRpc` can be
used as a context manager to close its HTTP session.

## Watching the transaction pool

```python
from xmrblocks.mempool import MempoolMonitor

monitor = MempoolMonitor(rpc=rpc, refresh_time=5)
monitor.start()

for tx in monitor.get_mempool_txs(limit=10):
    print(tx.timestamp_str, tx.fee_str, tx.txsize, tx.pid)

print(monitor.mempool_no, monitor.mempool_size, monitor.network_info.height)
monitor.stop()
```

Each pool entry needs a `tx_json` field, as the daemon's
`get_transaction_pool` call returns it. `pid` is `l` for a legacy payment ID,
`e` for an encrypted one, `s` for a transaction with additional (subaddress)
public keys, and `-` otherwise.

The monitor reads the network information about once a minute, whatever the
refresh time. When that read fails, the last known `NetworkInfo` stays in place
with `current` set to `False`.

## Tracking total emission

`Emission` holds the block number reached, the coinbase total and the fee total.
Its text form is `blk_no,coinbase,fee,checksum`, and the checksum is the sum of
the three numbers, kept to 64 bits:

```python
from xmrblocks.emission import Emission

emission = Emission.parse("1500000,17000000000000000000,40000000000000,17000040000001500000")
assert emission.checksum() == 17000040000001500000
```

`Emission.parse` raises `ValueError` for malformed text or a wrong checksum.

`EmissionMonitor(source, output_path, chunk_size=10000, chunk_gap=3)` reads the
chain through `source`, an object with two methods:
`get_current_blockchain_height()` and `get_block_amounts(height)`, the latter
returning the miner transaction's output total and the sum of fees of a block.
If `output_path` is a directory, the file `emission_amount.txt` inside it is used.
The monitor scans `chunk_size` blocks at a time and keeps the top `chunk_gap`
blocks out of the saved total; `get_emission()` adds them on the fly.

## Helpers

```python
from xmrblocks import tools

tools.xmr_amount_to_str(1_500_000_000_000, "{:0.3f}", True)   # '1.500'
tools.xmr_amount_to_str(0, "{:0.3f}", True)                   # '?'
tools.timestamp_difference(100, 3_700)                        # (0, 0, 1, 0, 0)
tools.url_decode("a%20b+c")                                   # 'a b c'
tools.parse_post_data("viewkey=abc&tx_hash=def")               # {'tx_hash': 'def', 'viewkey': 'abc'}
```

## What it does not do

The package has no web server, no HTML pages and no command to run. It does not
read the blockchain's LMDB database itself: `EmissionMonitor` works with a block
source you supply, and `MempoolMonitor` takes the pool from the daemon's RPC.
`CmdLineOptions` only parses options; nothing in the package acts on them.

## Requirements

Python 3.10 or newer, and `requests`.