# rproxy

Building blocks for a Redis proxy, in plain Python with no third-party
dependencies.

## Modules

- `rproxy.enums`: `ServerPoolRefreshMethod`, `Distribution` and `ReplyType`.
  `ServerPoolRefreshMethod.parse` and `Distribution.parse` read names without
  regard to case. An unknown name makes `ServerPoolRefreshMethod.parse` raise
  `InvalidEnumValue`, while `Distribution.parse` returns `Distribution.NONE`.
  `ReplyType.type_str()` gives the short name used in logs (`"Err"`, `"Str"`,
  and so on).
- `rproxy.hashfunc`: `Hash` (`NONE`, `ATOL`, `CRC16`) hashes a key, optionally
  restricted to its hash tag. `Hash.parse` maps unknown names to `Hash.NONE`.
  The helpers `hash_tag`, `atol` and `crc16` are available on their own.
- `rproxy.dc`: `DataCenter` is built from `DCConf` entries and the name of the
  local data center. `get_dc(addr)` finds the data center whose address prefix
  matches an address. `DC.read_priority`, `DC.read_weight` and
  `DC.read_policy` give the read policy towards another data center.
  Duplicate names, colliding prefixes, a missing local data center or an
  unknown read-policy target raise `DataCenterError`.
- `rproxy.latency`: `LatencyMonitor` sorts latencies into `TimeSpan` buckets
  plus an overflow bucket, and `output()` renders a text report.
  `LatencyMonitorSet` is built from `LatencyMonitorConf` entries. Its
  `find(name)` returns an index or `None`, `cmd_index(cmd)` lists the monitors
  that watch a command, and `monitors()` returns fresh copies. Duplicate names
  raise `DuplicateDefinition`.
- `rproxy.logfilesink`: `LogFileSink` appends records to a file, or to
  standard output when the path is empty. It can rotate by time period or by
  size, and for rotated files it keeps a symbolic link at the configured path.
  `parse_rotate` reads specs such as `"1d"`, `"2h"`, `"30m"`, `"1G"` or
  `"100M"` into `(seconds, bytes)` and raises `ValueError` on bad input.
- `rproxy.logger`: `Logger` queues `LogUnit` records from any thread and writes
  them from a background thread. It samples per `LogLevel`, with
  `set_log_sample` and `log_sample`. When `allow_miss_log` is true, records
  that cannot be queued at once are dropped and counted. `set_log_file` raises
  `SetLogFileError` on failure.
- `rproxy.multiplexor`: `PollMultiplexor`, `EpollMultiplexor` and
  `KqueueMultiplexor` share one interface: `add_socket`, `del_socket`,
  `add_event`, `del_event` and `wait(usec, handler)`. They report `Event`
  flags (`READ`, `WRITE`, `ERROR`) to a callable, or to an object's
  `handle_event`. `default_multiplexor()` picks epoll, then kqueue, then poll.
- `rproxy.listen_socket`: `ListenSocket` binds a `host:port` or a Unix socket
  path (one starting with `/`). It provides `listen`, `accept`,
  `set_nonblocking` and `close`. `accept()` returns `None` when a non-blocking
  socket has nothing pending. Failures raise `BindError`, `ListenError`,
  `TooManyOpenFiles` or `AcceptError`.
- `rproxy.protocol`: `GenericRequest` holds the fixed requests and the heads of
  split multi-key requests, and `content()` returns their wire bytes. There are
  builders for AUTH, SELECT and the Sentinel queries (`auth_request`,
  `select_request`, `sentinels_request`, `sentinel_get_master_request`,
  `sentinel_slaves_request`). `decode_inline_arg` removes quoting from an
  inline-protocol argument.

## Example

```python
from rproxy.hashfunc import Hash
from rproxy.protocol import select_request

h = Hash.parse("crc16")
slot = h.hash(b"user:{42}:name", b"{}") % 16384

print(select_request(3))   # b'*2\r\n$6\r\nselect\r\n$1\r\n3\r\n'
```

## What this package does not do

These are parts, not a running proxy. The package has no command to start,
no connection handling or request routing between clients and servers, no
server pools, no parser for client requests, and no configuration-file
loading.

## Running the tests

```
pip install -e .[test]
pytest
```