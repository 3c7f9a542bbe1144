# nfvtestapp

Building blocks for testing network functions with fixed-size packets:
payload generation and checksums, Ethernet/IPv4/UDP headers, a tick
counter for timestamps, per-second traffic statistics, command-line
configuration, and burst-oriented UDP and raw-frame sockets. It also ships a
small command that turns CPU lists into affinity masks.

## Installation

```sh
pip install .
```

Running the tests needs the `test` extra:

```sh
pip install ".[test]"
pytest
```

## CPU lists to masks

`cpu-list-to-mask` turns a CPU list into a hexadecimal affinity mask, for
`taskset` implementations that accept only masks:

```sh
$ cpu-list-to-mask 1,3,4-8
fa
```

CPUs are separated by `,`; a range `first-last` covers `first` up to, but
not including, `last`. Numbers may be decimal, octal (leading `0`) or
hexadecimal (leading `0x`). CPUs must be below 64. An empty list, two
delimiters in a row or an out-of-range CPU prints an error and exits with
status 1; so does a missing argument.

From Python, `nfvtestapp.cpumask.cpu_list_to_mask("1,3,4-8")` returns `0xfa`
and raises `ValueError` in the same error cases.

## Modules

- `nfvtestapp.payload` — `produce_data(length)` returns bytes whose sum is
  zero modulo 256 and `check_checksum(data)` verifies that;
  `put_u64`/`get_u64` write and read big-endian 64-bit values;
  `ipv4_header_checksum`, `payload_length(packet_size)` (frame size minus the
  42-byte header), `swap_addresses(frame)` (swaps MACs, IPs and UDP ports in
  place and fixes the IPv4 checksum), and the `PacketHeader` dataclass with
  `pack`, `unpack`, `swapped` and `matches_destination`. Default rates, sizes,
  ports and addresses are defined here as constants.
- `nfvtestapp.timestamp` — `TscClock`, a monotonic tick counter (nanoseconds
  by default) with `read()` and `update()`, which also stores the value in
  `last`.
- `nfvtestapp.stats` — `TxStats`, `RxStats` and `DelayStats`,
  `format_stats(data, tsc_hz)`, and `StatsHistory`, which keeps the most
  recent 64 entries of one `StatsKind` and formats them with `report()`.
- `nfvtestapp.config` — `Config` with `from_defaults`, `parse_arguments` and
  `format`; `Endpoint`, `ConfigDefaults`, `SocketKind`, `ConfigError`,
  `parse_mac`, `format_mac`, `usage(prog)`, and `open_socket(conf)`, which
  opens a bound and connected UDP socket or a raw `AF_PACKET` socket.
- `nfvtestapp.sockets` — `create_socket(conf)` and the `NfvSocket`
  interface: `request_out_buffers`, `send`, `recv` and `send_back`, working on
  writable payload views of reused frames. `SimpleSocket` implements it for
  UDP and raw sockets; with raw sockets, incoming frames not addressed to the
  local MAC, IP and port are dropped.

### Command-line options understood by `Config.parse_arguments`

The first element is the command name; if it contains `dpdk-` the socket
kind becomes `DPDK`, otherwise UDP. Options and addresses may be mixed;
parsing stops at `--`, whose index is returned.

```
-r <rate>         rate in packets per second
-p <size>         frame size in bytes (default 64)
-b <burst>        packets per burst (default 32)
-c                touch payload data
-R <interface>    use raw sockets on the named interface
-B                use blocking sockets
-m                set the batched-API flag
-s                silent mode
```

Positional arguments are addresses in the order
`<LOCAL_IP> <LOCAL_MAC> <REMOTE_IP> <REMOTE_MAC>`; any left out keep their
defaults. Bad options or addresses raise `ConfigError`.

## Example

```python
from nfvtestapp.config import Config, ConfigDefaults, Endpoint, open_socket
from nfvtestapp.payload import produce_data, put_u64
from nfvtestapp.sockets import create_socket
from nfvtestapp.stats import StatsHistory, StatsKind, TxStats
from nfvtestapp.timestamp import TscClock

defaults = ConfigDefaults(
    local=Endpoint("02:00:00:00:00:02", "127.0.0.1", 13994),
    remote=Endpoint("02:00:00:00:00:01", "127.0.0.1", 16994),
)
conf = Config.from_defaults(defaults)
conf.parse_arguments(["send", "-p", "128", "-b", "16"])
print(conf.format(), end="")

open_socket(conf)
sock = create_socket(conf)
clock = TscClock()

buffers = sock.request_out_buffers(conf.bst_size)
for buf in buffers:
    buf[8:] = produce_data(len(buf) - 8)
    put_u64(buf, 0, clock.read())
sent = sock.send(len(buffers))

history = StatsHistory(StatsKind.TX)
history.save(TxStats(tx=sent, dropped=conf.bst_size - sent))
print(history.report(), end="")
```

Statistics lines look like:

```
Tx-pps: <sent> <dropped> <total>
Rx-pps: <received>
Avg delay (us) and rx count: <delay> <count>
```

## What this package does not do

There is no command for running a sender, receiver, echo server or
delay-measuring client, no worker loops that pace bursts at a rate or print
statistics every second, and no pinning of workers to CPU cores. Those have
to be built on top of the modules above. DPDK ports are not supported:
`open_socket` and `create_socket` raise `ConfigError` for them.