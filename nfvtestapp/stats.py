"""Per-second traffic statistics and a bounded history of them."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, Iterator, Union

STATS_SIZE = 64


class StatsKind(Enum):
    TX = "tx"
    RX = "rx"
    DELAY = "delay"


@dataclass
class TxStats:
    """Packets sent and dropped in one period."""

    tx: int = 0
    dropped: int = 0
    kind: ClassVar[StatsKind] = StatsKind.TX


@dataclass
class RxStats:
    """Packets received in one period."""

    rx: int = 0
    kind: ClassVar[StatsKind] = StatsKind.RX


@dataclass
class DelayStats:
    """Average round-trip delay in ticks and the number of samples."""

    avg: float = 0
    num: int = 0
    kind: ClassVar[StatsKind] = StatsKind.DELAY


StatsData = Union[TxStats, RxStats, DelayStats]


def format_stats(data: StatsData, tsc_hz: int | None = None) -> str:
    """Return the one-line report for ``data``.

    ``tsc_hz`` is needed only for delay statistics, to turn ticks into
    microseconds.
    """
    if isinstance(data, TxStats):
        return f"Tx-pps: {data.tx} {data.dropped} {data.tx + data.dropped}"
    if isinstance(data, RxStats):
        return f"Rx-pps: {data.rx}"
    if isinstance(data, DelayStats):
        if not tsc_hz:
            raise ValueError("delay statistics need the tick frequency")
        micros = float(data.avg) / float(tsc_hz) * 1_000_000.0
        return f"Avg delay (us) and rx count: {micros:f} {data.num}"
    raise TypeError(f"unsupported statistics type: {type(data).__name__}")


class StatsHistory:
    """Keeps the most recent statistics of one kind, oldest first."""

    def __init__(self, kind: StatsKind, capacity: int = STATS_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.kind = StatsKind(kind)
        self._entries: deque[StatsData] = deque(maxlen=capacity)

    def save(self, data: StatsData) -> None:
        """Store a copy of ``data``, dropping the oldest entry when full."""
        if getattr(data, "kind", None) is not self.kind:
            raise TypeError(
                f"cannot store {type(data).__name__} in a {self.kind.value} history"
            )
        self._entries.append(replace(data))

    def __iter__(self) -> Iterator[StatsData]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def report(self, tsc_hz: int | None = None) -> str:
        """Return every stored entry formatted, one per line."""
        if not self._entries:
            return "No stats to be printed.\n"
        return "".join(format_stats(entry, tsc_hz) + "\n" for entry in self._entries)