"""Burst-oriented packet sockets with reusable payload buffers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from nfvtestapp.config import Config, ConfigError, SocketKind
from nfvtestapp.payload import (
    OFFSET_PKT_PAYLOAD,
    PKT_HEADER_SIZE,
    PacketHeader,
    payload_length,
    swap_addresses,
)


class NfvSocket(ABC):
    """A socket exchanging bursts of fixed-size frames.

    Buffers handed out by :meth:`request_out_buffers` and :meth:`recv` are
    writable views on the payload of each frame; they stay valid until the
    next request or receive.
    """

    def __init__(
        self, packet_size: int, burst_size: int, frame_size: int, payload_offset: int
    ) -> None:
        if burst_size < 0:
            raise ValueError(f"burst size must not be negative, got {burst_size}")
        self.packet_size = packet_size
        self.payload_size = payload_length(packet_size)
        self.burst_size = burst_size
        self.frame_size = frame_size
        self._frames = [bytearray(frame_size) for _ in range(burst_size)]
        self._payloads = [memoryview(frame)[payload_offset:] for frame in self._frames]
        self._active = 0
        self._used = 0

    @abstractmethod
    def _transmit(self, frame: bytearray) -> int:
        """Send one frame and return the number of bytes sent."""

    @abstractmethod
    def _receive(self, frame: bytearray) -> int:
        """Receive one frame into ``frame`` and return its length."""

    def _accepts(self, frame: bytearray) -> bool:
        return True

    def _turn_around(self, frame: bytearray) -> None:
        return None

    def _pending(self, howmany: int) -> int:
        return max(0, min(howmany, self._active - self._used))

    def request_out_buffers(self, howmany: int) -> List[memoryview]:
        """Return up to ``howmany`` payload buffers to fill before sending."""
        howmany = max(0, min(howmany, self.burst_size))
        self._active = howmany
        self._used = 0
        return self._payloads[:howmany]

    def send(self, howmany: int) -> int:
        """Send up to ``howmany`` prepared frames; return how many went out."""
        howmany = self._pending(howmany)
        sent = 0
        for frame in self._frames[self._used:self._used + howmany]:
            try:
                length = self._transmit(frame)
            except OSError:
                break
            if length != len(frame):
                break
            sent += 1
        self._used += sent
        return sent

    def recv(self, howmany: int) -> List[memoryview]:
        """Receive up to ``howmany`` frames and return the accepted payloads."""
        howmany = max(0, min(howmany, self.burst_size))
        self._active = 0
        self._used = 0

        received = 0
        for frame in self._frames[:howmany]:
            try:
                length = self._receive(frame)
            except OSError:
                break
            if length != len(frame):
                break
            received += 1

        good = [i for i in range(received) if self._accepts(self._frames[i])]
        if len(good) != received:
            rejected = [i for i in range(received) if i not in good]
            order = good + rejected + list(range(received, self.burst_size))
            self._frames = [self._frames[i] for i in order]
            self._payloads = [self._payloads[i] for i in order]

        self._active = len(good)
        return self._payloads[:len(good)]

    def send_back(self, howmany: int) -> int:
        """Return up to ``howmany`` received frames to their senders."""
        howmany = self._pending(howmany)
        if not howmany:
            return 0
        for frame in self._frames[self._used:self._used + howmany]:
            self._turn_around(frame)
        return self.send(howmany)


class SimpleSocket(NfvSocket):
    """UDP or raw-frame socket driven through the operating system."""

    def __init__(self, conf: Config, sock: Optional[Any] = None) -> None:
        if not conf.sock_type & SocketKind.SIMPLE:
            raise ConfigError(f"not a UDP or raw socket configuration: {conf.sock_type!r}")
        sock = conf.sock if sock is None else sock
        if sock is None:
            raise ConfigError("socket is not open")
        self._sock = sock
        self.is_raw = bool(conf.sock_type & SocketKind.RAW)
        self.local = conf.local
        self.remote = conf.remote

        payload = payload_length(conf.pkt_size)
        frame_size = conf.pkt_size if self.is_raw else payload
        offset = OFFSET_PKT_PAYLOAD if self.is_raw else 0
        super().__init__(conf.pkt_size, conf.bst_size, frame_size, offset)

        self.outgoing_header: Optional[PacketHeader] = None
        self.incoming_header: Optional[PacketHeader] = None
        if self.is_raw:
            self.outgoing_header = PacketHeader(
                dst_mac=self.remote.mac,
                src_mac=self.local.mac,
                src_ip=self.local.ip,
                dst_ip=self.remote.ip,
                src_port=self.local.port,
                dst_port=self.remote.port,
                packet_size=conf.pkt_size,
            )
            self.incoming_header = self.outgoing_header.swapped()
            header = self.outgoing_header.pack()
            for frame in self._frames:
                frame[:PKT_HEADER_SIZE] = header

    def _transmit(self, frame: bytearray) -> int:
        return self._sock.send(frame)

    def _receive(self, frame: bytearray) -> int:
        return self._sock.recv_into(frame)

    def _accepts(self, frame: bytearray) -> bool:
        if not self.is_raw:
            return True
        try:
            header = PacketHeader.unpack(frame)
        except ValueError:
            return False
        expected = self.incoming_header
        return header.matches_destination(expected.dst_mac, expected.dst_ip, expected.dst_port)

    def _turn_around(self, frame: bytearray) -> None:
        if self.is_raw:
            swap_addresses(frame)


def create_socket(conf: Config) -> NfvSocket:
    """Return the packet socket matching the configured socket type."""
    if conf.sock_type & SocketKind.SIMPLE:
        return SimpleSocket(conf)
    if conf.sock_type & SocketKind.DPDK:
        raise ConfigError("DPDK ports are not supported")
    raise ConfigError(f"no socket type configured ({conf.sock_type!r})")