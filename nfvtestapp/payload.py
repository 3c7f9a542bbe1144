"""Packet layout, payload generation and header manipulation helpers."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, replace

DEFAULT_RATE = 10_000_000
DEFAULT_PKT_SIZE = 64
DEFAULT_BST_SIZE = 32

MAX_FRAME_SIZE = 1500
MIN_FRAME_SIZE = 64

SEND_PORT = 13994
RECV_PORT = 16994
SERVER_PORT = 16196
CLIENT_PORT = 16803

SEND_ADDR_IP = "127.0.0.1"
RECV_ADDR_IP = "127.0.0.1"
SERVER_ADDR_IP = "127.0.0.1"
CLIENT_ADDR_IP = "127.0.0.1"

SEND_ADDR_MAC = "02:00:00:00:00:02"
RECV_ADDR_MAC = "02:00:00:00:00:01"
SERVER_ADDR_MAC = "02:00:00:00:00:02"
CLIENT_ADDR_MAC = "02:00:00:00:00:01"

ETHER_HEADER_SIZE = 14
IPV4_HEADER_SIZE = 20
UDP_HEADER_SIZE = 8

OFFSET_PKT_ETHER = 0
OFFSET_PKT_IPV4 = OFFSET_PKT_ETHER + ETHER_HEADER_SIZE
OFFSET_PKT_UDP = OFFSET_PKT_IPV4 + IPV4_HEADER_SIZE
OFFSET_PKT_PAYLOAD = OFFSET_PKT_UDP + UDP_HEADER_SIZE
PKT_HEADER_SIZE = OFFSET_PKT_PAYLOAD - OFFSET_PKT_ETHER

TSC_SIZE = 8

ETHERTYPE_IPV4 = 0x0800
IPPROTO_UDP = 17
IP_DEFAULT_TTL = 64
IP_VERSION_HDRLEN = 0x45

_U64 = struct.Struct("!Q")
_IPV4 = struct.Struct("!BBHHHBBH4s4s")
_UDP = struct.Struct("!HHHH")
_ETHER_TYPE = struct.Struct("!H")
_CHECKSUM_OFFSET = 10


def produce_data(length: int) -> bytes:
    """Return ``length`` bytes whose byte-wise sum is zero modulo 256."""
    if length < 0:
        raise ValueError(f"length must not be negative, got {length}")
    if length == 0:
        return b""
    body = bytes(i & 0xFF for i in range(length - 1))
    return body + bytes([-sum(body) & 0xFF])


def check_checksum(data: bytes) -> bool:
    """Return True when the byte-wise sum of ``data`` is zero modulo 256."""
    return sum(data) & 0xFF == 0


def put_u64(buffer: bytearray, offset: int, value: int) -> None:
    """Write ``value`` as a big-endian 64-bit integer at ``offset``."""
    if not 0 <= value < 1 << 64:
        raise ValueError(f"value {value} does not fit in 64 bits")
    if offset < 0 or offset + _U64.size > len(buffer):
        raise ValueError(f"offset {offset} out of range for buffer of {len(buffer)} bytes")
    _U64.pack_into(buffer, offset, value)


def get_u64(buffer: bytes, offset: int) -> int:
    """Read a big-endian 64-bit integer at ``offset``."""
    if offset < 0 or offset + _U64.size > len(buffer):
        raise ValueError(f"offset {offset} out of range for buffer of {len(buffer)} bytes")
    return _U64.unpack_from(buffer, offset)[0]


def ipv4_header_checksum(header: bytes) -> int:
    """Compute the checksum of a 20-byte IPv4 header.

    The checksum field itself is skipped, so the header may hold any value
    there. A zero result is reported as 0xFFFF.
    """
    if len(header) < IPV4_HEADER_SIZE:
        raise ValueError(f"IPv4 header needs {IPV4_HEADER_SIZE} bytes, got {len(header)}")
    words = struct.unpack_from("!10H", header)
    total = sum(words) - words[_CHECKSUM_OFFSET // 2]
    total = (total >> 16) + (total & 0xFFFF)
    if total > 0xFFFF:
        total -= 0xFFFF
    total = ~total & 0xFFFF
    return total or 0xFFFF


def payload_length(packet_size: int) -> int:
    """Return the payload size of a frame of ``packet_size`` bytes."""
    if packet_size < PKT_HEADER_SIZE:
        raise ValueError(
            f"packet size {packet_size} is smaller than the {PKT_HEADER_SIZE}-byte header"
        )
    return packet_size - PKT_HEADER_SIZE


def _swap(frame: bytearray, first: int, second: int, size: int) -> None:
    frame[first:first + size], frame[second:second + size] = (
        frame[second:second + size],
        frame[first:first + size],
    )


def swap_addresses(frame: bytearray) -> None:
    """Swap source and destination MAC, IP and UDP port in place.

    The IPv4 header checksum is recomputed afterwards.
    """
    if len(frame) < PKT_HEADER_SIZE:
        raise ValueError(f"frame needs at least {PKT_HEADER_SIZE} bytes, got {len(frame)}")
    _swap(frame, OFFSET_PKT_ETHER, OFFSET_PKT_ETHER + 6, 6)
    _swap(frame, OFFSET_PKT_IPV4 + 12, OFFSET_PKT_IPV4 + 16, 4)
    _swap(frame, OFFSET_PKT_UDP, OFFSET_PKT_UDP + 2, 2)
    checksum = ipv4_header_checksum(bytes(frame[OFFSET_PKT_IPV4:OFFSET_PKT_UDP]))
    struct.pack_into("!H", frame, OFFSET_PKT_IPV4 + _CHECKSUM_OFFSET, checksum)


@dataclass
class PacketHeader:
    """Ethernet, IPv4 and UDP headers of one frame."""

    dst_mac: bytes
    src_mac: bytes
    src_ip: ipaddress.IPv4Address
    dst_ip: ipaddress.IPv4Address
    src_port: int
    dst_port: int
    packet_size: int = DEFAULT_PKT_SIZE
    ttl: int = IP_DEFAULT_TTL

    def __post_init__(self) -> None:
        self.dst_mac = bytes(self.dst_mac)
        self.src_mac = bytes(self.src_mac)
        for mac in (self.dst_mac, self.src_mac):
            if len(mac) != 6:
                raise ValueError(f"MAC address must be 6 bytes, got {len(mac)}")
        self.src_ip = ipaddress.IPv4Address(self.src_ip)
        self.dst_ip = ipaddress.IPv4Address(self.dst_ip)
        for port in (self.src_port, self.dst_port):
            if not 0 <= port <= 0xFFFF:
                raise ValueError(f"port {port} out of range")
        if not PKT_HEADER_SIZE <= self.packet_size <= 0xFFFF:
            raise ValueError(f"packet size {self.packet_size} out of range")
        if not 0 <= self.ttl <= 0xFF:
            raise ValueError(f"TTL {self.ttl} out of range")

    def pack(self) -> bytes:
        """Return the 42 header bytes in network order."""
        ether = self.dst_mac + self.src_mac + _ETHER_TYPE.pack(ETHERTYPE_IPV4)
        ip = bytearray(
            _IPV4.pack(
                IP_VERSION_HDRLEN,
                0,
                self.packet_size - ETHER_HEADER_SIZE,
                0,
                0,
                self.ttl,
                IPPROTO_UDP,
                0,
                self.src_ip.packed,
                self.dst_ip.packed,
            )
        )
        struct.pack_into("!H", ip, _CHECKSUM_OFFSET, ipv4_header_checksum(ip))
        udp = _UDP.pack(
            self.src_port, self.dst_port, self.packet_size - OFFSET_PKT_UDP, 0
        )
        return ether + bytes(ip) + udp

    @classmethod
    def unpack(cls, data: bytes) -> "PacketHeader":
        """Parse the headers at the start of ``data``."""
        if len(data) < PKT_HEADER_SIZE:
            raise ValueError(f"frame needs at least {PKT_HEADER_SIZE} bytes, got {len(data)}")
        (_, _, total_length, _, _, ttl, _, _, src_ip, dst_ip) = _IPV4.unpack_from(
            data, OFFSET_PKT_IPV4
        )
        src_port, dst_port, _, _ = _UDP.unpack_from(data, OFFSET_PKT_UDP)
        return cls(
            dst_mac=bytes(data[0:6]),
            src_mac=bytes(data[6:12]),
            src_ip=ipaddress.IPv4Address(src_ip),
            dst_ip=ipaddress.IPv4Address(dst_ip),
            src_port=src_port,
            dst_port=dst_port,
            packet_size=total_length + ETHER_HEADER_SIZE,
            ttl=ttl,
        )

    def swapped(self) -> "PacketHeader":
        """Return a header addressed back to the sender."""
        return replace(
            self,
            dst_mac=self.src_mac,
            src_mac=self.dst_mac,
            src_ip=self.dst_ip,
            dst_ip=self.src_ip,
            src_port=self.dst_port,
            dst_port=self.src_port,
        )

    def matches_destination(self, mac: bytes, ip, port: int) -> bool:
        """Return True if the frame is addressed to ``mac``, ``ip`` and ``port``."""
        return (
            self.dst_mac == bytes(mac)
            and self.dst_ip == ipaddress.IPv4Address(ip)
            and self.dst_port == port
        )