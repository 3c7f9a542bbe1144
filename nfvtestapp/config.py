"""Program configuration: defaults, command-line parsing and socket setup."""

from __future__ import annotations

import ipaddress
import re
import socket
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional, Sequence, Union

from nfvtestapp.payload import (
    DEFAULT_BST_SIZE,
    DEFAULT_PKT_SIZE,
    DEFAULT_RATE,
    PKT_HEADER_SIZE,
    payload_length,
)

ETH_P_ALL = 0x0003
INTERFACE_NAME_SIZE = 16
SEPARATOR = "-------------------------------------"

_OPTIONS_WITH_VALUE = "rpbR"
_FLAG_OPTIONS = "cmsB"
_ATOI = re.compile(r"\s*([+-]?\d+)")
_MAC_BYTE = r"\s*(?:0[xX])?([0-9a-fA-F]+)"
_MAC = re.compile(":".join([_MAC_BYTE] * 6))
_ADDRESS_NAMES = ("local IP", "local MAC", "remote IP", "remote MAC")

_USAGE = """USAGE
       {prog} <program-options-unordered-list> <addresses-ordered-list> -- <dpdk-parameters>

Where:
 - <program-options-unordered-list> is a list of non-ordered parameters (see PARAMETERS section);
 - <adresses-ordered-list> is a list of IP and MAC addresses used by the program
       (see ADDRESSES section);
 - <dpdk-parameters> is a list of parameters for EAL DPDK environment
       (see online - used only by programs starting with 'dpdk-').

PARAMETERS

    -r <rate=1000000>      The sending/receiving rate in pps.
    -p <packet_size=64>    The size of each frame in bytes.
    -b <burst_size=32>     The size of each packet burst in number of packets.

    -c                     Generate actual data/Calculate a checksum on each received payload.
                           This ensures that each byte in a message payload is actually touched.

    -R <interf_name>       Use RAW sockets instead of UDP ones (default are UDP sockets).
                           The argument is the name of the interface to use.
                           Valid only for sockets-based programs, not DPDK ones.

    -B                     Use blocking sockets instead of nonblocking ones.
                           Valid only for sockets-based programs, not DPDK ones.

    -m                     Use SENDMMSG/RECVMMSG API to exchange packets.
                           Valid only for sockets-based programs, not DPDK ones.

    -s                     Run in silent mode. Prints no stats until the termination SIGINT is received.


ADDRESSES

       The application expects some addresses to be given as argument in a specific order.
       The following is the list of each address expected.
       Default values will be used if not all addresses are provided and not all parameters are always used.

       Since the program will communicate with another application, we will refer as this
       program as the LOCAL application and use the REMOTE term to indicate the other one.

       <LOCAL_IP> <LOCAL_MAC> <REMOTE_IP> <REMOTE_MAC> 

"""


class ConfigError(ValueError):
    """Raised when the configuration cannot be built or used."""


class SocketKind(IntFlag):
    NONE = 0
    DGRAM = 0x1
    RAW = 0x2
    DPDK = 0x4
    SIMPLE = DGRAM | RAW


def usage(prog: str) -> str:
    """Return the usage text for the program called ``prog``."""
    return _USAGE.format(prog=prog)


def parse_mac(text: str) -> bytes:
    """Parse a colon-separated MAC address; each group is read as hex."""
    match = _MAC.match(text)
    if match is None:
        raise ValueError(f"invalid MAC address: {text!r}")
    return bytes(int(group, 16) & 0xFF for group in match.groups())


def format_mac(mac: bytes) -> str:
    """Format a MAC address as unpadded lower-case hex groups."""
    if len(mac) != 6:
        raise ValueError(f"MAC address must be 6 bytes, got {len(mac)}")
    return ":".join(f"{b:x}" for b in mac)


def _parse_ip(text: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(socket.inet_aton(text))
    except (OSError, ValueError) as exc:
        raise ValueError(f"invalid IPv4 address: {text!r}") from exc


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class Endpoint:
    """MAC address, IPv4 address and UDP port of one side of the exchange."""

    mac: Union[bytes, str] = bytes(6)
    ip: Union[ipaddress.IPv4Address, str, int] = ipaddress.IPv4Address(0)
    port: int = 0

    def __post_init__(self) -> None:
        self.mac = parse_mac(self.mac) if isinstance(self.mac, str) else bytes(self.mac)
        if len(self.mac) != 6:
            raise ValueError(f"MAC address must be 6 bytes, got {len(self.mac)}")
        if isinstance(self.ip, str):
            self.ip = _parse_ip(self.ip)
        else:
            self.ip = ipaddress.IPv4Address(self.ip)
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port {self.port} out of range")


@dataclass(frozen=True)
class ConfigDefaults:
    """Default local and remote endpoints of a command."""

    local: Endpoint
    remote: Endpoint


@dataclass
class Config:
    """Everything a command needs to run."""

    rate: int = DEFAULT_RATE
    pkt_size: int = DEFAULT_PKT_SIZE
    payload_size: int = DEFAULT_PKT_SIZE - PKT_HEADER_SIZE
    bst_size: int = DEFAULT_BST_SIZE
    use_block: bool = False
    use_mmsg: bool = False
    silent: bool = False
    touch_data: bool = False
    local: Endpoint = field(default_factory=Endpoint)
    remote: Endpoint = field(default_factory=Endpoint)
    sock_type: SocketKind = SocketKind.NONE
    local_interf: str = ""
    cmdname: str = ""
    sock: Optional[socket.socket] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_defaults(cls, defaults: Optional[ConfigDefaults]) -> "Config":
        """Return a configuration using ``defaults`` for the endpoints."""
        conf = cls()
        if defaults is not None:
            conf.local = Endpoint(defaults.local.mac, defaults.local.ip, defaults.local.port)
            conf.remote = Endpoint(
                defaults.remote.mac, defaults.remote.ip, defaults.remote.port
            )
        return conf

    def parse_arguments(self, argv: Sequence[str]) -> int:
        """Apply the command-line arguments ``argv`` (command name first).

        Returns the number of arguments processed: either ``len(argv)`` or
        the index of the first ``--``.
        """
        args = list(argv)
        if not args:
            raise ConfigError("missing command name")
        self.cmdname = args[0]
        self.sock_type = SocketKind.DPDK if "dpdk-" in self.cmdname else SocketKind.DGRAM

        index = 1
        position = 0
        while index < len(args) and args[index] != "--":
            start = index
            index = self._parse_options(args, index)
            index, position = self._parse_addresses(args, index, position)
            if index == start:
                raise ConfigError(
                    f"unexpected argument {args[index]!r}\n" + usage(self.cmdname)
                )
        return index

    def _parse_options(self, args: list[str], index: int) -> int:
        while index < len(args):
            arg = args[index]
            if arg == "--" or not arg.startswith("-") or arg == "-":
                return index
            index += 1
            letters = arg[1:]
            for pos, letter in enumerate(letters):
                if letter in _OPTIONS_WITH_VALUE:
                    value = letters[pos + 1:]
                    if not value:
                        if index >= len(args):
                            raise ConfigError(
                                f"option requires an argument -- '{letter}'\n"
                                + usage(self.cmdname)
                            )
                        value = args[index]
                        index += 1
                    self._apply_option(letter, value)
                    break
                if letter in _FLAG_OPTIONS:
                    self._apply_option(letter, None)
                else:
                    raise ConfigError(
                        f"invalid option -- '{letter}'\n" + usage(self.cmdname)
                    )
        return index

    def _apply_option(self, letter: str, value: Optional[str]) -> None:
        if letter == "r":
            self.rate = _atoi(value)
        elif letter == "p":
            size = _atoi(value)
            try:
                self.payload_size = payload_length(size)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            self.pkt_size = size
        elif letter == "b":
            self.bst_size = _atoi(value)
        elif letter == "R":
            if self.sock_type & SocketKind.SIMPLE:
                self.sock_type = SocketKind.RAW
                self.local_interf = value[: INTERFACE_NAME_SIZE - 1]
        elif letter == "B":
            self.use_block = True
        elif letter == "c":
            self.touch_data = True
        elif letter == "m":
            self.use_mmsg = True
        elif letter == "s":
            self.silent = True

    def _parse_addresses(
        self, args: list[str], index: int, position: int
    ) -> tuple[int, int]:
        while index < len(args) and not args[index].startswith("-"):
            text = args[index]
            if position >= len(_ADDRESS_NAMES):
                raise ConfigError(f"too many addresses (argv[{index}]={text})")
            try:
                if position == 0:
                    self.local.ip = _parse_ip(text)
                elif position == 1:
                    self.local.mac = parse_mac(text)
                elif position == 2:
                    self.remote.ip = _parse_ip(text)
                else:
                    self.remote.mac = parse_mac(text)
            except ValueError as exc:
                raise ConfigError(
                    f"Failed to parse {_ADDRESS_NAMES[position]} address "
                    f"(argv[{index}]={text})"
                ) from exc
            index += 1
            position += 1
        return index, position

    def format(self) -> str:
        """Return a printable summary of the configuration."""
        kind = {
            SocketKind.DGRAM: "udp",
            SocketKind.RAW: "raw",
            SocketKind.DPDK: "dpdk",
        }.get(self.sock_type, "ERROR!")
        lines = [
            "CONFIGURATION",
            SEPARATOR,
            f"rate (pps)\t{self.rate}",
            f"pkt size\t{self.pkt_size}",
            f"bst size\t{self.bst_size}",
            f"sock type\t{kind}",
            f"port local\t{self.local.port}",
            f"port remote\t{self.remote.port}",
            f"ip local\t{self.local.ip}",
            f"ip remote\t{self.remote.ip}",
            f"mac local\t{format_mac(self.local.mac)}",
            f"mac remote\t{format_mac(self.remote.mac)}",
            f"using mmmsg API\t{'yes' if self.use_mmsg else 'no'}",
            f"silent\t\t{'yes' if self.silent else 'no'}",
            f"touch data\t{'yes' if self.touch_data else 'no'}",
            SEPARATOR,
        ]
        return "\n".join(lines) + "\n"


def _open_dgram(conf: Config) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.bind((str(conf.local.ip), conf.local.port))
        sock.connect((str(conf.remote.ip), conf.remote.port))
        sock.setblocking(conf.use_block)
    except OSError:
        sock.close()
        raise
    return sock


def _open_raw(conf: Config) -> socket.socket:
    if not hasattr(socket, "AF_PACKET"):
        raise ConfigError("raw sockets are not available on this platform")
    sock = socket.socket(socket.AF_PACKET, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
    try:
        sock.bind((conf.local_interf, ETH_P_ALL))
    except OSError:
        sock.close()
        raise
    return sock


def open_socket(conf: Config) -> socket.socket:
    """Open the socket described by ``conf``, store it there and return it."""
    if conf.sock_type == SocketKind.DGRAM:
        conf.sock = _open_dgram(conf)
    elif conf.sock_type == SocketKind.RAW:
        conf.sock = _open_raw(conf)
    elif conf.sock_type == SocketKind.DPDK:
        raise ConfigError("DPDK ports are not supported")
    else:
        raise ConfigError(f"no socket type configured ({conf.sock_type!r})")
    return conf.sock