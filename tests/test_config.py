import ipaddress
import socket

import pytest

from nfvtestapp.config import (
    Config,
    ConfigDefaults,
    ConfigError,
    Endpoint,
    SocketKind,
    format_mac,
    open_socket,
    parse_mac,
    usage,
)
from nfvtestapp.payload import (
    DEFAULT_BST_SIZE,
    DEFAULT_PKT_SIZE,
    DEFAULT_RATE,
    PKT_HEADER_SIZE,
    RECV_ADDR_MAC,
    RECV_PORT,
    SEND_ADDR_IP,
    SEND_ADDR_MAC,
    SEND_PORT,
)


def _send_defaults():
    return ConfigDefaults(
        local=Endpoint(SEND_ADDR_MAC, SEND_ADDR_IP, SEND_PORT),
        remote=Endpoint(RECV_ADDR_MAC, SEND_ADDR_IP, RECV_PORT),
    )


def test_parse_mac_reads_hex_groups():
    assert parse_mac("02:00:00:00:00:02") == bytes([2, 0, 0, 0, 0, 2])


@pytest.mark.parametrize("text", ["", "02:00:00", "zz:00:00:00:00:00", "not a mac"])
def test_parse_mac_rejects_malformed(text):
    with pytest.raises(ValueError):
        parse_mac(text)


def test_format_mac_is_unpadded():
    assert format_mac(parse_mac(SEND_ADDR_MAC)) == "2:0:0:0:0:2"


def test_mac_round_trip():
    mac = bytes([0xAA, 0xBB, 0x0C, 0x01, 0xEE, 0x10])
    assert parse_mac(format_mac(mac)) == mac


def test_from_defaults_without_defaults():
    conf = Config.from_defaults(None)
    assert conf.rate == DEFAULT_RATE
    assert conf.pkt_size == DEFAULT_PKT_SIZE
    assert conf.bst_size == DEFAULT_BST_SIZE
    assert conf.payload_size == DEFAULT_PKT_SIZE - PKT_HEADER_SIZE
    assert conf.local.port == 0
    assert conf.remote.mac == bytes(6)
    assert conf.sock_type == SocketKind.NONE


def test_from_defaults_fills_endpoints():
    conf = Config.from_defaults(_send_defaults())
    assert conf.local.port == SEND_PORT
    assert conf.remote.port == RECV_PORT
    assert conf.local.ip == ipaddress.IPv4Address(SEND_ADDR_IP)
    assert conf.remote.mac == parse_mac(RECV_ADDR_MAC)


def test_from_defaults_copies_endpoints():
    defaults = _send_defaults()
    conf = Config.from_defaults(defaults)
    conf.parse_arguments(["send", "10.0.0.9"])
    assert defaults.local.ip == ipaddress.IPv4Address(SEND_ADDR_IP)


def test_parse_options_and_addresses():
    conf = Config.from_defaults(_send_defaults())
    argv = ["send", "-r", "500", "-p128", "-cms", "10.0.0.1", "aa:bb:cc:dd:ee:ff",
            "--", "extra"]
    index = conf.parse_arguments(argv)
    assert argv[index] == "--"
    assert conf.rate == 500
    assert conf.pkt_size == 128
    assert conf.payload_size == 128 - PKT_HEADER_SIZE
    assert conf.touch_data and conf.use_mmsg and conf.silent
    assert not conf.use_block
    assert conf.local.ip == ipaddress.IPv4Address("10.0.0.1")
    assert conf.local.mac == parse_mac("aa:bb:cc:dd:ee:ff")
    assert conf.local.port == SEND_PORT
    assert conf.sock_type == SocketKind.DGRAM
    assert conf.cmdname == "send"


def test_parse_without_double_dash_consumes_everything():
    conf = Config()
    argv = ["recv", "10.0.0.1", "-s", "02:00:00:00:00:07", "10.0.0.2", "-B", "-b", "8"]
    assert conf.parse_arguments(argv) == len(argv)
    assert conf.remote.ip == ipaddress.IPv4Address("10.0.0.2")
    assert conf.local.mac == parse_mac("02:00:00:00:00:07")
    assert conf.silent and conf.use_block
    assert conf.bst_size == 8


def test_raw_option_sets_interface():
    conf = Config()
    conf.parse_arguments(["server", "-R", "eth0"])
    assert conf.sock_type == SocketKind.RAW
    assert conf.local_interf == "eth0"


def test_raw_interface_name_is_truncated():
    conf = Config()
    name = "x" * 30
    conf.parse_arguments(["server", "-R" + name])
    assert conf.local_interf == name[:15]


def test_dpdk_command_ignores_raw_option():
    conf = Config()
    conf.parse_arguments(["dpdk-send", "-R", "eth0", "--", "-l", "0"])
    assert conf.sock_type == SocketKind.DPDK
    assert conf.local_interf == ""


@pytest.mark.parametrize(
    "argv",
    [
        ["send", "-x"],
        ["send", "-r"],
        ["send", "999.1.2.3.4"],
        ["send", "10.0.0.1", "bad-mac"],
        ["send", "1.1.1.1", "1:1:1:1:1:1", "2.2.2.2", "2:2:2:2:2:2", "3.3.3.3"],
        ["send", "-"],
        ["send", "-p", "10"],
        [],
    ],
)
def test_parse_errors(argv):
    with pytest.raises(ConfigError):
        Config().parse_arguments(argv)


def test_error_message_names_the_argument():
    with pytest.raises(ConfigError, match="remote IP"):
        Config().parse_arguments(["send", "1.1.1.1", "1:1:1:1:1:1", "nope"])


def test_format_lists_settings():
    conf = Config.from_defaults(_send_defaults())
    conf.parse_arguments(["send", "-s"])
    lines = conf.format().splitlines()
    assert lines[0] == "CONFIGURATION"
    assert "sock type\tudp" in lines
    assert f"port local\t{SEND_PORT}" in lines
    assert f"ip local\t{SEND_ADDR_IP}" in lines
    assert "silent\t\tyes" in lines
    assert "touch data\tno" in lines


def test_format_unknown_socket_type():
    assert "sock type\tERROR!" in Config().format().splitlines()


def test_usage_names_program():
    text = usage("testapp-send")
    assert text.startswith("USAGE\n")
    assert "testapp-send" in text


def test_open_dgram_socket_exchanges_data():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as peer:
        peer.bind(("127.0.0.1", 0))
        peer.settimeout(2)
        conf = Config(
            local=Endpoint(bytes(6), "127.0.0.1", 0),
            remote=Endpoint(bytes(6), "127.0.0.1", peer.getsockname()[1]),
            sock_type=SocketKind.DGRAM,
        )
        sock = open_socket(conf)
        try:
            assert conf.sock is sock
            assert sock.getblocking() is False
            sock.send(b"ping")
            data, addr = peer.recvfrom(16)
            assert data == b"ping"
            assert addr == sock.getsockname()
        finally:
            sock.close()


def test_open_socket_blocking_option():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as peer:
        peer.bind(("127.0.0.1", 0))
        conf = Config(
            local=Endpoint(bytes(6), "127.0.0.1", 0),
            remote=Endpoint(bytes(6), "127.0.0.1", peer.getsockname()[1]),
            sock_type=SocketKind.DGRAM,
            use_block=True,
        )
        with open_socket(conf) as sock:
            assert sock.getblocking() is True


@pytest.mark.parametrize("kind", [SocketKind.DPDK, SocketKind.NONE])
def test_open_socket_unsupported(kind):
    with pytest.raises(ConfigError):
        open_socket(Config(sock_type=kind))