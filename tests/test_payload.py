import ipaddress

import pytest

from nfvtestapp.payload import (
    OFFSET_PKT_IPV4,
    OFFSET_PKT_UDP,
    PKT_HEADER_SIZE,
    PacketHeader,
    check_checksum,
    get_u64,
    ipv4_header_checksum,
    payload_length,
    produce_data,
    put_u64,
    swap_addresses,
)

MAC_A = bytes.fromhex("020000000001")
MAC_B = bytes.fromhex("020000000002")


def _header(**overrides):
    fields = dict(
        dst_mac=MAC_A,
        src_mac=MAC_B,
        src_ip="10.0.0.2",
        dst_ip="10.0.0.1",
        src_port=13994,
        dst_port=16994,
    )
    fields.update(overrides)
    return PacketHeader(**fields)


@pytest.mark.parametrize("length", [1, 2, 10, 22, 300])
def test_produced_data_passes_checksum(length):
    data = produce_data(length)
    assert len(data) == length
    assert check_checksum(data)


def test_produce_empty():
    assert produce_data(0) == b""
    assert check_checksum(b"")


def test_corrupted_data_fails_checksum():
    data = bytearray(produce_data(16))
    data[3] ^= 0x01
    assert not check_checksum(data)


def test_u64_is_big_endian():
    buf = bytearray(8)
    put_u64(buf, 0, 1)
    assert buf == b"\x00" * 7 + b"\x01"


def test_u64_round_trip_at_offset():
    buf = bytearray(20)
    put_u64(buf, 5, 0x0123456789ABCDEF)
    assert get_u64(buf, 5) == 0x0123456789ABCDEF
    assert buf[:5] == b"\x00" * 5


def test_u64_out_of_range():
    with pytest.raises(ValueError):
        put_u64(bytearray(8), 1, 0)
    with pytest.raises(ValueError):
        put_u64(bytearray(8), 0, 1 << 64)
    with pytest.raises(ValueError):
        get_u64(b"\x00" * 4, 0)


def test_ipv4_checksum_known_header():
    header = bytes.fromhex("450000730000400040110000c0a80001c0a800c7")
    assert ipv4_header_checksum(header) == 0xB861


def test_ipv4_checksum_ignores_checksum_field():
    header = bytearray.fromhex("450000730000400040110000c0a80001c0a800c7")
    before = ipv4_header_checksum(header)
    header[10:12] = b"\xab\xcd"
    assert ipv4_header_checksum(header) == before


def test_ipv4_checksum_short_header():
    with pytest.raises(ValueError):
        ipv4_header_checksum(b"\x45" * 10)


def test_payload_length():
    assert payload_length(PKT_HEADER_SIZE) == 0
    assert payload_length(100) - payload_length(64) == 36
    with pytest.raises(ValueError):
        payload_length(PKT_HEADER_SIZE - 1)


def test_pack_unpack_round_trip():
    header = _header(packet_size=128)
    packed = header.pack()
    assert len(packed) == PKT_HEADER_SIZE
    assert PacketHeader.unpack(packed) == header


def test_packed_checksum_is_valid():
    packed = _header().pack()
    ip = packed[OFFSET_PKT_IPV4:OFFSET_PKT_UDP]
    assert int.from_bytes(ip[10:12], "big") == ipv4_header_checksum(ip)


def test_unpack_short_frame():
    with pytest.raises(ValueError):
        PacketHeader.unpack(b"\x00" * 20)


def test_invalid_mac_rejected():
    with pytest.raises(ValueError):
        _header(dst_mac=b"\x01\x02")


def test_swapped_twice_is_identity():
    header = _header()
    assert header.swapped().swapped() == header
    assert header.swapped().src_ip == ipaddress.IPv4Address("10.0.0.1")


def test_swap_addresses_matches_swapped_header():
    header = _header()
    frame = bytearray(header.pack()) + bytearray(produce_data(22))
    swap_addresses(frame)
    assert bytes(frame[:PKT_HEADER_SIZE]) == header.swapped().pack()
    assert check_checksum(frame[PKT_HEADER_SIZE:])


def test_swap_addresses_short_frame():
    with pytest.raises(ValueError):
        swap_addresses(bytearray(10))


def test_matches_destination():
    header = _header()
    assert header.matches_destination(MAC_A, "10.0.0.1", 16994)
    assert not header.matches_destination(MAC_B, "10.0.0.1", 16994)
    assert not header.matches_destination(MAC_A, "10.0.0.2", 16994)
    assert not header.matches_destination(MAC_A, "10.0.0.1", 13994)