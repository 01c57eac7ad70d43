"""Parsing of Ethernet frames and Internet checksum helpers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

ETHERNET_HEADER_SIZE = 14
VLAN_HEADER_SIZE = 4
IPV4_MIN_HEADER_SIZE = 20
IPV6_HEADER_SIZE = 40
ICMP_HEADER_SIZE = 8
TCP_MIN_HEADER_SIZE = 20
UDP_HEADER_SIZE = 8

ETHERTYPE_IPV4 = 0x0800
ETHERTYPE_ARP = 0x0806
ETHERTYPE_VLAN = 0x8100
ETHERTYPE_IPV6 = 0x86DD

IPPROTO_ICMP = 1
IPPROTO_TCP = 6
IPPROTO_UDP = 17

ICMP_ECHO_REPLY = 0
ICMP_DEST_UNREACHABLE = 3
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

_MAC_LENGTH = 6
_MAX_MAC = 1 << 48


@dataclass(frozen=True)
class ParsedFrame:
    """Decoded view of an Ethernet frame and the headers it carries.

    IPv4 addresses are plain integers in host order; MAC and IPv6
    addresses are raw bytes. Fields of headers that are absent are None.
    """

    data: bytes
    dst_mac: bytes
    src_mac: bytes
    ethertype: int
    l3_offset: int
    vlan_id: int | None = None
    vlan_priority: int | None = None
    ip_version: int | None = None
    src_ip: int | None = None
    dst_ip: int | None = None
    src_ipv6: bytes | None = None
    dst_ipv6: bytes | None = None
    protocol: int | None = None
    ttl: int | None = None
    ip_header_length: int | None = None
    ip_total_length: int | None = None
    l4_offset: int | None = None
    src_port: int | None = None
    dst_port: int | None = None
    icmp_type: int | None = None
    icmp_code: int | None = None
    icmp_identifier: int | None = None
    icmp_sequence: int | None = None

    @property
    def is_ipv4(self) -> bool:
        return self.ip_version == 4

    @property
    def is_ipv6(self) -> bool:
        return self.ip_version == 6

    @property
    def is_tcp(self) -> bool:
        return self.protocol == IPPROTO_TCP and self.src_port is not None

    @property
    def is_udp(self) -> bool:
        return self.protocol == IPPROTO_UDP and self.src_port is not None

    @property
    def is_icmp(self) -> bool:
        return self.icmp_type is not None

    @property
    def ip_header(self) -> bytes:
        """Raw bytes of the IPv4 header, or empty if there is none."""
        if not self.is_ipv4:
            return b""
        return self.data[self.l3_offset:self.l3_offset + self.ip_header_length]

    @property
    def icmp_payload(self) -> bytes:
        """Bytes that follow the ICMP header, bounded by the IPv4 total length."""
        if not self.is_icmp:
            return b""
        start = self.l4_offset + ICMP_HEADER_SIZE
        end = len(self.data)
        if self.ip_total_length is not None:
            end = min(end, self.l3_offset + self.ip_total_length)
        return self.data[start:end]


def _parse_l4(raw: bytes, offset: int, protocol: int) -> dict[str, Any]:
    available = len(raw) - offset
    if protocol == IPPROTO_TCP and available >= TCP_MIN_HEADER_SIZE:
        src_port, dst_port = struct.unpack_from("!HH", raw, offset)
        return {"src_port": src_port, "dst_port": dst_port}
    if protocol == IPPROTO_UDP and available >= UDP_HEADER_SIZE:
        src_port, dst_port = struct.unpack_from("!HH", raw, offset)
        return {"src_port": src_port, "dst_port": dst_port}
    if protocol == IPPROTO_ICMP and available >= ICMP_HEADER_SIZE:
        icmp_type, code, _checksum, identifier, sequence = struct.unpack_from(
            "!BBHHH", raw, offset
        )
        return {
            "icmp_type": icmp_type,
            "icmp_code": code,
            "icmp_identifier": identifier,
            "icmp_sequence": sequence,
        }
    return {}


def _parse_ipv4(raw: bytes, offset: int) -> dict[str, Any]:
    if len(raw) < offset + IPV4_MIN_HEADER_SIZE:
        return {}
    version_ihl = raw[offset]
    header_length = (version_ihl & 0x0F) * 4
    if version_ihl >> 4 != 4 or header_length < IPV4_MIN_HEADER_SIZE:
        return {}
    if len(raw) < offset + header_length:
        return {}
    total_length = struct.unpack_from("!H", raw, offset + 2)[0]
    ttl, protocol = raw[offset + 8], raw[offset + 9]
    src_ip, dst_ip = struct.unpack_from("!II", raw, offset + 12)
    l4_offset = offset + header_length
    fields: dict[str, Any] = {
        "ip_version": 4,
        "src_ip": src_ip,
        "dst_ip": dst_ip,
        "protocol": protocol,
        "ttl": ttl,
        "ip_header_length": header_length,
        "ip_total_length": total_length,
        "l4_offset": l4_offset,
    }
    fields.update(_parse_l4(raw, l4_offset, protocol))
    return fields


def _parse_ipv6(raw: bytes, offset: int) -> dict[str, Any]:
    if len(raw) < offset + IPV6_HEADER_SIZE:
        return {}
    if raw[offset] >> 4 != 6:
        return {}
    next_header, hop_limit = raw[offset + 6], raw[offset + 7]
    l4_offset = offset + IPV6_HEADER_SIZE
    fields: dict[str, Any] = {
        "ip_version": 6,
        "src_ipv6": raw[offset + 8:offset + 24],
        "dst_ipv6": raw[offset + 24:offset + 40],
        "protocol": next_header,
        "ttl": hop_limit,
        "l4_offset": l4_offset,
    }
    fields.update(_parse_l4(raw, l4_offset, next_header))
    return fields


def parse_frame(data: bytes | bytearray | memoryview) -> ParsedFrame:
    """Decode an Ethernet frame, following one VLAN tag and IPv4/IPv6 headers.

    Raises ValueError if the Ethernet header or VLAN tag is truncated.
    """
    raw = bytes(data)
    if len(raw) < ETHERNET_HEADER_SIZE:
        raise ValueError(f"frame of {len(raw)} bytes is shorter than an Ethernet header")
    dst_mac, src_mac = raw[0:6], raw[6:12]
    ethertype = struct.unpack_from("!H", raw, 12)[0]
    offset = ETHERNET_HEADER_SIZE
    fields: dict[str, Any] = {}
    if ethertype == ETHERTYPE_VLAN:
        if len(raw) < offset + VLAN_HEADER_SIZE:
            raise ValueError("frame is too short for its VLAN tag")
        tci, ethertype = struct.unpack_from("!HH", raw, offset)
        fields["vlan_id"] = tci & 0x0FFF
        fields["vlan_priority"] = tci >> 13
        offset += VLAN_HEADER_SIZE
    if ethertype == ETHERTYPE_IPV4:
        fields.update(_parse_ipv4(raw, offset))
    elif ethertype == ETHERTYPE_IPV6:
        fields.update(_parse_ipv6(raw, offset))
    return ParsedFrame(
        data=raw,
        dst_mac=dst_mac,
        src_mac=src_mac,
        ethertype=ethertype,
        l3_offset=offset,
        **fields,
    )


def internet_checksum(data: bytes | bytearray | memoryview) -> int:
    """Return the 16-bit one's complement checksum of ``data``."""
    buf = bytes(data)
    if len(buf) % 2:
        buf += b"\x00"
    total = sum(struct.unpack(f"!{len(buf) // 2}H", buf))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def mac_to_int(mac: bytes | bytearray) -> int:
    """Return a 6-byte MAC address as an integer, first byte most significant."""
    raw = bytes(mac)
    if len(raw) != _MAC_LENGTH:
        raise ValueError(f"MAC address must be 6 bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def int_to_mac(value: int) -> bytes:
    """Return the 6-byte MAC address for a 48-bit integer."""
    if not 0 <= value < _MAX_MAC:
        raise ValueError(f"value {value} does not fit in 48 bits")
    return value.to_bytes(_MAC_LENGTH, "big")


def _l4_checksum(frame: bytearray, parsed: ParsedFrame, start: int, end: int) -> int:
    pseudo_header = struct.pack(
        "!IIBBH", parsed.src_ip, parsed.dst_ip, 0, parsed.protocol, end - start
    )
    return internet_checksum(pseudo_header + bytes(frame[start:end]))


def update_checksums(frame: bytearray) -> bytearray:
    """Recompute the IPv4 header checksum and the ICMP, TCP or UDP checksum in place.

    Returns the same bytearray. Raises TypeError for immutable input and
    ValueError when the frame carries no IPv4 header.
    """
    if not isinstance(frame, bytearray):
        raise TypeError("frame must be a bytearray so it can be updated in place")
    parsed = parse_frame(frame)
    if not parsed.is_ipv4:
        raise ValueError("frame does not carry an IPv4 header")

    l3 = parsed.l3_offset
    struct.pack_into("!H", frame, l3 + 10, 0)
    header_sum = internet_checksum(frame[l3:l3 + parsed.ip_header_length])
    struct.pack_into("!H", frame, l3 + 10, header_sum)

    l4 = parsed.l4_offset
    end = min(len(frame), l3 + parsed.ip_total_length)
    segment_length = end - l4
    if parsed.protocol == IPPROTO_ICMP and segment_length >= ICMP_HEADER_SIZE:
        struct.pack_into("!H", frame, l4 + 2, 0)
        struct.pack_into("!H", frame, l4 + 2, internet_checksum(frame[l4:end]))
    elif parsed.protocol == IPPROTO_TCP and segment_length >= TCP_MIN_HEADER_SIZE:
        struct.pack_into("!H", frame, l4 + 16, 0)
        struct.pack_into("!H", frame, l4 + 16, _l4_checksum(frame, parsed, l4, end))
    elif parsed.protocol == IPPROTO_UDP and segment_length >= UDP_HEADER_SIZE:
        struct.pack_into("!H", frame, l4 + 6, 0)
        checksum = _l4_checksum(frame, parsed, l4, end) or 0xFFFF
        struct.pack_into("!H", frame, l4 + 6, checksum)
    return frame