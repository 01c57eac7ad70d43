"""Hashing of frame fields to pick an egress member of a link aggregation group."""

from __future__ import annotations

import logging

from netflowpp.frames import ParsedFrame, mac_to_int
from netflowpp.lacp_types import LacpHashMode

logger = logging.getLogger(__name__)

_U32 = 0xFFFFFFFF
_U64_LIMIT = 1 << 64
_U32_LIMIT = 1 << 32
_U16_LIMIT = 1 << 16


def hash_mac(mac_value: int) -> int:
    """Fold a MAC address held as an integer into 32 bits by XOR of its halves."""
    if not 0 <= mac_value < _U64_LIMIT:
        raise ValueError(f"MAC value {mac_value} does not fit in 64 bits")
    return ((mac_value >> 32) & _U32) ^ (mac_value & _U32)


def hash_ip(ip: int) -> int:
    """Hash an IPv4 address given in host order; the address is its own hash."""
    if not 0 <= ip < _U32_LIMIT:
        raise ValueError(f"IPv4 address {ip} does not fit in 32 bits")
    return ip


def hash_l4_port(port: int) -> int:
    """Hash a TCP or UDP port; the port is its own hash."""
    if not 0 <= port < _U16_LIMIT:
        raise ValueError(f"port {port} does not fit in 16 bits")
    return port


def _ports(frame: ParsedFrame) -> tuple[int, int] | None:
    if frame.is_tcp or frame.is_udp:
        return frame.src_port, frame.dst_port
    return None


def compute_hash(frame: ParsedFrame, mode: LacpHashMode) -> int:
    """Return the 32-bit load-balancing hash of a frame for the given mode.

    Modes that need fields the frame lacks fall back to IPv4 addresses and
    then to MAC addresses.
    """
    src_mac = hash_mac(mac_to_int(frame.src_mac))
    dst_mac = hash_mac(mac_to_int(frame.dst_mac))
    ipv4 = frame.is_ipv4
    ports = _ports(frame)

    if mode is LacpHashMode.SRC_MAC:
        value = src_mac
    elif mode is LacpHashMode.DST_MAC:
        value = dst_mac
    elif mode is LacpHashMode.SRC_DST_MAC:
        value = src_mac ^ dst_mac
    elif mode is LacpHashMode.SRC_IP:
        value = hash_ip(frame.src_ip) if ipv4 else src_mac
    elif mode is LacpHashMode.DST_IP:
        value = hash_ip(frame.dst_ip) if ipv4 else dst_mac
    elif mode is LacpHashMode.SRC_DST_IP:
        value = hash_ip(frame.src_ip) ^ hash_ip(frame.dst_ip) if ipv4 else src_mac ^ dst_mac
    elif mode is LacpHashMode.SRC_PORT:
        if ports is not None:
            value = hash_l4_port(ports[0])
        elif ipv4:
            value = hash_ip(frame.src_ip)
        else:
            value = src_mac
    elif mode is LacpHashMode.DST_PORT:
        if ports is not None:
            value = hash_l4_port(ports[1])
        elif ipv4:
            value = hash_ip(frame.dst_ip)
        else:
            value = dst_mac
    elif mode is LacpHashMode.SRC_DST_PORT:
        if ports is not None:
            value = hash_l4_port(ports[0]) ^ hash_l4_port(ports[1])
        elif ipv4:
            value = hash_ip(frame.src_ip) ^ hash_ip(frame.dst_ip)
        else:
            value = src_mac ^ dst_mac
    elif mode is LacpHashMode.SRC_DST_IP_L4_PORT:
        if ipv4:
            value = hash_ip(frame.src_ip) ^ hash_ip(frame.dst_ip) ^ frame.protocol
            if ports is not None:
                value ^= hash_l4_port(ports[0]) ^ hash_l4_port(ports[1])
        else:
            value = src_mac ^ dst_mac
    else:
        logger.warning("unknown hash mode %r, using source and destination MAC", mode)
        value = src_mac ^ dst_mac
    return value & _U32