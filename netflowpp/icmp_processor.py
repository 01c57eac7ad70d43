"""ICMP echo replies and ICMP error messages generated by the switch."""

from __future__ import annotations

import logging
import random
import struct
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Optional, Protocol, Union

from netflowpp.frames import (
    ETHERNET_HEADER_SIZE,
    ETHERTYPE_IPV4,
    ICMP_DEST_UNREACHABLE,
    ICMP_ECHO_REPLY,
    ICMP_ECHO_REQUEST,
    ICMP_HEADER_SIZE,
    ICMP_TIME_EXCEEDED,
    IPPROTO_ICMP,
    IPV4_MIN_HEADER_SIZE,
    ParsedFrame,
    parse_frame,
    update_checksums,
)
from netflowpp.interface_manager import InterfaceManager

logger = logging.getLogger(__name__)

DEFAULT_TTL = 64
ORIGINAL_L4_BYTES_IN_ERROR = 8
CODE_NETWORK_UNREACHABLE = 0
CODE_TTL_EXCEEDED_IN_TRANSIT = 0

FrameLike = Union[ParsedFrame, bytes, bytearray, memoryview]
IpLike = Union[IPv4Address, int, str]


@dataclass(frozen=True)
class Route:
    """Result of a route lookup: the egress interface and the next hop (0 if direct)."""

    egress_interface_id: int
    next_hop_ip: IpLike = 0


class ControlPlane(Protocol):
    """Switch services the ICMP processor relies on."""

    def send_control_plane_packet(self, frame: bytes, egress_port: int) -> None: ...

    def lookup_route(self, destination: IPv4Address) -> Optional[Route]: ...

    def lookup_mac(self, ip: IPv4Address) -> Optional[bytes]: ...

    def send_arp_request(self, ip: IPv4Address, interface_id: int) -> None: ...


def _parsed(frame: FrameLike) -> ParsedFrame:
    return frame if isinstance(frame, ParsedFrame) else parse_frame(frame)


def _build_icmp_frame(
    *,
    dst_mac: bytes,
    src_mac: bytes,
    src_ip: int,
    dst_ip: int,
    identification: int,
    icmp_type: int,
    icmp_code: int,
    identifier: int,
    sequence: int,
    payload: bytes,
) -> bytes:
    total_length = IPV4_MIN_HEADER_SIZE + ICMP_HEADER_SIZE + len(payload)
    frame = bytearray()
    frame += struct.pack("!6s6sH", dst_mac, src_mac, ETHERTYPE_IPV4)
    frame += struct.pack(
        "!BBHHHBBHII",
        (4 << 4) | (IPV4_MIN_HEADER_SIZE // 4),
        0,
        total_length,
        identification,
        0,
        DEFAULT_TTL,
        IPPROTO_ICMP,
        0,
        src_ip,
        dst_ip,
    )
    frame += struct.pack("!BBHHH", icmp_type, icmp_code, 0, identifier, sequence)
    frame += payload
    update_checksums(frame)
    return bytes(frame)


class IcmpProcessor:
    """Answers pings addressed to the switch and emits ICMP error messages."""

    def __init__(self, interface_manager: InterfaceManager, control_plane: ControlPlane) -> None:
        self._interfaces = interface_manager
        self._control_plane = control_plane

    def process_icmp_packet(self, frame: FrameLike, ingress_port: int) -> bytes | None:
        """Handle an incoming ICMP frame and return the echo reply sent, if any.

        Only echo requests to one of the switch's own addresses are answered;
        the reply leaves through the ingress port. Raises ValueError if the
        frame has no IPv4 ICMP header.
        """
        parsed = _parsed(frame)
        if not parsed.is_ipv4 or not parsed.is_icmp:
            raise ValueError("frame does not carry an IPv4 ICMP message")

        if parsed.icmp_type != ICMP_ECHO_REQUEST or parsed.icmp_code != 0:
            logger.info(
                "ICMP type %d code %d on port %d is not an echo request; ignored",
                parsed.icmp_type,
                parsed.icmp_code,
                ingress_port,
            )
            return None

        dst_ip = IPv4Address(parsed.dst_ip)
        logger.info(
            "ICMP echo request on port %d from %s to %s",
            ingress_port,
            IPv4Address(parsed.src_ip),
            dst_ip,
        )
        if not self._interfaces.is_my_ip(dst_ip):
            logger.info("echo request to %s is not for us; ignored", dst_ip)
            return None
        our_mac = self._interfaces.get_mac_for_ip(dst_ip)
        if our_mac is None:
            logger.error("no MAC address for our IP %s", dst_ip)
            return None
        return self._send_echo_reply(parsed, ingress_port, our_mac)

    def _send_echo_reply(self, request: ParsedFrame, egress_port: int, our_mac: bytes) -> bytes:
        header_length = request.ip_header_length
        if request.ip_total_length < header_length + ICMP_HEADER_SIZE:
            raise ValueError("IPv4 total length is too small for an ICMP header")
        payload_size = request.ip_total_length - header_length - ICMP_HEADER_SIZE
        start = request.l4_offset + ICMP_HEADER_SIZE
        payload = request.data[start:start + payload_size]
        if len(payload) < payload_size:
            logger.error("ICMP payload runs past the end of the frame; reply sent without it")
            payload = b""

        reply = _build_icmp_frame(
            dst_mac=request.src_mac,
            src_mac=our_mac,
            src_ip=request.dst_ip,
            dst_ip=request.src_ip,
            identification=0,
            icmp_type=ICMP_ECHO_REPLY,
            icmp_code=0,
            identifier=request.icmp_identifier,
            sequence=request.icmp_sequence,
            payload=payload,
        )
        logger.info(
            "sending ICMP echo reply %s -> %s on port %d",
            IPv4Address(request.dst_ip),
            IPv4Address(request.src_ip),
            egress_port,
        )
        self._control_plane.send_control_plane_packet(reply, egress_port)
        return reply

    def send_time_exceeded(
        self, original_frame: FrameLike, original_ingress_port: int
    ) -> bytes | None:
        """Report an expired TTL to the sender of ``original_frame``."""
        logger.info("TTL expired; sending ICMP time exceeded")
        return self._send_error(original_frame, ICMP_TIME_EXCEEDED, CODE_TTL_EXCEEDED_IN_TRANSIT)

    def send_destination_unreachable(
        self,
        original_frame: FrameLike,
        original_ingress_port: int,
        code: int = CODE_NETWORK_UNREACHABLE,
    ) -> bytes | None:
        """Report an unreachable destination to the sender of ``original_frame``."""
        if not 0 <= code <= 0xFF:
            raise ValueError(f"ICMP code {code} does not fit in 8 bits")
        logger.info("destination unreachable; sending ICMP code %d", code)
        return self._send_error(original_frame, ICMP_DEST_UNREACHABLE, code)

    def _send_error(self, original_frame: FrameLike, icmp_type: int, icmp_code: int) -> bytes | None:
        """Build and send an ICMP error; returns the frame sent or None if it could not be.

        Raises ValueError when the original frame carries no IPv4 header.
        """
        original = _parsed(original_frame)
        if not original.is_ipv4:
            raise ValueError("cannot send an ICMP error for a frame without an IPv4 header")

        destination = IPv4Address(original.src_ip)
        route = self._control_plane.lookup_route(destination)
        if route is None:
            logger.error("no route to %s for ICMP error; dropped", destination)
            return None
        interface_id = route.egress_interface_id

        source_ip = self._interfaces.get_interface_ip(interface_id)
        if source_ip is None:
            logger.error("no IP on interface %d to source ICMP error; dropped", interface_id)
            return None

        next_hop = IPv4Address(route.next_hop_ip)
        if int(next_hop) == 0:
            next_hop = destination
        dst_mac = self._control_plane.lookup_mac(next_hop)
        if dst_mac is None:
            logger.info("no ARP entry for next hop %s; sending ARP request", next_hop)
            self._control_plane.send_arp_request(next_hop, interface_id)
            return None

        src_mac = self._interfaces.get_interface_mac(interface_id)
        if src_mac is None:
            logger.error("no MAC on interface %d to source ICMP error; dropped", interface_id)
            return None

        l4_start = original.l3_offset + original.ip_header_length
        quoted = original.ip_header + original.data[
            l4_start:l4_start + ORIGINAL_L4_BYTES_IN_ERROR
        ]
        error_frame = _build_icmp_frame(
            dst_mac=dst_mac,
            src_mac=src_mac,
            src_ip=int(source_ip),
            dst_ip=int(destination),
            identification=random.getrandbits(16),
            icmp_type=icmp_type,
            icmp_code=icmp_code,
            identifier=0,
            sequence=0,
            payload=quoted,
        )
        logger.info(
            "sending ICMP type %d code %d to %s from %s via interface %d",
            icmp_type,
            icmp_code,
            destination,
            source_ip,
            interface_id,
        )
        self._control_plane.send_control_plane_packet(error_frame, interface_id)
        return error_frame