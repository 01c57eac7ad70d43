"""LACP protocol data units, link aggregation settings and per-port LACP state."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import Enum, IntFlag

LACP_SUBTYPE = 0x01
LACP_VERSION = 0x01
LACP_MULTICAST_MAC = 0x0180C2000002
LACP_ETHERTYPE = 0x8809

LACPDU_MIN_SIZE = 60

TLV_TYPE_ACTOR = 0x01
TLV_TYPE_PARTNER = 0x02
TLV_TYPE_COLLECTOR = 0x03
TLV_TYPE_TERMINATOR = 0x00
ACTOR_INFO_LENGTH = 0x14
PARTNER_INFO_LENGTH = 0x14
COLLECTOR_INFO_LENGTH = 0x10
TERMINATOR_LENGTH = 0x00

SHORT_TIMEOUT_TICKS = 3
LONG_TIMEOUT_TICKS = 90
AGGREGATE_WAIT_TIME_TICKS = 2

DEFAULT_PORT_PRIORITY = 128

_MAC_LENGTH = 6
_MAC_MASK = (1 << 48) - 1

# Wire layout: header, actor TLV, partner TLV, collector TLV, terminator TLV.
_HEADER = struct.Struct("!BB")
_PARTICIPANT_TLV = struct.Struct("!BBH6sHHHB3x")
_COLLECTOR_TLV = struct.Struct("!BBH12x")
_TERMINATOR_TLV = struct.Struct("!BB50x")
LACPDU_SIZE = (
    _HEADER.size + 2 * _PARTICIPANT_TLV.size + _COLLECTOR_TLV.size + _TERMINATOR_TLV.size
)


class LacpStateFlag(IntFlag):
    """Bits of the actor and partner state octets."""

    LACP_ACTIVITY = 0x01
    LACP_TIMEOUT = 0x02
    AGGREGATION = 0x04
    SYNCHRONIZATION = 0x08
    COLLECTING = 0x10
    DISTRIBUTING = 0x20
    DEFAULTED = 0x40
    EXPIRED = 0x80


class LacpHashMode(Enum):
    """Packet fields used to spread traffic over the members of a LAG."""

    SRC_MAC = "src_mac"
    DST_MAC = "dst_mac"
    SRC_DST_MAC = "src_dst_mac"
    SRC_IP = "src_ip"
    DST_IP = "dst_ip"
    SRC_DST_IP = "src_dst_ip"
    SRC_PORT = "src_port"
    DST_PORT = "dst_port"
    SRC_DST_PORT = "src_dst_port"
    SRC_DST_IP_L4_PORT = "src_dst_ip_l4_port"


class MuxMachineState(Enum):
    DETACHED = "detached"
    WAITING = "waiting"
    ATTACHED = "attached"
    COLLECTING_DISTRIBUTING = "collecting_distributing"


class RxMachineState(Enum):
    INITIALIZE = "initialize"
    PORT_DISABLED = "port_disabled"
    LACP_DISABLED = "lacp_disabled"
    EXPIRED = "expired"
    DEFAULTED = "defaulted"
    CURRENT = "current"


class PeriodicTxState(Enum):
    NO_PERIODIC = "no_periodic"
    FAST_PERIODIC = "fast_periodic"
    SLOW_PERIODIC = "slow_periodic"
    PERIODIC_TX = "periodic_tx"


def _check_mac(value: bytes | bytearray, name: str) -> bytes:
    raw = bytes(value)
    if len(raw) != _MAC_LENGTH:
        raise ValueError(f"{name} must be 6 bytes, got {len(raw)}")
    return raw


@dataclass
class Lacpdu:
    """An LACP data unit; multi-byte fields hold host values, MACs raw bytes."""

    subtype: int = LACP_SUBTYPE
    version_number: int = LACP_VERSION
    tlv_type_actor: int = TLV_TYPE_ACTOR
    actor_info_length: int = ACTOR_INFO_LENGTH
    actor_system_priority: int = 0
    actor_system_mac: bytes = bytes(_MAC_LENGTH)
    actor_key: int = 0
    actor_port_priority: int = 0
    actor_port_number: int = 0
    actor_state: int = 0
    tlv_type_partner: int = TLV_TYPE_PARTNER
    partner_info_length: int = PARTNER_INFO_LENGTH
    partner_system_priority: int = 0
    partner_system_mac: bytes = bytes(_MAC_LENGTH)
    partner_key: int = 0
    partner_port_priority: int = 0
    partner_port_number: int = 0
    partner_state: int = 0
    tlv_type_collector: int = TLV_TYPE_COLLECTOR
    collector_info_length: int = COLLECTOR_INFO_LENGTH
    collector_max_delay: int = 0
    tlv_type_terminator: int = TLV_TYPE_TERMINATOR
    terminator_length: int = TERMINATOR_LENGTH

    def __post_init__(self) -> None:
        self.actor_system_mac = _check_mac(self.actor_system_mac, "actor_system_mac")
        self.partner_system_mac = _check_mac(self.partner_system_mac, "partner_system_mac")

    def get_actor_system_id(self) -> int:
        """Return the actor system ID: priority in the top 16 bits, MAC below."""
        mac_part = int.from_bytes(self.actor_system_mac, "big")
        return ((self.actor_system_priority & 0xFFFF) << 48) | mac_part

    def set_actor_system_id(self, system_id: int) -> None:
        """Split a 64-bit system ID into the actor priority and MAC."""
        self.actor_system_priority = (system_id >> 48) & 0xFFFF
        self.actor_system_mac = (system_id & _MAC_MASK).to_bytes(_MAC_LENGTH, "big")

    def to_bytes(self) -> bytes:
        """Encode the unit in network byte order."""
        return b"".join(
            (
                _HEADER.pack(self.subtype, self.version_number),
                _PARTICIPANT_TLV.pack(
                    self.tlv_type_actor,
                    self.actor_info_length,
                    self.actor_system_priority,
                    self.actor_system_mac,
                    self.actor_key,
                    self.actor_port_priority,
                    self.actor_port_number,
                    self.actor_state,
                ),
                _PARTICIPANT_TLV.pack(
                    self.tlv_type_partner,
                    self.partner_info_length,
                    self.partner_system_priority,
                    self.partner_system_mac,
                    self.partner_key,
                    self.partner_port_priority,
                    self.partner_port_number,
                    self.partner_state,
                ),
                _COLLECTOR_TLV.pack(
                    self.tlv_type_collector,
                    self.collector_info_length,
                    self.collector_max_delay,
                ),
                _TERMINATOR_TLV.pack(self.tlv_type_terminator, self.terminator_length),
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> Lacpdu:
        """Decode a unit; reserved bytes are ignored. Raises ValueError if truncated."""
        raw = bytes(data)
        if len(raw) < LACPDU_SIZE:
            raise ValueError(f"LACPDU needs {LACPDU_SIZE} bytes, got {len(raw)}")
        offset = 0
        subtype, version = _HEADER.unpack_from(raw, offset)
        offset += _HEADER.size
        actor = _PARTICIPANT_TLV.unpack_from(raw, offset)
        offset += _PARTICIPANT_TLV.size
        partner = _PARTICIPANT_TLV.unpack_from(raw, offset)
        offset += _PARTICIPANT_TLV.size
        collector = _COLLECTOR_TLV.unpack_from(raw, offset)
        offset += _COLLECTOR_TLV.size
        terminator = _TERMINATOR_TLV.unpack_from(raw, offset)
        return cls(
            subtype=subtype,
            version_number=version,
            tlv_type_actor=actor[0],
            actor_info_length=actor[1],
            actor_system_priority=actor[2],
            actor_system_mac=actor[3],
            actor_key=actor[4],
            actor_port_priority=actor[5],
            actor_port_number=actor[6],
            actor_state=actor[7],
            tlv_type_partner=partner[0],
            partner_info_length=partner[1],
            partner_system_priority=partner[2],
            partner_system_mac=partner[3],
            partner_key=partner[4],
            partner_port_priority=partner[5],
            partner_port_number=partner[6],
            partner_state=partner[7],
            tlv_type_collector=collector[0],
            collector_info_length=collector[1],
            collector_max_delay=collector[2],
            tlv_type_terminator=terminator[0],
            terminator_length=terminator[1],
        )


@dataclass
class LagConfig:
    """Settings and membership of one link aggregation group."""

    lag_id: int = 0
    member_ports: list[int] = field(default_factory=list)
    hash_mode: LacpHashMode = LacpHashMode.SRC_DST_IP_L4_PORT
    active_mode: bool = True
    lacp_rate: int = 1  # 1 = fast (short timeout), 0 = slow
    actor_admin_key: int = 0
    active_distributing_members: list[int] = field(default_factory=list)


@dataclass
class PduActorInfo:
    """Actor information taken from the most recently received LACPDU."""

    system_id: int = 0
    key: int = 0
    port_priority: int = 0
    port_number: int = 0
    state: int = 0
    valid: bool = False


def _with_flag(state: int, flag: LacpStateFlag, value: bool) -> LacpStateFlag:
    bits = int(state) | int(flag) if value else int(state) & ~int(flag)
    return LacpStateFlag(bits & 0xFF)


@dataclass
class LacpPortInfo:
    """LACP state machine variables of one physical port."""

    port_id_physical: int = 0
    actor_system_id_val: int = 0
    actor_port_id_val: int = 0
    actor_key_val: int = 0
    actor_state_val: LacpStateFlag = LacpStateFlag.AGGREGATION | LacpStateFlag.DEFAULTED
    partner_system_id_val: int = 0
    partner_port_id_val: int = 0
    partner_key_val: int = 0
    partner_state_val: LacpStateFlag = LacpStateFlag.DEFAULTED | LacpStateFlag.EXPIRED
    is_active_member_of_lag: bool = False
    current_aggregator_id: int = 0
    current_while_timer_ticks: int = 0
    short_timeout_timer_ticks: int = 0
    long_timeout_timer_ticks: int = 0
    mux_state: MuxMachineState = MuxMachineState.DETACHED
    rx_state: RxMachineState = RxMachineState.INITIALIZE
    periodic_tx_state: PeriodicTxState = PeriodicTxState.NO_PERIODIC
    port_priority_val: int = DEFAULT_PORT_PRIORITY
    pdu_received_event: bool = False
    current_while_timer_expired_event: bool = False
    short_timeout_timer_expired_event: bool = False
    long_timeout_timer_expired_event: bool = False
    ntt_event: bool = False
    wait_while_timer_expired_event: bool = False
    current_wait_while_timer_ticks: int = 0
    selected_for_aggregation: bool = False
    port_enabled: bool = False
    lacp_enabled: bool = False
    last_received_pdu_actor_info: PduActorInfo = field(default_factory=PduActorInfo)

    def set_actor_state_flag(self, flag: LacpStateFlag, value: bool) -> None:
        self.actor_state_val = _with_flag(self.actor_state_val, flag, value)

    def get_actor_state_flag(self, flag: LacpStateFlag) -> bool:
        return bool(int(self.actor_state_val) & int(flag))

    def set_partner_state_flag(self, flag: LacpStateFlag, value: bool) -> None:
        self.partner_state_val = _with_flag(self.partner_state_val, flag, value)

    def get_partner_state_flag(self, flag: LacpStateFlag) -> bool:
        return bool(int(self.partner_state_val) & int(flag))