import pytest

from netflowpp.lacp_types import (
    LACP_SUBTYPE,
    LACP_VERSION,
    LACPDU_SIZE,
    LacpHashMode,
    LacpPortInfo,
    LacpStateFlag,
    Lacpdu,
    LagConfig,
    MuxMachineState,
    RxMachineState,
)

MADE_UP_MAC = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])


def test_default_lacpdu_header_and_tlv_markers():
    wire = Lacpdu().to_bytes()
    assert len(wire) == LACPDU_SIZE
    assert wire[0:4] == bytes([0x01, 0x01, 0x01, 0x14])
    assert wire[22:24] == bytes([0x02, 0x14])
    assert wire[42:44] == bytes([0x03, 0x10])
    assert wire[58:60] == bytes([0x00, 0x00])


def test_default_lacpdu_fields():
    pdu = Lacpdu()
    assert pdu.subtype == LACP_SUBTYPE
    assert pdu.version_number == LACP_VERSION
    assert pdu.get_actor_system_id() == 0


def test_actor_system_id_round_trip():
    pdu = Lacpdu()
    system_id = (0x8000 << 48) | int.from_bytes(MADE_UP_MAC, "big")
    pdu.set_actor_system_id(system_id)
    assert pdu.actor_system_priority == 0x8000
    assert pdu.actor_system_mac == MADE_UP_MAC
    assert pdu.get_actor_system_id() == system_id


def test_system_id_encoded_big_endian_on_wire():
    pdu = Lacpdu()
    pdu.set_actor_system_id((0x8000 << 48) | int.from_bytes(MADE_UP_MAC, "big"))
    wire = pdu.to_bytes()
    assert wire[4:6] == b"\x80\x00"
    assert wire[6:12] == MADE_UP_MAC


def test_bytes_round_trip():
    pdu = Lacpdu(
        actor_system_priority=100,
        actor_system_mac=MADE_UP_MAC,
        actor_key=7,
        actor_port_priority=128,
        actor_port_number=3,
        actor_state=int(LacpStateFlag.LACP_ACTIVITY | LacpStateFlag.AGGREGATION),
        partner_system_mac=MADE_UP_MAC,
        partner_key=9,
        partner_port_number=4,
        partner_state=int(LacpStateFlag.SYNCHRONIZATION),
        collector_max_delay=5,
    )
    assert Lacpdu.from_bytes(pdu.to_bytes()) == pdu


def test_from_bytes_ignores_trailing_data():
    pdu = Lacpdu(actor_key=42)
    assert Lacpdu.from_bytes(pdu.to_bytes() + b"\xff" * 4) == pdu


def test_from_bytes_rejects_truncated_input():
    with pytest.raises(ValueError):
        Lacpdu.from_bytes(Lacpdu().to_bytes()[:-1])


def test_invalid_mac_length_rejected():
    with pytest.raises(ValueError):
        Lacpdu(actor_system_mac=b"\x02\x00")


def test_lag_config_defaults():
    config = LagConfig()
    assert config.lag_id == 0
    assert config.hash_mode is LacpHashMode.SRC_DST_IP_L4_PORT
    assert config.active_mode is True
    assert config.lacp_rate == 1
    assert config.member_ports == []


def test_lag_config_lists_are_independent():
    first, second = LagConfig(), LagConfig()
    first.member_ports.append(1)
    first.active_distributing_members.append(1)
    assert second.member_ports == []
    assert second.active_distributing_members == []


def test_port_info_defaults():
    info = LacpPortInfo(5)
    assert info.port_id_physical == 5
    assert info.port_priority_val == 128
    assert info.mux_state is MuxMachineState.DETACHED
    assert info.rx_state is RxMachineState.INITIALIZE
    assert info.get_actor_state_flag(LacpStateFlag.AGGREGATION)
    assert info.get_actor_state_flag(LacpStateFlag.DEFAULTED)
    assert not info.get_actor_state_flag(LacpStateFlag.LACP_ACTIVITY)
    assert info.get_partner_state_flag(LacpStateFlag.DEFAULTED)
    assert info.get_partner_state_flag(LacpStateFlag.EXPIRED)
    assert not info.get_partner_state_flag(LacpStateFlag.SYNCHRONIZATION)


def test_actor_flag_set_and_clear():
    info = LacpPortInfo()
    info.set_actor_state_flag(LacpStateFlag.LACP_ACTIVITY, True)
    assert info.get_actor_state_flag(LacpStateFlag.LACP_ACTIVITY)
    info.set_actor_state_flag(LacpStateFlag.DEFAULTED, False)
    assert not info.get_actor_state_flag(LacpStateFlag.DEFAULTED)
    assert info.get_actor_state_flag(LacpStateFlag.AGGREGATION)
    assert info.actor_state_val == LacpStateFlag.LACP_ACTIVITY | LacpStateFlag.AGGREGATION


def test_partner_flag_set_and_clear_leaves_actor_alone():
    info = LacpPortInfo()
    before = info.actor_state_val
    info.set_partner_state_flag(LacpStateFlag.EXPIRED, False)
    info.set_partner_state_flag(LacpStateFlag.COLLECTING, True)
    assert not info.get_partner_state_flag(LacpStateFlag.EXPIRED)
    assert info.get_partner_state_flag(LacpStateFlag.COLLECTING)
    assert info.partner_state_val == LacpStateFlag.DEFAULTED | LacpStateFlag.COLLECTING
    assert info.actor_state_val == before


@pytest.mark.parametrize("flag", list(LacpStateFlag))
def test_setting_a_flag_twice_is_idempotent(flag):
    info = LacpPortInfo()
    info.set_actor_state_flag(flag, True)
    once = info.actor_state_val
    info.set_actor_state_flag(flag, True)
    assert info.actor_state_val == once
    info.set_actor_state_flag(flag, False)
    assert not info.get_actor_state_flag(flag)


def test_port_info_pdu_actor_info_not_shared():
    first, second = LacpPortInfo(), LacpPortInfo()
    first.last_received_pdu_actor_info.valid = True
    assert second.last_received_pdu_actor_info.valid is False