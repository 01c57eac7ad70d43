from ipaddress import IPv4Address

import pytest

from netflowpp.interface_manager import (
    InterfaceIpConfig,
    InterfaceManager,
    PortConfig,
    PortStats,
)

TEST_PORT = 1
MAC_A = bytes.fromhex("020000000001")
MAC_B = bytes.fromhex("020000000002")


@pytest.fixture
def manager():
    return InterfaceManager()


def _all_zero(stats):
    return stats == PortStats()


def test_set_and_get_admin_status(manager):
    config = PortConfig(admin_up=True)
    manager.configure_port(TEST_PORT, config)
    assert manager.is_port_admin_up(TEST_PORT)
    assert manager.get_port_config(TEST_PORT).admin_up is True

    config.admin_up = False
    manager.configure_port(TEST_PORT, config)
    assert not manager.is_port_admin_up(TEST_PORT)
    assert manager.get_port_config(TEST_PORT).admin_up is False


def test_set_and_get_port_speed(manager):
    manager.configure_port(TEST_PORT, PortConfig(speed_mbps=10000))
    assert manager.get_port_config(TEST_PORT).speed_mbps == 10000


def test_set_and_get_mtu(manager):
    manager.configure_port(TEST_PORT, PortConfig(mtu=9000))
    assert manager.get_port_config(TEST_PORT).mtu == 9000


def test_configure_full_port_and_verify(manager):
    config = PortConfig(
        admin_up=True, speed_mbps=25000, full_duplex=True, auto_negotiation=False, mtu=1550
    )
    manager.configure_port(TEST_PORT, config)
    stored = manager.get_port_config(TEST_PORT)
    assert stored.admin_up is True
    assert stored.speed_mbps == 25000
    assert stored.full_duplex is True
    assert stored.auto_negotiation is False
    assert stored.mtu == 1550


def test_get_default_port_stats(manager):
    assert _all_zero(manager.get_port_stats(TEST_PORT))
    manager.configure_port(TEST_PORT, PortConfig())
    assert manager.get_port_stats(TEST_PORT).rx_packets == 0


def test_increment_and_clear_port_stats(manager):
    manager.configure_port(TEST_PORT, PortConfig())
    manager.increment_rx_stats(TEST_PORT, 100, True, False)
    manager.increment_tx_stats(TEST_PORT, 200, False, True)

    stats = manager.get_port_stats(TEST_PORT)
    assert stats.rx_packets == 1
    assert stats.rx_bytes == 100
    assert stats.rx_errors == 1
    assert stats.rx_drops == 0
    assert stats.tx_packets == 1
    assert stats.tx_bytes == 200
    assert stats.tx_errors == 0
    assert stats.tx_drops == 1

    manager.clear_port_stats(TEST_PORT)
    assert _all_zero(manager.get_port_stats(TEST_PORT))


def test_returned_stats_are_a_copy(manager):
    manager.increment_rx_stats(TEST_PORT, 10, False, False)
    snapshot = manager.get_port_stats(TEST_PORT)
    snapshot.rx_packets = 99
    assert manager.get_port_stats(TEST_PORT).rx_packets == 1


def test_link_state_notification(manager):
    events = {"up": [], "down": []}
    manager.on_link_up(events["up"].append)
    manager.on_link_down(events["down"].append)

    manager.simulate_port_link_up(TEST_PORT)
    assert events["up"] == [TEST_PORT]
    assert manager.is_port_link_up(TEST_PORT)

    manager.simulate_port_link_down(TEST_PORT)
    assert events["down"] == [TEST_PORT]
    assert not manager.is_port_link_up(TEST_PORT)


def test_none_callback_is_ignored(manager):
    manager.on_link_up(None)
    manager.simulate_port_link_up(TEST_PORT)
    assert manager.is_port_link_up(TEST_PORT)


def test_configure_non_existent_port(manager):
    assert manager.get_port_config(999) is None
    manager.configure_port(999, PortConfig())
    assert manager.get_port_config(999) == PortConfig()
    assert manager.is_port_valid(999)


def test_get_stats_for_non_existent_port(manager):
    stats = manager.get_port_stats(998)
    assert stats.rx_packets == 0
    assert stats.tx_bytes == 0


def test_get_config_for_non_existent_port(manager):
    assert manager.get_port_config(997) is None
    assert not manager.is_port_admin_up(997)


def test_returned_config_is_a_copy(manager):
    manager.configure_port(TEST_PORT, PortConfig(mtu=1500))
    fetched = manager.get_port_config(TEST_PORT)
    fetched.mtu = 9000
    assert manager.get_port_config(TEST_PORT).mtu == 1500


def test_add_ip_address_and_lookups(manager):
    manager.configure_port(1, PortConfig(mac_address=MAC_A))
    manager.configure_port(2, PortConfig(mac_address=MAC_B))
    manager.add_ip_address(2, "10.0.0.1", "255.255.255.0")

    assert manager.get_interface_ip_configs(2) == [
        InterfaceIpConfig(IPv4Address("10.0.0.1"), IPv4Address("255.255.255.0"))
    ]
    assert manager.is_my_ip("10.0.0.1")
    assert manager.is_my_ip(int(IPv4Address("10.0.0.1")))
    assert not manager.is_my_ip("10.0.0.2")
    assert manager.find_interface_for_ip("10.0.0.1") == 2
    assert manager.get_mac_for_ip("10.0.0.1") == MAC_B
    assert manager.get_mac_for_ip("10.0.0.2") is None
    assert manager.is_ip_local_to_interface(2, "10.0.0.1")
    assert not manager.is_ip_local_to_interface(1, "10.0.0.1")


def test_add_ip_address_ignores_duplicates(manager):
    manager.configure_port(1, PortConfig())
    manager.add_ip_address(1, "10.0.0.1", "255.255.255.0")
    manager.add_ip_address(1, "10.0.0.1", "255.255.255.0")
    assert len(manager.get_interface_ip_configs(1)) == 1


def test_add_ip_address_to_unconfigured_port_is_ignored(manager):
    manager.add_ip_address(5, "10.0.0.1", "255.255.255.0")
    assert manager.get_interface_ip_configs(5) == []
    assert not manager.is_my_ip("10.0.0.1")


def test_remove_ip_address(manager):
    manager.configure_port(1, PortConfig())
    manager.add_ip_address(1, "10.0.0.1", "255.255.255.0")
    manager.add_ip_address(1, "10.0.1.1", "255.255.255.0")
    manager.remove_ip_address(1, "10.0.0.1", "255.255.255.0")
    assert [ipc.address for ipc in manager.get_interface_ip_configs(1)] == [
        IPv4Address("10.0.1.1")
    ]


def test_remove_requires_matching_mask(manager):
    manager.configure_port(1, PortConfig())
    manager.add_ip_address(1, "10.0.0.1", "255.255.255.0")
    manager.remove_ip_address(1, "10.0.0.1", "255.255.0.0")
    assert len(manager.get_interface_ip_configs(1)) == 1


def test_get_interface_ip_returns_first(manager):
    manager.configure_port(1, PortConfig())
    assert manager.get_interface_ip(1) is None
    manager.add_ip_address(1, "10.0.0.1", "255.255.255.0")
    manager.add_ip_address(1, "10.0.1.1", "255.255.255.0")
    assert manager.get_interface_ip(1) == IPv4Address("10.0.0.1")
    assert manager.get_interface_ip(42) is None


def test_get_interface_mac(manager):
    manager.configure_port(3, PortConfig(mac_address=MAC_A))
    assert manager.get_interface_mac(3) == MAC_A
    assert manager.get_interface_mac(4) is None


def test_enumeration(manager):
    for port in (3, 1, 2):
        manager.configure_port(port, PortConfig())
    manager.add_ip_address(2, "10.0.0.1", "255.255.255.0")
    assert manager.get_all_interface_ids() == [1, 2, 3]
    assert manager.get_all_l3_interface_ids() == [2]
    configs = manager.get_all_port_configs()
    assert list(configs) == [1, 2, 3]
    assert len(configs[2].ip_configurations) == 1
    assert not manager.is_port_valid(7)