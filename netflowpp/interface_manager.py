"""Per-port configuration, statistics, link state and IP addressing."""

from __future__ import annotations

import copy
import dataclasses
import threading
from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import Callable, Union

IpLike = Union[IPv4Address, int, str]
LinkCallback = Callable[[int], None]


def _as_ip(value: IpLike) -> IPv4Address:
    return value if isinstance(value, IPv4Address) else IPv4Address(value)


@dataclass(frozen=True)
class InterfaceIpConfig:
    """An address and subnet mask assigned to an interface."""

    address: IPv4Address
    subnet_mask: IPv4Address

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", _as_ip(self.address))
        object.__setattr__(self, "subnet_mask", _as_ip(self.subnet_mask))


@dataclass
class PortConfig:
    """Administrative settings of one port."""

    admin_up: bool = False
    speed_mbps: int = 1000
    full_duplex: bool = True
    auto_negotiation: bool = True
    mtu: int = 1500
    mac_address: bytes = bytes(6)
    ip_configurations: list[InterfaceIpConfig] = field(default_factory=list)


@dataclass
class PortStats:
    """Packet, byte, error and drop counters of one port."""

    rx_packets: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_errors: int = 0
    tx_errors: int = 0
    rx_drops: int = 0
    tx_drops: int = 0


class InterfaceManager:
    """Keeps port configurations and counters; thread-safe for config and stats."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._configs: dict[int, PortConfig] = {}
        self._stats: dict[int, PortStats] = {}
        self._link_state: dict[int, bool] = {}
        self._link_up_callbacks: list[LinkCallback] = []
        self._link_down_callbacks: list[LinkCallback] = []

    # --- configuration and statistics ---

    def configure_port(self, port_id: int, config: PortConfig) -> None:
        with self._lock:
            self._configs[port_id] = copy.deepcopy(config)
            self._stats.setdefault(port_id, PortStats())

    def get_port_config(self, port_id: int) -> PortConfig | None:
        with self._lock:
            config = self._configs.get(port_id)
            return copy.deepcopy(config) if config is not None else None

    def get_port_stats(self, port_id: int) -> PortStats:
        with self._lock:
            stats = self._stats.get(port_id)
            return dataclasses.replace(stats) if stats is not None else PortStats()

    def clear_port_stats(self, port_id: int) -> None:
        with self._lock:
            if port_id in self._stats:
                self._stats[port_id] = PortStats()

    def is_port_admin_up(self, port_id: int) -> bool:
        with self._lock:
            config = self._configs.get(port_id)
            return config is not None and config.admin_up

    def increment_rx_stats(
        self, port_id: int, byte_count: int, is_error: bool = False, is_drop: bool = False
    ) -> None:
        with self._lock:
            stats = self._stats.setdefault(port_id, PortStats())
            stats.rx_packets += 1
            stats.rx_bytes += byte_count
            if is_error:
                stats.rx_errors += 1
            if is_drop:
                stats.rx_drops += 1

    def increment_tx_stats(
        self, port_id: int, byte_count: int, is_error: bool = False, is_drop: bool = False
    ) -> None:
        with self._lock:
            stats = self._stats.setdefault(port_id, PortStats())
            stats.tx_packets += 1
            stats.tx_bytes += byte_count
            if is_error:
                stats.tx_errors += 1
            if is_drop:
                stats.tx_drops += 1

    # --- link state ---

    def is_port_link_up(self, port_id: int) -> bool:
        return self._link_state.get(port_id, False)

    def on_link_up(self, callback: LinkCallback | None) -> None:
        if callback is not None:
            self._link_up_callbacks.append(callback)

    def on_link_down(self, callback: LinkCallback | None) -> None:
        if callback is not None:
            self._link_down_callbacks.append(callback)

    def simulate_port_link_up(self, port_id: int) -> None:
        self._link_state[port_id] = True
        for callback in self._link_up_callbacks:
            callback(port_id)

    def simulate_port_link_down(self, port_id: int) -> None:
        self._link_state[port_id] = False
        for callback in self._link_down_callbacks:
            callback(port_id)

    # --- IP addressing ---

    def add_ip_address(self, interface_id: int, address: IpLike, subnet_mask: IpLike) -> None:
        """Assign an address to a configured interface; duplicates are ignored."""
        entry = InterfaceIpConfig(address, subnet_mask)
        with self._lock:
            config = self._configs.get(interface_id)
            if config is not None and entry not in config.ip_configurations:
                config.ip_configurations.append(entry)

    def remove_ip_address(self, interface_id: int, address: IpLike, subnet_mask: IpLike) -> None:
        entry = InterfaceIpConfig(address, subnet_mask)
        with self._lock:
            config = self._configs.get(interface_id)
            if config is not None:
                config.ip_configurations = [
                    ipc for ipc in config.ip_configurations if ipc != entry
                ]

    def get_interface_ip_configs(self, interface_id: int) -> list[InterfaceIpConfig]:
        with self._lock:
            config = self._configs.get(interface_id)
            return list(config.ip_configurations) if config is not None else []

    def is_ip_local_to_interface(self, interface_id: int, ip: IpLike) -> bool:
        wanted = _as_ip(ip)
        with self._lock:
            config = self._configs.get(interface_id)
            return config is not None and any(
                ipc.address == wanted for ipc in config.ip_configurations
            )

    def get_interface_mac(self, interface_id: int) -> bytes | None:
        with self._lock:
            config = self._configs.get(interface_id)
            return config.mac_address if config is not None else None

    def get_interface_ip(self, interface_id: int) -> IPv4Address | None:
        """Return the first address assigned to the interface, if any."""
        with self._lock:
            config = self._configs.get(interface_id)
            if config is None or not config.ip_configurations:
                return None
            return config.ip_configurations[0].address

    def _find_interface_locked(self, ip: IPv4Address) -> int | None:
        for port_id, config in sorted(self._configs.items()):
            if any(ipc.address == ip for ipc in config.ip_configurations):
                return port_id
        return None

    def is_my_ip(self, ip: IpLike) -> bool:
        return self.find_interface_for_ip(ip) is not None

    def find_interface_for_ip(self, ip: IpLike) -> int | None:
        wanted = _as_ip(ip)
        with self._lock:
            return self._find_interface_locked(wanted)

    def get_mac_for_ip(self, ip: IpLike) -> bytes | None:
        wanted = _as_ip(ip)
        with self._lock:
            port_id = self._find_interface_locked(wanted)
            return self._configs[port_id].mac_address if port_id is not None else None

    # --- enumeration ---

    def get_all_interface_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._configs)

    def is_port_valid(self, port_id: int) -> bool:
        with self._lock:
            return port_id in self._configs

    def get_all_l3_interface_ids(self) -> list[int]:
        with self._lock:
            return sorted(
                port_id for port_id, config in self._configs.items() if config.ip_configurations
            )

    def get_all_port_configs(self) -> dict[int, PortConfig]:
        with self._lock:
            return {port_id: copy.deepcopy(self._configs[port_id]) for port_id in sorted(self._configs)}