# netflowpp

Building blocks for a software Ethernet switch, in plain Python with no
third-party dependencies. It is a library: there is no command to run.

## Modules

### `netflowpp.frames`

- `parse_frame(data)` decodes an Ethernet frame into a frozen `ParsedFrame`.
  It follows one 802.1Q tag and IPv4 or IPv6 headers, and reads TCP or UDP
  ports and ICMP type, code, identifier and sequence. IPv4 addresses come back
  as host-order integers; MAC and IPv6 addresses as raw bytes. Fields of
  headers that are absent are `None`. A frame shorter than an Ethernet header,
  or with a truncated VLAN tag, raises `ValueError`.
- `ParsedFrame` has the properties `is_ipv4`, `is_ipv6`, `is_tcp`, `is_udp`,
  `is_icmp`, `ip_header` (raw IPv4 header bytes) and `icmp_payload`.
- `internet_checksum(data)` returns the 16-bit one's complement checksum.
- `update_checksums(frame)` recomputes, in place in a `bytearray`, the IPv4
  header checksum and the ICMP, TCP or UDP checksum. It raises `TypeError` for
  immutable input and `ValueError` for a frame without IPv4.
- `mac_to_int(mac)` and `int_to_mac(value)` convert between 6-byte MAC
  addresses and integers.

### `netflowpp.interface_manager`

`InterfaceManager` keeps per-port settings (`PortConfig`: admin state, speed,
duplex, auto-negotiation, MTU, MAC address, `InterfaceIpConfig` entries),
counters (`PortStats`), simulated link state and IP lookups. Configuration and
counters are guarded by a lock.

- `configure_port`, `get_port_config`, `is_port_admin_up`, `is_port_valid`,
  `get_all_interface_ids`, `get_all_l3_interface_ids`, `get_all_port_configs`
- `get_port_stats` (zeroed stats for unknown ports), `clear_port_stats`,
  `increment_rx_stats`, `increment_tx_stats`
- `on_link_up`, `on_link_down`, `simulate_port_link_up`,
  `simulate_port_link_down`, `is_port_link_up`
- `add_ip_address` (configured ports only, duplicates ignored),
  `remove_ip_address`, `get_interface_ip_configs`, `get_interface_ip` (first
  address), `get_interface_mac`, `is_ip_local_to_interface`, `is_my_ip`,
  `find_interface_for_ip`, `get_mac_for_ip`

Addresses may be given as `ipaddress.IPv4Address`, integers or strings.

### `netflowpp.qos_manager`

`QosManager` holds per-port queues set up by `configure_port_qos(port_id,
QosConfig(...))`. `QosConfig.validate_and_prepare()` sizes the weight list
(default 1) and rate-limit list (default 0) to `num_queues`.

- `classify_packet_to_queue(frame, port_id)`: under
  `SchedulerType.STRICT_PRIORITY` the VLAN PCP picks the queue (6-7 → 0,
  4-5 → 1, 2-3 → 2, 0-1 → 3, each modulo the queue count); everything else
  goes to queue 0.
- `enqueue_packet(frame, port_id, queue_id)` returns `False` for an
  unconfigured port, an unknown queue or a full queue (1000 frames).
- `dequeue_packet(port_id)` returns the oldest frame of the lowest-numbered
  non-empty queue, or `None`.
- `should_transmit`, `queue_depth`, `get_port_qos_config`.

### `netflowpp.lacp_types`

`LacpStateFlag`, `LacpHashMode`, `LagConfig`, `LacpPortInfo` (with
`set_/get_actor_state_flag` and `set_/get_partner_state_flag`) and `Lacpdu`,
which encodes and decodes the wire format with `to_bytes()` and
`Lacpdu.from_bytes(data)` and splits a 64-bit system ID with
`get_actor_system_id()` / `set_actor_system_id()`.

### `netflowpp.lacp_hashing`

`hash_mac`, `hash_ip`, `hash_l4_port` and `compute_hash(frame, mode)`, the
32-bit hash used to spread traffic over a link aggregation group. Modes that
need fields a frame lacks fall back to IPv4 addresses and then to MACs.

### `netflowpp.lacp_manager`

`LacpManager(switch_base_mac, system_priority=32768)`:

- `create_lag`, `add_port_to_lag`, `remove_port_from_lag` (return `False` on
  failure), `is_port_in_lag`, `get_lag_for_port`, `get_lag_config`,
  `get_all_lags`, `get_port_lacp_info`
- `select_egress_port(lag_id, frame)` hashes the frame with the LAG's hash
  mode and picks one of its `active_distributing_members`; `None` when there
  are none, `KeyError` for an unknown LAG.
- `set_actor_system_priority`, `set_port_lacp_priority` (`KeyError` for a
  port without LACP state), `configure_lag_setting(lag_id, modifier)`.

### `netflowpp.icmp_processor`

`IcmpProcessor(interface_manager, control_plane)` answers echo requests sent
to the switch's own addresses and builds Time Exceeded and Destination
Unreachable messages quoting the original IPv4 header and 8 bytes of its
payload. `control_plane` is any object with `send_control_plane_packet`,
`lookup_route` (returning a `Route` or `None`), `lookup_mac` and
`send_arp_request`. Each method returns the frame it sent, or `None`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from netflowpp.interface_manager import InterfaceManager, PortConfig

manager = InterfaceManager()
manager.configure_port(1, PortConfig(admin_up=True, mtu=9000))
manager.on_link_up(lambda port: print("link up on", port))
manager.simulate_port_link_up(1)

manager.increment_rx_stats(1, 100, False, False)
print(manager.get_port_stats(1).rx_packets)  # 1
```

```python
from netflowpp.lacp_manager import LacpManager
from netflowpp.lacp_types import LacpHashMode, LagConfig

lacp = LacpManager(0x020000000001)
lacp.create_lag(LagConfig(lag_id=10, hash_mode=LacpHashMode.SRC_DST_MAC))
lacp.add_port_to_lag(10, 1)
lacp.add_port_to_lag(10, 2)
lacp.configure_lag_setting(
    10, lambda lag: lag.active_distributing_members.extend([1, 2])
)

frame = bytes.fromhex("020000000002" "020000000003" "0806") + bytes(28)
print(lacp.get_lag_for_port(2))          # 10
print(lacp.select_egress_port(10, frame))  # 1 or 2
```

## What the package does not do

- It does not exchange LACPDUs or run LACP state machines or timers: ports
  become distributing members only when you put them in
  `active_distributing_members` yourself.
- QoS dequeueing only implements strict priority; weighted and deficit
  round robin return nothing, and rate limits are stored but not enforced.
- There is no routing table, ARP cache or packet I/O; `IcmpProcessor` relies
  on the control-plane object you supply for these.
- There is no command-line tool or server.