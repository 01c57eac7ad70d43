"""Link aggregation groups: membership, per-port LACP state and egress selection."""

from __future__ import annotations

import copy
import logging
from typing import Callable, Union

from netflowpp.frames import ParsedFrame, parse_frame
from netflowpp.lacp_hashing import compute_hash
from netflowpp.lacp_types import LacpPortInfo, LacpStateFlag, LagConfig

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PRIORITY = 32768
_MAC_MASK = 0x0000FFFFFFFFFFFF
_U16_MASK = 0xFFFF

FrameLike = Union[ParsedFrame, bytes, bytearray, memoryview]


class LacpManager:
    """Keeps the LAGs of a switch and the LACP variables of their member ports."""

    def __init__(
        self, switch_base_mac: int, system_priority: int = DEFAULT_SYSTEM_PRIORITY
    ) -> None:
        if not 0 <= system_priority <= _U16_MASK:
            raise ValueError(f"system priority {system_priority} does not fit in 16 bits")
        self._switch_mac = switch_base_mac & _MAC_MASK
        self._system_priority = system_priority
        self._lags: dict[int, LagConfig] = {}
        self._port_to_lag: dict[int, int] = {}
        self._port_info: dict[int, LacpPortInfo] = {}

    @property
    def system_priority(self) -> int:
        return self._system_priority

    @property
    def actor_system_id(self) -> int:
        """System priority in the top 16 bits, switch MAC in the low 48."""
        return (self._system_priority << 48) | self._switch_mac

    # --- LAG membership ---

    def create_lag(self, config: LagConfig) -> bool:
        """Register a LAG; returns False if its ID is already taken."""
        if config.lag_id in self._lags:
            return False
        self._lags[config.lag_id] = copy.deepcopy(config)
        logger.info("LAG %d created", config.lag_id)
        return True

    def add_port_to_lag(self, lag_id: int, port_id: int) -> bool:
        """Add a port to an existing LAG and enable LACP on it.

        Returns False if the LAG does not exist or the port already belongs
        to a LAG.
        """
        lag = self._lags.get(lag_id)
        if lag is None:
            logger.warning("cannot add port %d to unknown LAG %d", port_id, lag_id)
            return False
        if port_id in self._port_to_lag:
            logger.warning(
                "port %d already belongs to LAG %d", port_id, self._port_to_lag[port_id]
            )
            return False
        lag.member_ports = sorted(set(lag.member_ports) | {port_id})
        self._port_to_lag[port_id] = lag_id
        self._initialize_port_info(port_id, lag)
        self._port_info[port_id].lacp_enabled = True
        logger.info("port %d added to LAG %d", port_id, lag_id)
        return True

    def remove_port_from_lag(self, lag_id: int, port_id: int) -> bool:
        """Remove a port from a LAG and drop its LACP state.

        Returns False if the LAG does not exist or the port is not a member.
        The LAG itself stays even when it becomes empty.
        """
        lag = self._lags.get(lag_id)
        if lag is None:
            logger.warning("cannot remove port %d from unknown LAG %d", port_id, lag_id)
            return False
        if port_id not in lag.member_ports:
            logger.warning("port %d is not a member of LAG %d", port_id, lag_id)
            return False
        lag.member_ports.remove(port_id)
        if self._port_to_lag.get(port_id) == lag_id:
            del self._port_to_lag[port_id]
        else:
            logger.warning("port %d was not mapped to LAG %d", port_id, lag_id)
        if self._port_info.pop(port_id, None) is None:
            logger.warning("no LACP state for port %d while leaving LAG %d", port_id, lag_id)
        lag.active_distributing_members = [
            member for member in lag.active_distributing_members if member != port_id
        ]
        logger.info("port %d removed from LAG %d", port_id, lag_id)
        return True

    def _initialize_port_info(self, port_id: int, lag: LagConfig) -> None:
        info = self._port_info.get(port_id)
        if info is None:
            info = LacpPortInfo(port_id_physical=port_id)
            self._port_info[port_id] = info
        info.actor_system_id_val = self.actor_system_id
        info.actor_port_id_val = port_id & _U16_MASK
        info.current_aggregator_id = lag.lag_id
        self._apply_lag_settings(info, lag)

    @staticmethod
    def _apply_lag_settings(info: LacpPortInfo, lag: LagConfig) -> None:
        info.set_actor_state_flag(LacpStateFlag.LACP_ACTIVITY, lag.active_mode)
        info.set_actor_state_flag(LacpStateFlag.LACP_TIMEOUT, lag.lacp_rate == 1)
        info.actor_key_val = lag.actor_admin_key

    @staticmethod
    def _update_ntt(info: LacpPortInfo) -> None:
        if info.lacp_enabled and info.port_enabled:
            info.ntt_event = True

    # --- queries ---

    def is_port_in_lag(self, port_id: int) -> bool:
        return port_id in self._port_to_lag

    def get_lag_for_port(self, port_id: int) -> int | None:
        return self._port_to_lag.get(port_id)

    def get_lag_config(self, lag_id: int) -> LagConfig | None:
        lag = self._lags.get(lag_id)
        return copy.deepcopy(lag) if lag is not None else None

    def get_all_lags(self) -> dict[int, LagConfig]:
        return {lag_id: copy.deepcopy(self._lags[lag_id]) for lag_id in sorted(self._lags)}

    def get_port_lacp_info(self, port_id: int) -> LacpPortInfo | None:
        info = self._port_info.get(port_id)
        return copy.deepcopy(info) if info is not None else None

    # --- forwarding ---

    def select_egress_port(self, lag_id: int, frame: FrameLike) -> int | None:
        """Pick the member port that carries a frame sent to a LAG.

        The frame is hashed with the LAG's hash mode and the hash picks one
        of the distributing members. Returns None when no member is
        distributing. Raises KeyError for an unknown LAG and ValueError for
        a frame without a complete Ethernet header.
        """
        lag = self._lags.get(lag_id)
        if lag is None:
            raise KeyError(f"LAG {lag_id} does not exist")
        members = lag.active_distributing_members
        if not members:
            logger.warning("LAG %d has no distributing members", lag_id)
            return None
        parsed = frame if isinstance(frame, ParsedFrame) else parse_frame(frame)
        hash_value = compute_hash(parsed, lag.hash_mode)
        index = hash_value % len(members)
        selected = members[index]
        logger.debug(
            "LAG %d: hash %d selects member index %d (port %d) of %d",
            lag_id,
            hash_value,
            index,
            selected,
            len(members),
        )
        return selected

    # --- configuration ---

    def set_actor_system_priority(self, priority: int) -> None:
        """Change the system priority; every port takes the new system ID."""
        if not 0 <= priority <= _U16_MASK:
            raise ValueError(f"system priority {priority} does not fit in 16 bits")
        self._system_priority = priority
        system_id = self.actor_system_id
        logger.info("actor system priority %d, system ID 0x%016x", priority, system_id)
        for info in self._port_info.values():
            info.actor_system_id_val = system_id
            self._update_ntt(info)

    def set_port_lacp_priority(self, port_id: int, priority: int) -> None:
        """Set the LACP port priority of a LAG member. Raises KeyError if unknown."""
        if not 0 <= priority <= _U16_MASK:
            raise ValueError(f"port priority {priority} does not fit in 16 bits")
        info = self._port_info.get(port_id)
        if info is None:
            raise KeyError(f"port {port_id} has no LACP state")
        info.port_priority_val = priority
        info.actor_port_id_val = port_id & _U16_MASK
        logger.info("port %d LACP priority set to %d", port_id, priority)
        self._update_ntt(info)

    def configure_lag_setting(self, lag_id: int, modifier: Callable[[LagConfig], None]) -> bool:
        """Let ``modifier`` change a LAG's settings in place, then refresh its members.

        Returns False if the LAG does not exist.
        """
        lag = self._lags.get(lag_id)
        if lag is None:
            logger.warning("cannot configure unknown LAG %d", lag_id)
            return False
        modifier(lag)
        for port_id in lag.member_ports:
            info = self._port_info.get(port_id)
            if info is not None:
                self._apply_lag_settings(info, lag)
                self._update_ntt(info)
        logger.info("LAG %d configuration updated", lag_id)
        return True