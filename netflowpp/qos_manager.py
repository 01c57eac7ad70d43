"""Per-port egress queues with packet classification and strict-priority scheduling."""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from netflowpp.frames import ParsedFrame

logger = logging.getLogger(__name__)

MAX_QUEUE_DEPTH = 1000
_MAX_QUEUES = 255


class SchedulerType(Enum):
    """How queued packets of one port are chosen for transmission."""

    STRICT_PRIORITY = "strict_priority"
    WEIGHTED_ROUND_ROBIN = "weighted_round_robin"
    DEFICIT_ROUND_ROBIN = "deficit_round_robin"


@dataclass
class QosConfig:
    """Queue count, scheduler and per-queue weights and rate limits of one port.

    A rate limit of 0 means the queue is not limited.
    """

    num_queues: int = 4
    scheduler: SchedulerType = SchedulerType.STRICT_PRIORITY
    queue_weights: list[int] = field(default_factory=list)
    rate_limits_kbps: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 0 <= self.num_queues <= _MAX_QUEUES:
            raise ValueError(
                f"num_queues must be between 0 and {_MAX_QUEUES}, got {self.num_queues}"
            )

    def validate_and_prepare(self) -> None:
        """Size the weight and rate lists to the queue count.

        Missing weights default to 1, missing rate limits to 0; extra
        entries are dropped.
        """
        self.queue_weights = _resized(self.queue_weights, self.num_queues, 1)
        self.rate_limits_kbps = _resized(self.rate_limits_kbps, self.num_queues, 0)


def _resized(values: list[int], size: int, fill: int) -> list[int]:
    return list(values[:size]) + [fill] * max(0, size - len(values))


class QosManager:
    """Holds QoS settings and packet queues for each configured port."""

    def __init__(self) -> None:
        self._configs: dict[int, QosConfig] = {}
        self._queues: dict[int, list[deque[ParsedFrame]]] = {}

    def configure_port_qos(self, port_id: int, config: QosConfig) -> None:
        """Apply a configuration to a port, replacing its queues with empty ones."""
        prepared = copy.deepcopy(config)
        prepared.validate_and_prepare()
        self._configs[port_id] = prepared
        self._queues[port_id] = [deque() for _ in range(prepared.num_queues)]
        logger.info(
            "QoS configured for port %d with %d queues", port_id, prepared.num_queues
        )

    def get_port_qos_config(self, port_id: int) -> QosConfig | None:
        config = self._configs.get(port_id)
        return copy.deepcopy(config) if config is not None else None

    def classify_packet_to_queue(self, frame: ParsedFrame, port_id: int) -> int:
        """Pick the queue for a frame; queue 0 is the highest priority.

        Under strict priority the VLAN PCP selects the queue; everything
        else goes to queue 0.
        """
        config = self._configs.get(port_id)
        if config is None or config.num_queues == 0:
            return 0
        pcp = frame.vlan_priority
        if pcp is not None and config.scheduler is SchedulerType.STRICT_PRIORITY:
            if pcp >= 6:
                level = 0
            elif pcp >= 4:
                level = 1
            elif pcp >= 2:
                level = 2
            else:
                level = 3
            return level % config.num_queues
        return 0

    def enqueue_packet(self, frame: ParsedFrame, port_id: int, queue_id: int) -> bool:
        """Append a frame to a queue of a port.

        Returns False, and keeps nothing, if the port has no QoS
        configuration, the queue does not exist or the queue is full.
        """
        queues = self._queues.get(port_id)
        if port_id not in self._configs or queues is None:
            return False
        if not 0 <= queue_id < len(queues):
            return False
        queue = queues[queue_id]
        if len(queue) >= MAX_QUEUE_DEPTH:
            logger.debug("port %d queue %d full; frame dropped", port_id, queue_id)
            return False
        queue.append(frame)
        return True

    def dequeue_packet(self, port_id: int) -> ParsedFrame | None:
        """Take the next frame to send from a port.

        Only strict priority scheduling hands out frames: the oldest frame
        of the lowest-numbered non-empty queue. Returns None when nothing
        is queued, the port is unconfigured or its scheduler is another one.
        """
        config = self._configs.get(port_id)
        queues = self._queues.get(port_id)
        if config is None or config.num_queues == 0 or queues is None:
            return None
        if config.scheduler is not SchedulerType.STRICT_PRIORITY:
            return None
        for queue in queues:
            if queue:
                return queue.popleft()
        return None

    def should_transmit(self, port_id: int, queue_id: int) -> bool:
        """True if the given queue of the port holds at least one frame."""
        queues = self._queues.get(port_id)
        if queues is None or not 0 <= queue_id < len(queues):
            return False
        return bool(queues[queue_id])

    def queue_depth(self, port_id: int, queue_id: int) -> int:
        queues = self._queues.get(port_id)
        if queues is None or not 0 <= queue_id < len(queues):
            return 0
        return len(queues[queue_id])