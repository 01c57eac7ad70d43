"""Software switch building blocks: frame parsing, interfaces, QoS queues, LACP and ICMP."""

__version__ = "0.1.0"