[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netflowpp"
version = "0.1.0"
description = "Software switch building blocks: Ethernet frame parsing, port management, QoS queues, link aggregation and ICMP replies and errors"
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "switch", "ethernet", "lacp", "link-aggregation", "qos", "icmp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["netflowpp"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
