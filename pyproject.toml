[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rproxy"
version = "0.1.0"
description = "Building blocks for a Redis proxy: server requests, key hashing, data-center read policy, latency monitors, logging and socket multiplexing"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "proxy", "resp", "latency", "crc16", "multiplexor", "epoll", "kqueue"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rproxy"]

[tool.pytest.ini_options]
addopts = "-ra"
