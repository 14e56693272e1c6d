"""Building blocks for a Redis proxy: enums, key hashing, data centers, latency monitors, logging, multiplexing, listening sockets and server requests."""

__version__ = "0.1.0"