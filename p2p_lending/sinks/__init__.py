"""Output sinks for lending events and snapshots."""

from p2p_lending.sinks.console import ConsoleSink
from p2p_lending.sinks.json_file import JsonFileSink
from p2p_lending.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
