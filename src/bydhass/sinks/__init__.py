"""Downstream sinks: Home Assistant over MQTT and ABRP."""

from bydhass.sinks.abrp import AbrpSink, build_telemetry
from bydhass.sinks.base import Sink
from bydhass.sinks.mqtt import HomeAssistantSink

__all__ = ["AbrpSink", "HomeAssistantSink", "Sink", "build_telemetry"]
