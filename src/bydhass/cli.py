"""Command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

import aiohttp

from bydhass import __version__
from bydhass._mqtt import MqttConnection, parse_broker_url
from bydhass._redact import redact_url
from bydhass._transport import HttpTransport, Transport
from bydhass.config import BridgeConfig
from bydhass.engine import SyncEngine
from bydhass.exceptions import BydHassConfigError
from bydhass.sinks import AbrpSink, HomeAssistantSink
from bydhass.sources import DiplusClient, FileLocationProvider

_logger = logging.getLogger("bydhass")


def build_parser(defaults: BridgeConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bydhass",
        description="Bridge BYD Di-Plus telemetry to Home Assistant (MQTT) and ABRP.",
    )
    parser.add_argument(
        "--mqtt-url",
        default=defaults.mqtt_url,
        help="MQTT broker URL (mqtt://, mqtts://, ws://, wss://)",
    )
    parser.add_argument("--diplus-url", default=defaults.diplus_url, help="Di-Plus host:port")
    parser.add_argument("--abrp-api-key", default=defaults.abrp_api_key, help="ABRP API key")
    parser.add_argument("--abrp-token", default=defaults.abrp_token, help="ABRP user token")
    parser.add_argument("--device-id", default=defaults.device_id, help="Device identifier used in MQTT topics")
    parser.add_argument(
        "--discovery-prefix",
        default=defaults.discovery_prefix,
        help="Home Assistant MQTT discovery prefix",
    )
    parser.add_argument(
        "--disable-location",
        action="store_true",
        default=not defaults.location_enabled,
        help="Do not attach GPS fixes to snapshots",
    )
    parser.add_argument("--verbose", "-v", action="store_true", default=defaults.verbose, help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(argv: Sequence[str] | None = None) -> BridgeConfig:
    """Environment first, then command-line flags on top."""
    defaults = BridgeConfig.from_env()
    args = build_parser(defaults).parse_args(argv)
    return BridgeConfig.from_env(
        mqtt_url=args.mqtt_url or None,
        diplus_url=args.diplus_url,
        abrp_api_key=args.abrp_api_key or None,
        abrp_token=args.abrp_token or None,
        device_id=args.device_id,
        discovery_prefix=args.discovery_prefix,
        location_enabled=not args.disable_location,
        verbose=args.verbose,
    ).validate()


async def add_configured_sinks(
    engine: SyncEngine,
    config: BridgeConfig,
    transport: Transport,
) -> MqttConnection | None:
    """Register every sink *config* enables on *engine*.

    Returns the started MQTT connection, or ``None`` when MQTT is off. The
    broker gets ``mqtt_connect_timeout`` to accept the connection so the
    startup transmit is not spent on a client that is still connecting.
    """
    mqtt_connection: MqttConnection | None = None
    if config.mqtt_url:
        mqtt_connection = MqttConnection(
            parse_broker_url(config.mqtt_url),
            f"byd-hass-{config.device_id}",
            publish_timeout=config.mqtt_timeout,
        )
        engine.add_sink(
            HomeAssistantSink(mqtt_connection, config.device_id, discovery_prefix=config.discovery_prefix),
            interval=config.mqtt_interval,
            timeout=config.mqtt_timeout,
        )
        mqtt_connection.start()
        _logger.info("MQTT sink enabled broker=%s", redact_url(config.mqtt_url))
        try:
            connected = await mqtt_connection.wait_until_connected(config.mqtt_connect_timeout)
        except BaseException:
            mqtt_connection.stop()
            raise
        if not connected:
            _logger.warning(
                "MQTT broker not connected after %.0fs; publishing once it is",
                config.mqtt_connect_timeout,
            )

    if config.abrp_api_key and config.abrp_token:
        engine.add_sink(
            AbrpSink(config.abrp_api_key, config.abrp_token, transport),
            interval=config.abrp_interval,
            timeout=config.abrp_timeout,
        )
        _logger.info("ABRP sink enabled")

    if not engine.schedulers:
        _logger.warning("No sinks configured; telemetry will be polled and cached only")
    return mqtt_connection


async def run(config: BridgeConfig) -> None:
    """Wire the source, enrichment and sinks into a :class:`SyncEngine` and run until signalled."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with aiohttp.ClientSession() as http_session:
        transport = HttpTransport(http_session)
        source = DiplusClient(config.diplus_endpoint, transport)
        enricher = FileLocationProvider(config.gps_file) if config.location_enabled else None
        engine = SyncEngine.from_config(config, source, enricher=enricher)
        mqtt_connection = await add_configured_sinks(engine, config, transport)

        try:
            await engine.run(stop)
        finally:
            if mqtt_connection is not None:
                mqtt_connection.stop()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        config = config_from_args(argv)
    except BydHassConfigError as exc:
        print(f"bydhass: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _logger.info(
        "Starting bydhass %s device=%s diplus=%s location=%s",
        __version__,
        config.device_id,
        config.diplus_endpoint,
        "on" if config.location_enabled else "off",
    )

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        _logger.info("Interrupted")
    return 0
