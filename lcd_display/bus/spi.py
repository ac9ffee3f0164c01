"""SPI port backed by spidev."""

import logging
import re
from typing import Any, Tuple

import spidev

from .base import SPIPort, TransportError


logger = logging.getLogger(__name__)

_DEVICE_NAME = re.compile(r"^(?:/dev/)?spidev(\d+)\.(\d+)$")

DEFAULT_SPEED_HZ = 1_000_000


def parse_spi_device(bus_name: str) -> Tuple[int, int]:
    """Map "spidev0.1" to (bus 0, chip select 1)."""
    match = _DEVICE_NAME.match(str(bus_name))
    if not match:
        raise TransportError(f"Unrecognised SPI device name '{bus_name}'")
    return int(match.group(1)), int(match.group(2))


class HardwareSPI(SPIPort):
    def open(self, bus_name: str, **options: Any) -> Any:
        port, device = parse_spi_device(bus_name)
        spi = spidev.SpiDev()
        try:
            spi.open(port, device)
            spi.max_speed_hz = int(options.get("max_speed_hz") or DEFAULT_SPEED_HZ)
            spi.mode = int(options.get("mode") or 0)
        except OSError as e:
            spi.close()
            raise TransportError(f"SPI device {bus_name} open failed: {e}") from e
        logger.info(
            f"Opened SPI {bus_name} at {spi.max_speed_hz / 1_000_000:.1f} MHz, mode {spi.mode}"
        )
        return spi

    def transfer(self, handle: Any, data: bytes) -> bytes:
        try:
            return bytes(handle.xfer2(list(data)))
        except OSError as e:
            raise TransportError(f"SPI transfer failed: {e}") from e

    def close(self, handle: Any) -> None:
        try:
            handle.close()
        except OSError as e:
            raise TransportError(f"SPI close failed: {e}") from e
