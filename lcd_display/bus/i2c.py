"""I2C port backed by smbus2."""

import logging
import re
from typing import Any

from smbus2 import SMBus, i2c_msg

from .base import I2CPort, TransportError


logger = logging.getLogger(__name__)

_BUS_NAME = re.compile(r"^(?:/dev/)?i2c-(\d+)$")


def parse_i2c_bus(bus_name: str) -> int:
    """Map "i2c-1" or "/dev/i2c-1" to the bus number 1."""
    match = _BUS_NAME.match(str(bus_name))
    if not match:
        raise TransportError(f"Unrecognised I2C bus name '{bus_name}'")
    return int(match.group(1))


class HardwareI2C(I2CPort):
    def open(self, bus_name: str) -> Any:
        number = parse_i2c_bus(bus_name)
        try:
            bus = SMBus(number)
        except OSError as e:
            raise TransportError(f"I2C bus {bus_name} open failed: {e}") from e
        logger.info(f"Opened I2C bus {bus_name}")
        return bus

    def write(self, handle: Any, address: int, data: bytes) -> None:
        # A plain write message keeps multi-byte frames in one transaction
        # without forcing an SMBus register byte.
        try:
            handle.i2c_rdwr(i2c_msg.write(address, bytes(data)))
        except OSError as e:
            raise TransportError(
                f"I2C write to 0x{address:02X} failed: {e}"
            ) from e

    def close(self, handle: Any) -> None:
        try:
            handle.close()
        except OSError as e:
            raise TransportError(f"I2C close failed: {e}") from e
