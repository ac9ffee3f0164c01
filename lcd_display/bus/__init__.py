"""Bus ports: abstract primitives, hardware adapters and mocks."""

import logging
from typing import Optional

from ..config import LcdConfig
from .base import BusPorts, GPIOPort, I2CPort, SPIPort, TransportError
from .mock import MockGPIO, MockI2C, MockSPI

logger = logging.getLogger(__name__)

__all__ = [
    "BusPorts",
    "GPIOPort",
    "I2CPort",
    "SPIPort",
    "TransportError",
    "create_ports",
    "mock_ports",
    "ports_for_config",
]


def mock_ports() -> BusPorts:
    return BusPorts(gpio=MockGPIO(), i2c=MockI2C(), spi=MockSPI())


def create_ports(use_hardware: Optional[bool] = False) -> BusPorts:
    """
    Factory function to create the bus port bundle.

    Hardware adapters are imported only when requested so the package works
    on machines without gpiozero pin factories or spidev.

    Args:
        use_hardware: Real buses (True) or in-memory mocks (False)

    Returns:
        BusPorts: Hardware or mock implementations
    """
    if use_hardware:
        from .gpio import HardwareGPIO
        from .i2c import HardwareI2C
        from .spi import HardwareSPI

        logger.info("Creating hardware bus ports")
        return BusPorts(gpio=HardwareGPIO(), i2c=HardwareI2C(), spi=HardwareSPI())

    logger.info("Creating mock bus ports")
    return mock_ports()


def ports_for_config(lcd_config: LcdConfig, use_hardware: Optional[bool] = None) -> BusPorts:
    """
    Choose bus ports for a loaded configuration.

    If `use_hardware` is None, we invert `lcd_config.bus.mock` to decide.
    """
    if use_hardware is None:
        use_hardware = not lcd_config.bus.mock
    return create_ports(use_hardware)
