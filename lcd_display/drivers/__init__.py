"""HD44780 backends, keyed by driver kind."""

from typing import Dict, Type, Union

from ..hd44780 import HD44780Driver
from ..validation import ConfigError
from .gpio import GPIODriver
from .mcp230xx import MCP23008Driver, MCP23017Driver
from .pcf857x import PCF8574Driver, PCF8575Driver
from .sn74hc595 import SN74HC595Driver

DRIVERS: Dict[str, Type[HD44780Driver]] = {
    cls.kind: cls
    for cls in (
        GPIODriver,
        PCF8574Driver,
        PCF8575Driver,
        MCP23008Driver,
        MCP23017Driver,
        SN74HC595Driver,
    )
}


def resolve_driver(kind: Union[str, Type[HD44780Driver]]) -> Type[HD44780Driver]:
    """
    Look up a driver class by name, or pass a driver class through.

    Raises:
        ConfigError: If the name is unknown
    """
    if isinstance(kind, type) and issubclass(kind, HD44780Driver):
        return kind
    try:
        return DRIVERS[str(kind).lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown driver '{kind}'. Available: {', '.join(sorted(DRIVERS))}"
        ) from None


__all__ = [
    "DRIVERS",
    "GPIODriver",
    "MCP23008Driver",
    "MCP23017Driver",
    "PCF8574Driver",
    "PCF8575Driver",
    "SN74HC595Driver",
    "resolve_driver",
]
