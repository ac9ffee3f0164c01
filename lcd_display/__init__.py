"""
HD44780 character LCD package.

This package provides:
- Drivers for HD44780 displays on direct GPIO, PCF8574/PCF8575,
  MCP23008/MCP23017 and SN74HC595 backends
- Bus port abstractions with hardware (gpiozero, smbus2, spidev) and mock
  implementations
- An asyncio controller per display, a uniqueness registry and a supervisor
  with one-for-one crash recovery
- TOML configuration loading
"""

import time
from typing import Any, Callable, Mapping, Optional, Type, Union

from .bus import BusPorts, TransportError, create_ports, ports_for_config
from .commands import (
    Autoscroll,
    Backlight,
    Blink,
    Clear,
    Command,
    Cursor,
    DefineGlyph,
    Direction,
    Display,
    Home,
    LedChannel,
    Left,
    Print,
    RandomColor,
    Right,
    Scroll,
    SetCursor,
    SetLedColor,
    TextDirection,
    Write,
)
from .config import DisplaySpec, LcdConfig, default_config, load_from_toml
from .controller import ControllerError, ControllerExitedError, DisplayController
from .drivers import DRIVERS, resolve_driver
from .hd44780 import HD44780Driver
from .registry import ProcessRegistry
from .results import Error, Ok, Unsupported
from .state import DisplayState
from .supervisor import DisplaySupervisor
from .validation import ConfigError, MissingConfigKeyError, ValidationError

__version__ = "0.1.0"


async def start_display(
    driver_kind: Union[str, Type[HD44780Driver]],
    config: Mapping[str, Any],
    ports: Optional[BusPorts] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DisplayController:
    """
    Start a single unsupervised display controller.

    Args:
        driver_kind: Driver name or class
        config: Display configuration mapping
        ports: Bus ports (default: mock ports)
        sleep: Blocking wait passed to the driver

    Returns:
        DisplayController: Running controller; stop() it when done
    """
    driver_cls = resolve_driver(driver_kind)
    driver = driver_cls(ports or create_ports(use_hardware=False), sleep=sleep)
    return await DisplayController.start(driver, config)
