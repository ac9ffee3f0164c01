"""GPIO port backed by gpiozero output devices."""

import logging
from typing import Any

from gpiozero import DigitalInputDevice, DigitalOutputDevice, GPIOZeroError

from .base import GPIOPort, TransportError


logger = logging.getLogger(__name__)


class HardwareGPIO(GPIOPort):
    """
    Pin access through gpiozero.

    gpiozero picks its pin factory (lgpio, RPi.GPIO, pigpio) from the
    environment, so this adapter only deals in pin numbers.
    """

    def open(self, pin: int, direction: str = "output") -> Any:
        try:
            if direction == "output":
                device = DigitalOutputDevice(pin, initial_value=False)
            elif direction == "input":
                device = DigitalInputDevice(pin)
            else:
                raise TransportError(f"Unknown GPIO direction '{direction}'")
        except (GPIOZeroError, OSError) as e:
            raise TransportError(f"GPIO {pin} open failed: {e}") from e
        logger.debug(f"Opened GPIO {pin} as {direction}")
        return device

    def write(self, handle: Any, value: int) -> None:
        try:
            if value:
                handle.on()
            else:
                handle.off()
        except (GPIOZeroError, OSError) as e:
            raise TransportError(f"GPIO write failed: {e}") from e

    def close(self, handle: Any) -> None:
        try:
            handle.close()
        except (GPIOZeroError, OSError) as e:
            raise TransportError(f"GPIO close failed: {e}") from e
