"""
Bus Port I/O Boundary

Abstract GPIO, I2C and SPI primitives consumed by the display drivers.
Drivers never open hardware themselves: a BusPorts bundle is injected so the
same driver code runs against real buses or the in-memory mocks.

All methods are synchronous; controllers run drivers in worker threads.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class TransportError(Exception):
    """Raised when opening, writing to or closing a bus fails."""

    pass


class GPIOPort(ABC):
    """Single-pin digital I/O."""

    @abstractmethod
    def open(self, pin: int, direction: str = "output") -> Any:
        """
        Claim a pin.

        Args:
            pin: Pin number (BCM numbering on a Raspberry Pi)
            direction: "output" or "input"

        Returns:
            Opaque pin handle

        Raises:
            TransportError: If the pin cannot be claimed
        """
        pass

    @abstractmethod
    def write(self, handle: Any, value: int) -> None:
        """Drive a pin low (0) or high (1)."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        pass


class I2CPort(ABC):
    """I2C bus master."""

    @abstractmethod
    def open(self, bus_name: str) -> Any:
        """
        Open an I2C bus by name (e.g. "i2c-1").

        Raises:
            TransportError: If the bus cannot be opened
        """
        pass

    @abstractmethod
    def write(self, handle: Any, address: int, data: bytes) -> None:
        """
        Write one transaction to a device.

        Raises:
            TransportError: If the device does not acknowledge
        """
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        pass


class SPIPort(ABC):
    """SPI bus master."""

    @abstractmethod
    def open(self, bus_name: str, **options: Any) -> Any:
        """
        Open an SPI device by name (e.g. "spidev0.0").

        Args:
            bus_name: Device name
            **options: max_speed_hz, mode

        Raises:
            TransportError: If the device cannot be opened
        """
        pass

    @abstractmethod
    def transfer(self, handle: Any, data: bytes) -> bytes:
        """Full-duplex transfer; returns the bytes clocked in."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        pass


@dataclass(frozen=True)
class BusPorts:
    """The bus implementations available to drivers."""

    gpio: GPIOPort
    i2c: I2CPort
    spi: SPIPort
