"""
Mock bus ports for testing and development.

Simulate GPIO, I2C and SPI without hardware. Every write is recorded so tests
can assert on the exact byte sequence a driver produced, and the
`fail_open` / `fail_writes` switches let tests inject transport failures.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .base import GPIOPort, I2CPort, SPIPort, TransportError


logger = logging.getLogger(__name__)


@dataclass
class MockHandle:
    name: Any
    options: Dict[str, Any] = field(default_factory=dict)
    closed: bool = False


class _MockPort:
    def __init__(self) -> None:
        self.fail_open = False
        self.fail_writes = False
        self.opened: List[MockHandle] = []

    def _open(self, name: Any, **options: Any) -> MockHandle:
        if self.fail_open:
            raise TransportError(f"[MOCK] open of {name} failed")
        handle = MockHandle(name=name, options=options)
        self.opened.append(handle)
        return handle

    def _check_writable(self, handle: MockHandle) -> None:
        if self.fail_writes:
            raise TransportError(f"[MOCK] write to {handle.name} failed")
        if handle.closed:
            raise TransportError(f"[MOCK] {handle.name} is closed")

    def close(self, handle: MockHandle) -> None:
        handle.closed = True
        logger.debug(f"[MOCK] Closed {handle.name}")

    @property
    def open_handles(self) -> List[MockHandle]:
        return [h for h in self.opened if not h.closed]


class MockGPIO(_MockPort, GPIOPort):
    """Records (pin, value) for every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: List[Tuple[int, int]] = []

    def open(self, pin: int, direction: str = "output") -> MockHandle:
        handle = self._open(pin, direction=direction)
        logger.debug(f"[MOCK] Opened GPIO {pin} as {direction}")
        return handle

    def write(self, handle: MockHandle, value: int) -> None:
        self._check_writable(handle)
        self.writes.append((handle.name, 1 if value else 0))

    def level(self, pin: int) -> int:
        """Last value written to a pin (0 if never written)."""
        for written_pin, value in reversed(self.writes):
            if written_pin == pin:
                return value
        return 0


class MockI2C(_MockPort, I2CPort):
    """Records (bus_name, address, data) for every transaction."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: List[Tuple[str, int, bytes]] = []

    def open(self, bus_name: str) -> MockHandle:
        handle = self._open(bus_name)
        logger.info(f"[MOCK] Opened I2C bus {bus_name}")
        return handle

    def write(self, handle: MockHandle, address: int, data: bytes) -> None:
        self._check_writable(handle)
        self.writes.append((handle.name, address, bytes(data)))

    def frames(self, address: int) -> List[bytes]:
        return [data for _, addr, data in self.writes if addr == address]


class MockSPI(_MockPort, SPIPort):
    """Records (bus_name, data) for every transfer and echoes zeros back."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: List[Tuple[str, bytes]] = []

    def open(self, bus_name: str, **options: Any) -> MockHandle:
        handle = self._open(bus_name, **options)
        logger.info(f"[MOCK] Opened SPI device {bus_name}")
        return handle

    def transfer(self, handle: MockHandle, data: bytes) -> bytes:
        self._check_writable(handle)
        self.writes.append((handle.name, bytes(data)))
        return bytes(len(data))
