"""
PCF8574/PCF8575 "I2C backpack" drivers.

Pin assignment of the common backpack boards (port 0):

| P7 | P6 | P5 | P4 | P3        | P2 | P1 | P0 |
| D7 | D6 | D5 | D4 | backlight | E  | RW | RS |
"""

from typing import ClassVar

from ..hd44780 import I2CExpanderDriver
from ..state import DisplayState

RS_BIT = 0x01
ENABLE_BIT = 0x04
BACKLIGHT_BIT = 0x08


class PCF8574Driver(I2CExpanderDriver):
    kind: ClassVar[str] = "pcf8574"
    default_address: ClassVar[int] = 0x27

    def pack_nibble(
        self, nibble: int, register_select: bool, enable: bool, backlight: bool
    ) -> int:
        byte = (nibble & 0x0F) << 4
        if register_select:
            byte |= RS_BIT
        if enable:
            byte |= ENABLE_BIT
        if backlight:
            byte |= BACKLIGHT_BIT
        return byte


class PCF8575Driver(PCF8574Driver):
    """16-bit variant: the LCD sits on port 0, port 1 is held low."""

    kind: ClassVar[str] = "pcf8575"

    def _frame(self, state: DisplayState, byte: int) -> bytes:
        return bytes([byte, 0x00])
