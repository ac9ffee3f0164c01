"""
MCP23008/MCP23017 I2C expander drivers.

MCP23008 (Adafruit I2C/SPI backpack):

| GP7       | GP6 | GP5 | GP4 | GP3 | GP2 | GP1 | GP0 |
| backlight | D7  | D6  | D5  | D4  | E   | RS  | -   |

MCP23017 (Adafruit RGB LCD shield), LEDs are active low:

| GPA7  | GPA6 | GPB7 | GPB5 | GPB4 | GPB3 | GPB2 | GPB1 | GPB0 |
| green | red  | RS   | E    | D4   | D5   | D6   | D7   | blue |
"""

from typing import ClassVar

from ..hd44780 import I2CExpanderDriver
from ..state import DisplayState

# MCP23008 registers (IOCON.BANK = 0)
MCP23008_IODIR = 0x00
MCP23008_GPIO = 0x09

# MCP23017 registers (IOCON.BANK = 0)
MCP23017_IODIRA = 0x00
MCP23017_IODIRB = 0x01
MCP23017_GPIOA = 0x12
MCP23017_GPIOB = 0x13

ALL_OUTPUTS = 0x00


class MCP23008Driver(I2CExpanderDriver):
    kind: ClassVar[str] = "mcp23008"
    default_address: ClassVar[int] = 0x20

    RS_BIT = 0x02
    ENABLE_BIT = 0x04
    BACKLIGHT_BIT = 0x80

    def _configure(self, state: DisplayState) -> None:
        self.ports.i2c.write(state.bus, state.address, bytes([MCP23008_IODIR, ALL_OUTPUTS]))

    def pack_nibble(
        self, nibble: int, register_select: bool, enable: bool, backlight: bool
    ) -> int:
        byte = (nibble & 0x0F) << 3
        if register_select:
            byte |= self.RS_BIT
        if enable:
            byte |= self.ENABLE_BIT
        if backlight:
            byte |= self.BACKLIGHT_BIT
        return byte

    def _frame(self, state: DisplayState, byte: int) -> bytes:
        return bytes([MCP23008_GPIO, byte])


class MCP23017Driver(I2CExpanderDriver):
    """RGB backlight shield; blue shares GPIOB with the LCD lines."""

    kind: ClassVar[str] = "mcp23017"
    default_address: ClassVar[int] = 0x20
    supports_rgb: ClassVar[bool] = True

    RS_BIT = 0x80
    ENABLE_BIT = 0x20
    BLUE_BIT = 0x01
    RED_BIT = 0x40
    GREEN_BIT = 0x80
    # GPB4..GPB1 carry D4..D7 in reverse order
    DATA_BITS = (0x10, 0x08, 0x04, 0x02)

    def _configure(self, state: DisplayState) -> None:
        self.ports.i2c.write(state.bus, state.address, bytes([MCP23017_IODIRA, ALL_OUTPUTS]))
        self.ports.i2c.write(state.bus, state.address, bytes([MCP23017_IODIRB, ALL_OUTPUTS]))

    def _backlight_level(self, state: DisplayState) -> bool:
        return state.backlight and state.blue

    def pack_nibble(
        self, nibble: int, register_select: bool, enable: bool, backlight: bool
    ) -> int:
        byte = 0
        for bit, mask in enumerate(self.DATA_BITS):
            if nibble & (1 << bit):
                byte |= mask
        if register_select:
            byte |= self.RS_BIT
        if enable:
            byte |= self.ENABLE_BIT
        if not backlight:
            byte |= self.BLUE_BIT
        return byte

    def pack_red_green(self, state: DisplayState) -> int:
        """GPIOA value for the red and green LEDs."""
        byte = 0
        if not (state.backlight and state.red):
            byte |= self.RED_BIT
        if not (state.backlight and state.green):
            byte |= self.GREEN_BIT
        return byte

    def _frame(self, state: DisplayState, byte: int) -> bytes:
        return bytes([MCP23017_GPIOB, byte])

    def _apply_backlight(self, state: DisplayState) -> None:
        self.ports.i2c.write(
            state.bus, state.address, bytes([MCP23017_GPIOA, self.pack_red_green(state)])
        )
        super()._apply_backlight(state)
