"""
SN74HC595 shift register driver (SPI).

| QH        | QG | QF | QE | QD | QC | QB | QA |
| backlight | D4 | D5 | D6 | D7 | E  | RS | -  |
"""

from typing import Any, ClassVar, Mapping

from ..config import DisplaySettings
from ..hd44780 import ExpanderDriver
from ..state import DisplayState
from ..validation import config_int

RS_BIT = 0x02
ENABLE_BIT = 0x04
BACKLIGHT_BIT = 0x80
# QG..QD carry D4..D7
DATA_BITS = (0x40, 0x20, 0x10, 0x08)


class SN74HC595Driver(ExpanderDriver):
    kind: ClassVar[str] = "sn74hc595"
    default_bus: ClassVar[str] = "spidev0.0"

    @classmethod
    def default_display_name(cls, config: Mapping[str, Any]) -> str:
        return str(config.get("spi_bus") or cls.default_bus)

    def _open(self, config: Mapping[str, Any], settings: DisplaySettings) -> DisplayState:
        bus_name = str(config.get("spi_bus") or self.default_bus)
        options = {}
        speed_hz = config_int(config, "spi_speed_hz", self.kind)
        if speed_hz is not None:
            options["max_speed_hz"] = speed_hz
        mode = config_int(config, "spi_mode", self.kind)
        if mode is not None:
            options["mode"] = mode

        handle = self.ports.spi.open(bus_name, **options)
        return DisplayState(
            driver_kind=self.kind,
            display_name=self.display_name_for(config),
            rows=settings.rows,
            cols=settings.cols,
            font_size=settings.font_size,
            bus=handle,
        )

    def pack_nibble(
        self, nibble: int, register_select: bool, enable: bool, backlight: bool
    ) -> int:
        byte = 0
        for bit, mask in enumerate(DATA_BITS):
            if nibble & (1 << bit):
                byte |= mask
        if register_select:
            byte |= RS_BIT
        if enable:
            byte |= ENABLE_BIT
        if backlight:
            byte |= BACKLIGHT_BIT
        return byte

    def _transmit(self, state: DisplayState, byte: int) -> None:
        self.ports.spi.transfer(state.bus, bytes([byte]))

    def _close(self, state: DisplayState) -> None:
        self.ports.spi.close(state.bus)
