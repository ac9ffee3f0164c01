"""
Direct parallel GPIO driver.

The LCD is wired to host pins in 4-bit mode. RW is optional (tie it to
ground or give `pin_rw`, which is held low); `pin_led` enables backlight
control.
"""

import logging
from typing import Any, ClassVar, Dict, Mapping, Optional

from ..bus import TransportError
from ..config import DisplaySettings
from ..hd44780 import HD44780Driver
from ..state import DisplayState
from ..validation import config_int


logger = logging.getLogger(__name__)

DATA_PINS = ("d4", "d5", "d6", "d7")


class GPIODriver(HD44780Driver):
    kind: ClassVar[str] = "gpio"
    required_keys: ClassVar[tuple] = (
        "display_name",
        "pin_rs",
        "pin_en",
        "pin_d4",
        "pin_d5",
        "pin_d6",
        "pin_d7",
    )
    optional_pins: ClassVar[tuple] = ("pin_rw", "pin_led")
    byte_settle_s: ClassVar[float] = 0.0001

    def _open(self, config: Mapping[str, Any], settings: DisplaySettings) -> DisplayState:
        gpio = self.ports.gpio
        # Every pin number is checked before the first one is claimed
        numbers = {
            key[len("pin_"):]: config_int(config, key, self.kind)
            for key in self.required_keys[1:] + self.optional_pins
            if config.get(key) is not None
        }

        pins: Dict[str, Any] = {}
        try:
            for role, number in numbers.items():
                pins[role] = gpio.open(number, "output")
            for role in ("rs", "en", "rw"):
                if role in pins:
                    gpio.write(pins[role], 0)
        except TransportError:
            self._close_pins(pins)
            raise

        return DisplayState(
            driver_kind=self.kind,
            display_name=self.display_name_for(config),
            rows=settings.rows,
            cols=settings.cols,
            font_size=settings.font_size,
            pins=pins,
        )

    def supports_backlight(self, state: DisplayState) -> bool:
        return "led" in state.pins

    def _send(self, state: DisplayState, byte: int, register_select: bool) -> None:
        self.ports.gpio.write(state.pins["rs"], 1 if register_select else 0)
        self._sleep(self.byte_settle_s)
        super()._send(state, byte, register_select)

    def _write_nibble(self, state: DisplayState, nibble: int, register_select: bool) -> None:
        gpio = self.ports.gpio
        for bit, role in enumerate(DATA_PINS):
            gpio.write(state.pins[role], (nibble >> bit) & 1)
        gpio.write(state.pins["en"], 1)
        gpio.write(state.pins["en"], 0)

    def _apply_backlight(self, state: DisplayState) -> None:
        led = state.pins.get("led")
        if led is not None:
            self.ports.gpio.write(led, 1 if state.backlight else 0)

    def _close(self, state: DisplayState) -> None:
        self._close_pins(state.pins)

    def _close_pins(self, pins: Mapping[str, Any]) -> None:
        # Close every pin even if one fails, then report the first failure
        first_error: Optional[TransportError] = None
        for role, handle in pins.items():
            try:
                self.ports.gpio.close(handle)
            except TransportError as e:
                logger.warning(f"Closing GPIO pin '{role}' failed: {e}")
                first_error = first_error or e
        if first_error is not None:
            raise first_error
