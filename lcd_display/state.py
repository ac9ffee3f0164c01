"""
Immutable per-display state.

A DisplayState is created by a driver's start(), replaced by every executed
command and discarded when its controller stops. Flag registers are kept as
the exact byte last written to the controller so toggling one feature only
ever touches its own bit.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .instructions import (
    DEFAULT_DISPLAY_CONTROL,
    DEFAULT_ENTRY_MODE,
    DISPLAY_CONTROL,
    ENTRY_MODE_SET,
)
from .validation import ValidationError, validate_dimensions, validate_font_size


@dataclass(frozen=True)
class DisplayState:
    """
    Configuration, bus handles and feature flags of one running display.

    Attributes:
        driver_kind: Registered driver name (e.g. "pcf8574")
        display_name: Name distinguishing displays of the same kind
        rows: Number of character rows (1-4)
        cols: Number of character columns (8-20)
        font_size: "5x8" or "5x10"
        bus: Opened I2C/SPI handle, or None for direct GPIO
        pins: Role -> opened GPIO handle (e.g. "rs", "en", "d4")
        address: I2C device address, None when not on I2C
        entry_mode: Last entry-mode instruction byte
        display_control: Last display-control instruction byte
        backlight: Backlight asserted
        red, green, blue: RGB backlight channels
    """

    driver_kind: str
    display_name: str
    rows: int
    cols: int
    font_size: str = "5x8"
    bus: Any = field(default=None, compare=False, repr=False)
    pins: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    address: Optional[int] = None
    entry_mode: int = DEFAULT_ENTRY_MODE
    display_control: int = DEFAULT_DISPLAY_CONTROL
    backlight: bool = True
    red: bool = True
    green: bool = True
    blue: bool = True

    def __post_init__(self):
        validate_dimensions(self.rows, self.cols)
        validate_font_size(self.font_size)
        if self.entry_mode & ~0x03 != ENTRY_MODE_SET:
            raise ValidationError(f"Invalid entry mode register 0x{self.entry_mode:02X}")
        if self.display_control & ~0x07 != DISPLAY_CONTROL:
            raise ValidationError(
                f"Invalid display control register 0x{self.display_control:02X}"
            )

    @property
    def identity(self) -> tuple:
        return (self.driver_kind, self.display_name)

    def with_entry_flag(self, flag: int, on: bool) -> "DisplayState":
        mode = self.entry_mode | flag if on else self.entry_mode & ~flag
        return replace(self, entry_mode=mode)

    def with_control_flag(self, flag: int, on: bool) -> "DisplayState":
        control = self.display_control | flag if on else self.display_control & ~flag
        return replace(self, display_control=control)

    def with_changes(self, **changes) -> "DisplayState":
        return replace(self, **changes)
