"""
Cross-cutting validation logic for LCD display configuration.

This module provides validation functions for rules shared by every display
driver. Type-local invariants should remain in their respective dataclass
__post_init__ methods.

Cross-cutting rules validated here:
- Required wiring/addressing keys per driver
- Integer wiring/addressing values (pins, I2C addresses, SPI options)
- Display dimensions supported by the HD44780 address map
- Character font sizes
- Custom glyph (CGRAM) slot and bitmap shape
"""

from typing import Any, Iterable, Mapping, Optional, Sequence

# Supported geometry (HD44780 DDRAM map covers at most 4 rows of 20 columns)
MIN_ROWS = 1
MAX_ROWS = 4
MIN_COLS = 8
MAX_COLS = 20

FONT_SIZES = ("5x8", "5x10")

GLYPH_SLOTS = 8
GLYPH_ROWS = 8
GLYPH_COLS = 5


class ValidationError(ValueError):
    """Base exception for validation errors."""
    pass


class ConfigError(ValidationError):
    """Raised when a display configuration is invalid."""
    pass


class MissingConfigKeyError(ConfigError):
    """Raised when a required wiring or addressing key is absent."""

    def __init__(self, driver_kind: str, key: str):
        super().__init__(f"{driver_kind}: missing required config key '{key}'")
        self.driver_kind = driver_kind
        self.key = key


class GlyphValidationError(ValidationError):
    """Raised when a custom glyph slot or bitmap cannot be programmed."""
    pass


def validate_required_keys(
    config: Mapping[str, Any], required: Iterable[str], driver_kind: str
) -> None:
    """
    Validate that every required key is present and not None.

    Args:
        config: Display configuration mapping
        required: Keys the driver cannot default
        driver_kind: Driver name for error messages

    Raises:
        MissingConfigKeyError: On the first missing key
    """
    for key in required:
        if config.get(key) is None:
            raise MissingConfigKeyError(driver_kind, key)


def config_int(
    config: Mapping[str, Any], key: str, driver_kind: str, default: Optional[int] = None
) -> Optional[int]:
    """
    Read an integer wiring or addressing option.

    Strings are parsed with their base prefix, so "0x27" and "39" are both
    accepted.

    Raises:
        ConfigError: If the value is present but not an integer
    """
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{driver_kind}: '{key}' must be an integer, got {value!r}")
    try:
        return int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{driver_kind}: '{key}' must be an integer, got {value!r}") from e


def validate_dimensions(rows: int, cols: int) -> None:
    """
    Validate display dimensions against the HD44780 address map.

    Raises:
        ConfigError: If rows or cols are out of the supported range
    """
    if not (MIN_ROWS <= rows <= MAX_ROWS):
        raise ConfigError(f"rows must be {MIN_ROWS}-{MAX_ROWS}, got {rows}")
    if not (MIN_COLS <= cols <= MAX_COLS):
        raise ConfigError(f"cols must be {MIN_COLS}-{MAX_COLS}, got {cols}")


def validate_font_size(font_size: str) -> None:
    if font_size not in FONT_SIZES:
        raise ConfigError(
            f"font_size must be one of {', '.join(FONT_SIZES)}, got '{font_size}'"
        )


def validate_glyph(index: int, rows: Sequence[int]) -> None:
    """
    Validate a CGRAM slot index and its packed row values.

    Args:
        index: CGRAM slot (0-7)
        rows: Eight row bytes; the low 5 bits are the lit pixels

    Raises:
        GlyphValidationError: If the slot or any row is out of range
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise GlyphValidationError(f"Glyph index must be an integer, got {index!r}")
    if not (0 <= index < GLYPH_SLOTS):
        raise GlyphValidationError(f"Glyph index must be 0-{GLYPH_SLOTS - 1}, got {index}")
    if len(rows) != GLYPH_ROWS:
        raise GlyphValidationError(
            f"Glyph bitmap must have exactly {GLYPH_ROWS} rows, got {len(rows)}"
        )
    for value in rows:
        if not (0 <= value <= 0xFF):
            raise GlyphValidationError(f"Glyph row {value} does not fit in a byte")
