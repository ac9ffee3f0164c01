"""
HD44780 Protocol Encoder

Shared state machine for HD44780-compatible character LCDs driven in 4-bit
mode. Backends only differ in how a nibble reaches the controller's pins:

- HD44780Driver: bring-up sequence, instruction/data framing, flag-register
  algebra and command dispatch. Subclasses implement _open, _write_nibble,
  _apply_backlight and _close.
- ExpanderDriver: backends where every pin change is one bus write of a
  packed byte (I2C expanders, SPI shift register). Subclasses implement
  pack_nibble and _transmit.
- I2CExpanderDriver: ExpanderDriver opened on an I2C bus at a device address.
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .address import ddram_address
from .bus import BusPorts, TransportError
from .commands import (
    Autoscroll,
    Backlight,
    Blink,
    Clear,
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
from .config import DisplaySettings, settings_from_config
from .instructions import (
    BLINK_ON,
    CLEAR_DELAY_S,
    CLEAR_DISPLAY,
    CURSOR_ON,
    CURSOR_SHIFT,
    DISPLAY_MOVE,
    DISPLAY_ON,
    ENTRY_LEFT,
    ENTRY_SHIFT_INCREMENT,
    FONT_5X10,
    FUNCTION_SET,
    INIT_LONG_DELAY_S,
    INIT_SHORT_DELAY_S,
    MOVE_RIGHT,
    RETURN_HOME,
    SET_CGRAM_ADDR,
    SET_DDRAM_ADDR,
    TWO_LINE,
)
from .results import Error, Ok, Result, Unsupported
from .state import DisplayState
from .validation import (
    GLYPH_COLS,
    GLYPH_ROWS,
    GlyphValidationError,
    ValidationError,
    config_int,
    validate_glyph,
    validate_required_keys,
)


logger = logging.getLogger(__name__)


class UnsupportedCommand(ValidationError):
    """A command's arguments do not satisfy its preconditions."""

    pass


def adjust_backlight_config(state: DisplayState) -> DisplayState:
    """
    Normalise RGB backlight flags.

    With no colour selected the backlight defaults to white; with the
    backlight off every colour is off.
    """
    if not (state.red or state.green or state.blue):
        state = state.with_changes(red=True, green=True, blue=True)
    if not state.backlight:
        state = state.with_changes(red=False, green=False, blue=False)
    return state


def pick_random_color(rng: random.Random) -> Tuple[bool, bool, bool]:
    """Return (red, green, blue) for one primary or one two-colour mix."""
    channels = list(rng.choice([(True, False, False), (True, True, False)]))
    rng.shuffle(channels)
    return tuple(channels)


def pack_glyph(bitmap: Any) -> List[int]:
    """
    Convert a glyph bitmap into the eight CGRAM row bytes.

    Accepts eight integers (any byte value, only the low 5 bits are lit),
    a bytes-like object of length 8, or an 8x5 array of booleans (row major,
    leftmost pixel first).

    Raises:
        GlyphValidationError: If the bitmap has the wrong shape or type
    """
    if isinstance(bitmap, (bytes, bytearray, memoryview)):
        return list(bytes(bitmap))

    try:
        array = np.asarray(bitmap)
    except (TypeError, ValueError) as e:
        raise GlyphValidationError(f"Glyph bitmap is not array-like: {e}") from e

    if array.ndim == 2:
        if array.shape != (GLYPH_ROWS, GLYPH_COLS):
            raise GlyphValidationError(
                f"Glyph bitmap must be {GLYPH_ROWS}x{GLYPH_COLS}, got {array.shape}"
            )
        packed = np.packbits(array.astype(bool), axis=1, bitorder="big") >> 3
        return [int(v) for v in packed[:, 0]]

    if array.ndim == 1 and array.dtype.kind in "iu":
        return [int(v) for v in array]

    raise GlyphValidationError(
        f"Glyph bitmap must be {GLYPH_ROWS} integers or a {GLYPH_ROWS}x{GLYPH_COLS} boolean array"
    )


def _require_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise UnsupportedCommand(f"Expected a boolean, got {value!r}")
    return value


def _require_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnsupportedCommand(f"Expected an integer, got {value!r}")
    return value


class HD44780Driver(ABC):
    """
    Driver for one HD44780 backend.

    A driver instance holds no per-display state: every call takes the
    current DisplayState and returns a new one, so one instance may serve
    any number of displays.
    """

    kind: ClassVar[str] = ""
    required_keys: ClassVar[Tuple[str, ...]] = ()
    supports_rgb: ClassVar[bool] = False
    # Pause after selecting the register, before the first nibble
    byte_settle_s: ClassVar[float] = 0.0

    def __init__(
        self,
        ports: BusPorts,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize driver.

        Args:
            ports: Bus implementations to open displays on
            sleep: Blocking wait used for controller execution times
            rng: Random source for RandomColor
        """
        self.ports = ports
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._handlers: Dict[type, Callable[[DisplayState, Any], DisplayState]] = {
            Clear: self._clear,
            Home: self._home,
            Print: self._print,
            Write: self._write,
            SetCursor: self._set_cursor,
            Cursor: self._cursor,
            Blink: self._blink,
            Display: self._display,
            Autoscroll: self._autoscroll,
            TextDirection: self._text_direction,
            Scroll: self._scroll,
            Left: self._left,
            Right: self._right,
            Backlight: self._backlight,
            DefineGlyph: self._define_glyph,
            SetLedColor: self._set_led_color,
            RandomColor: self._random_color,
        }

    # ------------------------------------------------------------------
    # Backend hooks

    @classmethod
    def default_display_name(cls, config: Mapping[str, Any]) -> str:
        return cls.kind

    @classmethod
    def display_name_for(cls, config: Mapping[str, Any]) -> str:
        """Name half of the (driver kind, display name) identity."""
        return str(config.get("display_name") or cls.default_display_name(config))

    @abstractmethod
    def _open(self, config: Mapping[str, Any], settings: DisplaySettings) -> DisplayState:
        """Open the bus and return the initial state. Must not leak handles."""
        pass

    @abstractmethod
    def _write_nibble(self, state: DisplayState, nibble: int, register_select: bool) -> None:
        pass

    @abstractmethod
    def _apply_backlight(self, state: DisplayState) -> None:
        """Drive the backlight (and colour) lines from the state flags."""
        pass

    @abstractmethod
    def _close(self, state: DisplayState) -> None:
        pass

    def supports_backlight(self, state: DisplayState) -> bool:
        return True

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self, config: Mapping[str, Any]) -> DisplayState:
        """
        Open the bus and bring the display up in 4-bit mode.

        Args:
            config: Display configuration mapping

        Returns:
            DisplayState: Cleared display, cursor at (0, 0), backlight on

        Raises:
            ConfigError: If a required key is missing or the geometry is invalid
            TransportError: If the bus cannot be opened or written
        """
        validate_required_keys(config, self.required_keys, self.kind)
        settings = settings_from_config(config)

        state = self._open(config, settings)
        try:
            self._apply_backlight(state)
            self._initialize(state, settings)
        except TransportError:
            self.release(state)
            raise

        logger.info(
            f"Started {self.kind} display '{state.display_name}' "
            f"({settings.cols}x{settings.rows}, {settings.font_size})"
        )
        return state

    def _initialize(self, state: DisplayState, settings: DisplaySettings) -> None:
        # Datasheet figure 24: three 8-bit function sets, then switch to 4-bit
        self._write_nibble(state, 0x03, False)
        self._sleep(INIT_LONG_DELAY_S)
        self._write_nibble(state, 0x03, False)
        self._sleep(INIT_LONG_DELAY_S)
        self._write_nibble(state, 0x03, False)
        self._sleep(INIT_SHORT_DELAY_S)
        self._write_nibble(state, 0x02, False)

        # Lines and font cannot be changed after this point
        function_set = FUNCTION_SET
        if not settings.one_line:
            function_set |= TWO_LINE
        if settings.font_size == "5x10":
            function_set |= FONT_5X10
        self._instruction(state, function_set)
        self._instruction(state, state.display_control)
        self._instruction(state, state.entry_mode)
        self._clear(state, None)

    def stop(self, state: DisplayState) -> None:
        """Best-effort display off, then release the bus."""
        try:
            self._instruction(state, state.display_control & ~DISPLAY_ON)
        except TransportError as e:
            logger.warning(f"Display-off for '{state.display_name}' failed: {e}")
        finally:
            self.release(state)

    def release(self, state: DisplayState) -> None:
        """Close bus handles without writing to the display."""
        try:
            self._close(state)
        except TransportError as e:
            logger.warning(f"Closing bus for '{state.display_name}' failed: {e}")
        else:
            logger.debug(f"Released {self.kind} display '{state.display_name}'")

    # ------------------------------------------------------------------
    # Command dispatch

    def execute(self, state: DisplayState, command: Any) -> Result:
        """
        Execute one command against a display.

        Returns:
            Ok: With the new state
            Unsupported: Unknown command or precondition violation
            Error: The bus failed mid-command
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            logger.debug(f"{self.kind}: unsupported command {command!r}")
            return Unsupported(command, state)

        try:
            return Ok(handler(state, command))
        except ValidationError as e:
            logger.debug(f"{self.kind}: rejected {command!r}: {e}")
            return Unsupported(command, state)
        except TransportError as e:
            logger.error(f"{self.kind}: bus failure on {command!r}: {e}")
            return Error(e)

    # ------------------------------------------------------------------
    # Byte framing

    def _send(self, state: DisplayState, byte: int, register_select: bool) -> None:
        self._write_nibble(state, (byte >> 4) & 0x0F, register_select)
        self._write_nibble(state, byte & 0x0F, register_select)

    def _instruction(self, state: DisplayState, byte: int) -> None:
        self._send(state, byte, False)

    def _data(self, state: DisplayState, byte: int) -> None:
        self._send(state, byte, True)

    # ------------------------------------------------------------------
    # Command handlers

    def _clear(self, state: DisplayState, command: Any) -> DisplayState:
        self._instruction(state, CLEAR_DISPLAY)
        self._sleep(CLEAR_DELAY_S)
        return state

    def _home(self, state: DisplayState, command: Home) -> DisplayState:
        self._instruction(state, RETURN_HOME)
        self._sleep(CLEAR_DELAY_S)
        return state

    def _print(self, state: DisplayState, command: Print) -> DisplayState:
        if not isinstance(command.text, str):
            raise UnsupportedCommand(f"Print expects str, got {type(command.text).__name__}")
        for byte in command.text.encode("latin-1", errors="replace"):
            self._data(state, byte)
        return state

    def _write(self, state: DisplayState, command: Write) -> DisplayState:
        if not isinstance(command.data, (bytes, bytearray, memoryview)):
            raise UnsupportedCommand(f"Write expects bytes, got {type(command.data).__name__}")
        for byte in bytes(command.data):
            self._data(state, byte)
        return state

    def _set_cursor(self, state: DisplayState, command: SetCursor) -> DisplayState:
        row, col = _require_int(command.row), _require_int(command.col)
        address = ddram_address(state.rows, state.cols, row, col)
        self._instruction(state, SET_DDRAM_ADDR | address)
        return state

    def _set_control_flag(self, state: DisplayState, flag: int, on: Any) -> DisplayState:
        state = state.with_control_flag(flag, _require_bool(on))
        self._instruction(state, state.display_control)
        return state

    def _set_entry_flag(self, state: DisplayState, flag: int, on: Any) -> DisplayState:
        state = state.with_entry_flag(flag, _require_bool(on))
        self._instruction(state, state.entry_mode)
        return state

    def _cursor(self, state: DisplayState, command: Cursor) -> DisplayState:
        return self._set_control_flag(state, CURSOR_ON, command.on)

    def _blink(self, state: DisplayState, command: Blink) -> DisplayState:
        return self._set_control_flag(state, BLINK_ON, command.on)

    def _display(self, state: DisplayState, command: Display) -> DisplayState:
        return self._set_control_flag(state, DISPLAY_ON, command.on)

    def _autoscroll(self, state: DisplayState, command: Autoscroll) -> DisplayState:
        return self._set_entry_flag(state, ENTRY_SHIFT_INCREMENT, command.on)

    def _text_direction(self, state: DisplayState, command: TextDirection) -> DisplayState:
        if not isinstance(command.direction, Direction):
            raise UnsupportedCommand(f"Unknown text direction {command.direction!r}")
        return self._set_entry_flag(
            state, ENTRY_LEFT, command.direction is Direction.LEFT_TO_RIGHT
        )

    def _shift(self, state: DisplayState, instruction: int, count: int) -> None:
        for _ in range(count):
            self._instruction(state, instruction)

    def _scroll(self, state: DisplayState, command: Scroll) -> DisplayState:
        cols = _require_int(command.cols)
        if cols > 0:
            self._shift(state, CURSOR_SHIFT | DISPLAY_MOVE | MOVE_RIGHT, cols)
        elif cols < 0:
            self._shift(state, CURSOR_SHIFT | DISPLAY_MOVE, -cols)
        return state

    def _move_cursor(self, state: DisplayState, cols: int) -> DisplayState:
        # Positive is right, negative is left
        if cols > 0:
            self._shift(state, CURSOR_SHIFT | MOVE_RIGHT, cols)
        elif cols < 0:
            self._shift(state, CURSOR_SHIFT, -cols)
        return state

    def _left(self, state: DisplayState, command: Left) -> DisplayState:
        return self._move_cursor(state, -_require_int(command.cols))

    def _right(self, state: DisplayState, command: Right) -> DisplayState:
        return self._move_cursor(state, _require_int(command.cols))

    def _define_glyph(self, state: DisplayState, command: DefineGlyph) -> DisplayState:
        rows = pack_glyph(command.bitmap)
        validate_glyph(command.index, rows)
        self._instruction(state, SET_CGRAM_ADDR | (command.index << 3))
        for row in rows:
            self._data(state, row)
        return state

    def _update_backlight(self, state: DisplayState, **changes: bool) -> DisplayState:
        state = state.with_changes(**changes)
        if self.supports_rgb:
            state = adjust_backlight_config(state)
        self._apply_backlight(state)
        return state

    def _backlight(self, state: DisplayState, command: Backlight) -> DisplayState:
        on = _require_bool(command.on)
        if not self.supports_backlight(state):
            raise UnsupportedCommand(f"{self.kind} display has no backlight line")
        return self._update_backlight(state, backlight=on)

    def _set_led_color(self, state: DisplayState, command: SetLedColor) -> DisplayState:
        if not self.supports_rgb:
            raise UnsupportedCommand(f"{self.kind} has no RGB backlight")
        if not isinstance(command.channel, LedChannel):
            raise UnsupportedCommand(f"Unknown LED channel {command.channel!r}")
        return self._update_backlight(
            state, **{command.channel.value: _require_bool(command.on)}
        )

    def _random_color(self, state: DisplayState, command: RandomColor) -> DisplayState:
        if not self.supports_rgb:
            raise UnsupportedCommand(f"{self.kind} has no RGB backlight")
        red, green, blue = pick_random_color(self._rng)
        return self._update_backlight(state, red=red, green=green, blue=blue)


class ExpanderDriver(HD44780Driver):
    """
    Backend where the LCD pins hang off an expander register.

    Each nibble takes three register writes (setup, enable high, enable
    low) so the enable edge itself crosses the bus.
    """

    @abstractmethod
    def pack_nibble(
        self, nibble: int, register_select: bool, enable: bool, backlight: bool
    ) -> int:
        """Map a nibble and control lines onto the expander's output byte."""
        pass

    @abstractmethod
    def _transmit(self, state: DisplayState, byte: int) -> None:
        pass

    def _backlight_level(self, state: DisplayState) -> bool:
        return state.backlight

    def _write_nibble(self, state: DisplayState, nibble: int, register_select: bool) -> None:
        light = self._backlight_level(state)
        for enable in (False, True, False):
            self._transmit(state, self.pack_nibble(nibble, register_select, enable, light))

    def _apply_backlight(self, state: DisplayState) -> None:
        # No data lines change; the write only re-asserts the backlight bit
        self._transmit(state, self.pack_nibble(0, False, False, self._backlight_level(state)))


class I2CExpanderDriver(ExpanderDriver):
    """Expander on an I2C bus."""

    default_address: ClassVar[int] = 0x20
    default_bus: ClassVar[str] = "i2c-1"

    @classmethod
    def default_display_name(cls, config: Mapping[str, Any]) -> str:
        return str(config.get("i2c_bus") or cls.default_bus)

    def _frame(self, state: DisplayState, byte: int) -> bytes:
        return bytes([byte])

    def _configure(self, state: DisplayState) -> None:
        """Expander setup performed right after the bus is opened."""
        pass

    def _open(self, config: Mapping[str, Any], settings: DisplaySettings) -> DisplayState:
        bus_name = str(config.get("i2c_bus") or self.default_bus)
        address = config_int(config, "i2c_address", self.kind, self.default_address)

        handle = self.ports.i2c.open(bus_name)
        state = DisplayState(
            driver_kind=self.kind,
            display_name=self.display_name_for(config),
            rows=settings.rows,
            cols=settings.cols,
            font_size=settings.font_size,
            bus=handle,
            address=address,
        )
        try:
            self._configure(state)
        except TransportError:
            self.release(state)
            raise
        return state

    def _transmit(self, state: DisplayState, byte: int) -> None:
        self.ports.i2c.write(state.bus, state.address, self._frame(state, byte))

    def _close(self, state: DisplayState) -> None:
        self.ports.i2c.close(state.bus)
