"""
Symbolic display commands.

Every operation a controller accepts is one of the frozen dataclasses below.
Drivers dispatch on the command type; anything that is not one of these
yields an Unsupported result rather than an exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class Direction(Enum):
    LEFT_TO_RIGHT = "left_to_right"
    RIGHT_TO_LEFT = "right_to_left"


class LedChannel(Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"


@dataclass(frozen=True)
class Clear:
    """Blank the display and return the cursor to (0, 0)."""


@dataclass(frozen=True)
class Home:
    """Return the cursor to (0, 0) and undo any display shift."""


@dataclass(frozen=True)
class Print:
    text: str


@dataclass(frozen=True)
class Write:
    """Raw data bytes, written without any text encoding."""

    data: bytes


@dataclass(frozen=True)
class SetCursor:
    row: int
    col: int


@dataclass(frozen=True)
class Cursor:
    on: bool


@dataclass(frozen=True)
class Blink:
    on: bool


@dataclass(frozen=True)
class Display:
    on: bool


@dataclass(frozen=True)
class Autoscroll:
    on: bool


@dataclass(frozen=True)
class TextDirection:
    direction: Direction


@dataclass(frozen=True)
class Scroll:
    """Shift the whole display; positive is right, negative is left."""

    cols: int


@dataclass(frozen=True)
class Left:
    """Move the cursor left without changing DDRAM contents."""

    cols: int = 1


@dataclass(frozen=True)
class Right:
    cols: int = 1


@dataclass(frozen=True)
class Backlight:
    on: bool


@dataclass(frozen=True)
class DefineGlyph:
    """
    Program a custom character into CGRAM.

    `bitmap` is either eight row values (5 significant bits each, MSB is the
    leftmost pixel) or an 8x5 array of booleans.
    """

    index: int
    bitmap: Any


@dataclass(frozen=True)
class SetLedColor:
    channel: LedChannel
    on: bool


@dataclass(frozen=True)
class RandomColor:
    """Pick a random primary or two-colour mix on RGB backlights."""


Command = Union[
    Clear,
    Home,
    Print,
    Write,
    SetCursor,
    Cursor,
    Blink,
    Display,
    Autoscroll,
    TextDirection,
    Scroll,
    Left,
    Right,
    Backlight,
    DefineGlyph,
    SetLedColor,
    RandomColor,
]
