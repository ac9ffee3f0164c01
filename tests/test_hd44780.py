"""Tests for the shared HD44780 state machine, exercised through the PCF8574 backend."""

import random

import numpy as np
import pytest

from lcd_display.bus import TransportError
from lcd_display.commands import (
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
from lcd_display.drivers import PCF8574Driver
from lcd_display.hd44780 import adjust_backlight_config, pack_glyph, pick_random_color
from lcd_display.results import Error, Ok, Unsupported
from lcd_display.state import DisplayState
from lcd_display.validation import ConfigError, GlyphValidationError, ValidationError

ADDRESS = 0x27


@pytest.fixture
def driver(ports, sleep) -> PCF8574Driver:
    return PCF8574Driver(ports, sleep=sleep)


@pytest.fixture
def state(driver, ports, sleep) -> DisplayState:
    started = driver.start({})
    ports.i2c.writes.clear()
    sleep.calls.clear()
    return started


def run(driver, ports, decode, state, command):
    """Execute one command and return (result, decoded bytes)."""
    ports.i2c.writes.clear()
    result = driver.execute(state, command)
    return result, decode(ports.i2c.frames(ADDRESS))


# ----------------------------------------------------------------------
# start


def test_start_defaults(driver):
    state = driver.start({})
    assert (state.rows, state.cols, state.font_size) == (2, 16, "5x8")
    assert state.entry_mode == 0x06
    assert state.display_control == 0x0C
    assert state.backlight is True
    assert (state.red, state.green, state.blue) == (True, True, True)
    assert state.address == ADDRESS
    assert state.identity == ("pcf8574", "i2c-1")


def test_start_bring_up_sequence(driver, ports, sleep, decode):
    driver.start({"display_name": "front"})
    frames = ports.i2c.frames(ADDRESS)

    # Backlight nudge, then the first nibble as setup / enable high / enable low
    assert frames[:4] == [b"\x08", b"\x38", b"\x3c", b"\x38"]

    nibbles = [(f[0] >> 4, f[0] & 1) for f in frames if f[0] & 0x04][:4]
    assert nibbles == [(0x3, 0), (0x3, 0), (0x3, 0), (0x2, 0)]
    assert decode(frames, skip_nibbles=4) == [(0x28, 0), (0x0C, 0), (0x06, 0), (0x01, 0)]
    assert sleep.calls == [0.005, 0.005, 0.001, 0.002]


@pytest.mark.parametrize(
    "rows,font_size,function_set",
    [(2, "5x8", 0x28), (1, "5x8", 0x20), (1, "5x10", 0x24), (4, "5x10", 0x2C)],
)
def test_function_set_lines_and_font(driver, ports, decode, rows, font_size, function_set):
    driver.start({"rows": rows, "cols": 20, "font_size": font_size})
    assert decode(ports.i2c.frames(ADDRESS), skip_nibbles=4)[0] == (function_set, 0)


@pytest.mark.parametrize(
    "config", [{"rows": 5}, {"cols": 7}, {"cols": 21}, {"font_size": "6x9"}]
)
def test_start_rejects_bad_geometry_without_opening(driver, ports, config):
    with pytest.raises(ConfigError):
        driver.start(config)
    assert ports.i2c.opened == []


def test_start_transport_failure_closes_bus(driver, ports):
    ports.i2c.fail_writes = True
    with pytest.raises(TransportError):
        driver.start({})
    assert len(ports.i2c.opened) == 1
    assert ports.i2c.open_handles == []


def test_start_open_failure(driver, ports):
    ports.i2c.fail_open = True
    with pytest.raises(TransportError):
        driver.start({})


# ----------------------------------------------------------------------
# execute


def test_clear_and_home_wait(driver, ports, sleep, decode, state):
    result, sent = run(driver, ports, decode, state, Clear())
    assert result == Ok(state)
    assert sent == [(0x01, 0)]
    result, sent = run(driver, ports, decode, state, Home())
    assert sent == [(0x02, 0)]
    assert sleep.calls == [0.002, 0.002]


def test_print_sends_data_bytes(driver, ports, decode, state):
    result, sent = run(driver, ports, decode, state, Print("Hi"))
    assert isinstance(result, Ok)
    assert sent == [(ord("H"), 1), (ord("i"), 1)]


def test_print_encodes_latin1_with_replacement(driver, ports, decode, state):
    _, sent = run(driver, ports, decode, state, Print("é€"))
    assert sent == [(0xE9, 1), (ord("?"), 1)]


def test_write_sends_raw_bytes(driver, ports, decode, state):
    _, sent = run(driver, ports, decode, state, Write(b"\x00\xff"))
    assert sent == [(0x00, 1), (0xFF, 1)]


@pytest.mark.parametrize("row,col,instruction", [(0, 0, 0x80), (1, 0, 0xC0), (1, 20, 0xCF)])
def test_set_cursor(driver, ports, decode, state, row, col, instruction):
    _, sent = run(driver, ports, decode, state, SetCursor(row, col))
    assert sent == [(instruction, 0)]


def test_display_toggle_restores_register(driver, ports, decode, state):
    off, sent = run(driver, ports, decode, state, Display(False))
    assert off.state.display_control == 0x08
    assert sent == [(0x08, 0)]
    on, sent = run(driver, ports, decode, off.state, Display(True))
    assert on.state.display_control == state.display_control
    assert sent == [(0x0C, 0)]


def test_cursor_and_blink_keep_other_bits(driver, ports, decode, state):
    cursor = driver.execute(state, Cursor(True)).state
    assert cursor.display_control == 0x0E
    blink = driver.execute(cursor, Blink(True)).state
    assert blink.display_control == 0x0F
    result, sent = run(driver, ports, decode, blink, Cursor(False))
    assert result.state.display_control == 0x0D
    assert sent == [(0x0D, 0)]


def test_entry_mode_flags(driver, ports, decode, state):
    result, sent = run(driver, ports, decode, state, Autoscroll(True))
    assert result.state.entry_mode == 0x07
    assert sent == [(0x07, 0)]

    result, sent = run(driver, ports, decode, result.state, TextDirection(Direction.RIGHT_TO_LEFT))
    assert result.state.entry_mode == 0x05
    assert sent == [(0x05, 0)]

    result, _ = run(driver, ports, decode, result.state, TextDirection(Direction.LEFT_TO_RIGHT))
    assert result.state.entry_mode == 0x07


def test_scroll_both_directions(driver, ports, decode, state):
    _, right = run(driver, ports, decode, state, Scroll(3))
    _, left = run(driver, ports, decode, state, Scroll(-3))
    assert right == [(0x1C, 0)] * 3
    assert left == [(0x18, 0)] * 3


def test_scroll_zero_is_noop(driver, ports, state):
    ports.i2c.writes.clear()
    assert driver.execute(state, Scroll(0)) == Ok(state)
    assert ports.i2c.writes == []


def test_cursor_moves(driver, ports, decode, state):
    assert run(driver, ports, decode, state, Left(2))[1] == [(0x10, 0)] * 2
    assert run(driver, ports, decode, state, Right(1))[1] == [(0x14, 0)]
    # Negative counts move the other way
    assert run(driver, ports, decode, state, Left(-1))[1] == [(0x14, 0)]
    assert run(driver, ports, decode, state, Right(-2))[1] == [(0x10, 0)] * 2


def test_define_glyph_from_rows(driver, ports, decode, state):
    rows = [0, 10, 31, 31, 14, 4, 0, 0]
    result, sent = run(driver, ports, decode, state, DefineGlyph(1, rows))
    assert isinstance(result, Ok)
    assert sent[0] == (0x48, 0)
    assert sent[1:] == [(r, 1) for r in rows]


def test_define_glyph_from_bool_array(driver, ports, decode, state):
    bitmap = np.zeros((8, 5), dtype=bool)
    bitmap[0] = [1, 0, 0, 0, 1]
    bitmap[7, :] = True
    _, sent = run(driver, ports, decode, state, DefineGlyph(7, bitmap))
    assert sent[0] == (0x78, 0)
    assert [b for b, _ in sent[1:]] == [17, 0, 0, 0, 0, 0, 0, 31]


def test_define_glyph_from_bytes(driver, ports, decode, state):
    bitmap = bytes([0x1F, 0x11, 0x11, 0x11, 0x11, 0x11, 0x11, 0x1F])
    result, sent = run(driver, ports, decode, state, DefineGlyph(2, bitmap))
    assert isinstance(result, Ok)
    assert sent[0] == (0x50, 0)
    assert [b for b, _ in sent[1:]] == list(bitmap)


def test_define_glyph_sends_full_bytes(driver, ports, decode, state):
    result, sent = run(driver, ports, decode, state, DefineGlyph(0, [0xFF] * 8))
    assert isinstance(result, Ok)
    assert sent[1:] == [(0xFF, 1)] * 8


@pytest.mark.parametrize(
    "command",
    [
        DefineGlyph(8, [0] * 8),
        DefineGlyph(-1, [0] * 8),
        DefineGlyph(0, [0] * 7),
        DefineGlyph(0, [256] + [0] * 7),
        DefineGlyph(0, bytes(7)),
        DefineGlyph(0, np.zeros((8, 6), dtype=bool)),
        DefineGlyph(0, "not a bitmap"),
    ],
)
def test_define_glyph_preconditions_are_unsupported(driver, ports, state, command):
    ports.i2c.writes.clear()
    result = driver.execute(state, command)
    assert isinstance(result, Unsupported)
    assert result.command is command
    assert ports.i2c.writes == []


def test_backlight_nudge(driver, ports, state):
    ports.i2c.writes.clear()
    off = driver.execute(state, Backlight(False)).state
    assert off.backlight is False
    assert ports.i2c.frames(ADDRESS) == [b"\x00"]

    ports.i2c.writes.clear()
    driver.execute(off, Print("a"))
    assert all(not f[0] & 0x08 for f in ports.i2c.frames(ADDRESS))


@pytest.mark.parametrize(
    "command",
    [
        "bogus",
        object(),
        SetLedColor(LedChannel.RED, False),
        RandomColor(),
        Print(123),
        Write("text"),
        Cursor("yes"),
        Scroll(1.5),
        SetCursor("1", 0),
        TextDirection("up"),
    ],
)
def test_unsupported_commands(driver, ports, state, command):
    ports.i2c.writes.clear()
    result = driver.execute(state, command)
    assert isinstance(result, Unsupported)
    assert result.command is command
    assert result.state is state
    assert ports.i2c.writes == []


def test_bus_failure_is_error(driver, ports, state):
    ports.i2c.fail_writes = True
    result = driver.execute(state, Print("x"))
    assert isinstance(result, Error)
    assert isinstance(result.reason, TransportError)


def test_stop_turns_display_off_and_closes(driver, ports, decode, state):
    driver.stop(state)
    assert decode(ports.i2c.frames(ADDRESS)) == [(0x08, 0)]
    assert ports.i2c.open_handles == []


def test_stop_is_best_effort(driver, ports, state):
    ports.i2c.fail_writes = True
    driver.stop(state)
    assert ports.i2c.open_handles == []


def test_release_writes_nothing(driver, ports, state):
    driver.release(state)
    assert ports.i2c.writes == []
    assert ports.i2c.open_handles == []


# ----------------------------------------------------------------------
# helpers and state


def test_state_rejects_broken_registers():
    with pytest.raises(ValidationError):
        DisplayState("pcf8574", "x", rows=2, cols=16, entry_mode=0x10)
    with pytest.raises(ValidationError):
        DisplayState("pcf8574", "x", rows=2, cols=16, display_control=0x04)
    with pytest.raises(ValidationError):
        DisplayState("pcf8574", "x", rows=0, cols=16)


def test_adjust_backlight_config():
    base = DisplayState("mcp23017", "x", rows=2, cols=16)
    none = adjust_backlight_config(base.with_changes(red=False, green=False, blue=False))
    assert (none.red, none.green, none.blue) == (True, True, True)

    off = adjust_backlight_config(base.with_changes(backlight=False))
    assert (off.red, off.green, off.blue) == (False, False, False)

    red = adjust_backlight_config(base.with_changes(green=False, blue=False))
    assert (red.red, red.green, red.blue) == (True, False, False)


def test_random_color_is_never_white_or_none():
    rng = random.Random(1234)
    seen = set()
    for _ in range(200):
        color = pick_random_color(rng)
        assert sum(color) in (1, 2)
        seen.add(color)
    assert len(seen) == 6


def test_pack_glyph_rejects_floats():
    with pytest.raises(GlyphValidationError):
        pack_glyph([0.5] * 8)


if __name__ == "__main__":
    pytest.main([__file__])
