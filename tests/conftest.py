"""Shared fixtures: mock bus ports, a recording sleep and frame decoders."""

from typing import List, Tuple

import pytest

from lcd_display.bus import mock_ports


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def decode_pcf8574(frames: List[bytes], skip_nibbles: int = 0) -> List[Tuple[int, int]]:
    """
    Reassemble (byte, rs) pairs from PCF8574 frames.

    Every latched nibble shows up as exactly one frame with the enable bit set.
    """
    nibbles = [(f[0] >> 4, f[0] & 0x01) for f in frames if f[0] & 0x04]
    nibbles = nibbles[skip_nibbles:]
    assert len(nibbles) % 2 == 0, "odd number of nibbles on the bus"
    decoded = []
    for (high, rs_high), (low, rs_low) in zip(nibbles[::2], nibbles[1::2]):
        assert rs_high == rs_low
        decoded.append(((high << 4) | low, rs_high))
    return decoded


@pytest.fixture
def ports():
    return mock_ports()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def decode():
    return decode_pcf8574


@pytest.fixture
def gpio_config() -> dict:
    return {
        "display_name": "panel",
        "pin_rs": 2,
        "pin_en": 4,
        "pin_d4": 23,
        "pin_d5": 24,
        "pin_d6": 25,
        "pin_d7": 26,
    }
