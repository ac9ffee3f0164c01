# lcd_display/config.py
from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping

from .validation import ConfigError, validate_dimensions, validate_font_size

logger = logging.getLogger(__name__)


DEFAULT_ROWS = 2
DEFAULT_COLS = 16
DEFAULT_FONT_SIZE = "5x8"

FontSize = Literal["5x8", "5x10"]


@dataclass(frozen=True)
class DisplaySettings:
    """Geometry shared by every HD44780 backend."""

    rows: int = DEFAULT_ROWS
    cols: int = DEFAULT_COLS
    font_size: FontSize = DEFAULT_FONT_SIZE

    def __post_init__(self) -> None:
        validate_dimensions(self.rows, self.cols)
        validate_font_size(self.font_size)

    @property
    def one_line(self) -> bool:
        return self.rows == 1


@dataclass(frozen=True)
class BusSettings:
    mock: bool = True


@dataclass(frozen=True)
class DisplaySpec:
    """One display entry: which driver to use and its raw config mapping."""

    driver: str
    config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.driver:
            raise ConfigError("Display entry must name a driver")

    @property
    def display_name(self) -> str | None:
        return self.config.get("display_name")


@dataclass(frozen=True)
class LcdConfig:
    displays: List[DisplaySpec]
    bus: BusSettings = field(default_factory=BusSettings)


def settings_from_config(config: Mapping[str, Any]) -> DisplaySettings:
    """Merge rows/cols/font_size from a config mapping with the defaults."""
    rows = config.get("rows")
    cols = config.get("cols")
    font_size = config.get("font_size")
    try:
        return DisplaySettings(
            rows=DEFAULT_ROWS if rows is None else int(rows),
            cols=DEFAULT_COLS if cols is None else int(cols),
            font_size=DEFAULT_FONT_SIZE if font_size is None else str(font_size),
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"Invalid display geometry: {e}") from e


def _load_display(entry: dict) -> DisplaySpec:
    if "driver" not in entry:
        raise ConfigError(f"Display entry {entry!r} is missing 'driver'")
    config = {k: v for k, v in entry.items() if k != "driver"}
    # Validate geometry early so a bad file fails at load time
    settings_from_config(config)
    return DisplaySpec(driver=str(entry["driver"]).lower(), config=config)


def load_from_toml(config_path: str | Path) -> LcdConfig:
    """
    Load an LcdConfig from a TOML file.

    Expected TOML structure:

    [bus]
    mock = false

    [[displays]]
    driver = "pcf8574"
    display_name = "front panel"
    i2c_bus = "i2c-1"
    i2c_address = 0x27
    rows = 2
    cols = 16
    font_size = "5x8"

    [[displays]]
    driver = "gpio"
    display_name = "status"
    pin_rs = 2
    pin_en = 4
    pin_d4 = 23
    pin_d5 = 24
    pin_d6 = 25
    pin_d7 = 26
    pin_led = 12
    rows = 4
    cols = 20
    """
    p = Path(config_path)
    if not p.exists():
        raise FileNotFoundError(f"Configuration file not found: {p}")

    with p.open("rb") as f:
        data = tomllib.load(f)

    bus = data.get("bus") or {}
    entries = data.get("displays") or []
    if not isinstance(entries, list):
        raise ConfigError("'displays' must be an array of tables")

    cfg = LcdConfig(
        displays=[_load_display(e) for e in entries],
        bus=BusSettings(mock=bool(bus.get("mock", True))),
    )

    names = [(d.driver, d.display_name) for d in cfg.displays if d.display_name]
    if len(names) != len(set(names)):
        raise ConfigError(f"Duplicate display identities in {p}")

    logger.info(
        f"Loaded LcdConfig: {len(cfg.displays)} displays (mock={cfg.bus.mock})"
    )
    return cfg


def default_config() -> LcdConfig:
    """A sensible local default: one 16x2 display on a PCF8574 backpack."""
    return LcdConfig(
        displays=[
            DisplaySpec(
                driver="pcf8574",
                config={
                    "display_name": "display 1",
                    "i2c_bus": "i2c-1",
                    "i2c_address": 0x27,
                    "rows": DEFAULT_ROWS,
                    "cols": DEFAULT_COLS,
                    "font_size": DEFAULT_FONT_SIZE,
                },
            )
        ],
        bus=BusSettings(mock=True),
    )
