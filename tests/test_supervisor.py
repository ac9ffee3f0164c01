"""Tests for acquisition, uniqueness and crash recovery."""

import asyncio

import pytest

from lcd_display.bus.mock import MockI2C
from lcd_display.commands import Print
from lcd_display.config import default_config, load_from_toml
from lcd_display.drivers import MCP23008Driver
from lcd_display.results import Ok
from lcd_display.supervisor import DisplaySupervisor, SupervisorError
from lcd_display.validation import ConfigError, MissingConfigKeyError


def _config(name, address=0x27, **extra):
    return {"display_name": name, "i2c_address": address, **extra}


async def _crash(supervisor, name):
    controller = supervisor.whereis("pcf8574", name)
    await controller.exit(RuntimeError(f"{name} crashed"))
    await supervisor.wait_for_restarts()
    return controller


@pytest.fixture
def supervisor(ports, sleep):
    return DisplaySupervisor(ports, sleep=sleep, clock=lambda: 0.0)


@pytest.mark.asyncio
async def test_acquire_registers_controller(supervisor):
    controller = await supervisor.acquire("pcf8574", _config("front"))
    assert supervisor.whereis("pcf8574", "front") is controller
    assert isinstance(await controller.execute(Print("hi")), Ok)
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_acquire_with_driver_class(supervisor):
    controller = await supervisor.acquire(MCP23008Driver, {})
    assert controller.identity == ("mcp23008", "i2c-1")
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_second_acquire_replaces_first(supervisor, ports):
    first = await supervisor.acquire("pcf8574", _config("front"))
    second = await supervisor.acquire("pcf8574", _config("front"))

    assert first is not second
    assert first.exit_reason == "killed"
    assert second.is_alive()
    assert supervisor.registry.identities() == [("pcf8574", "front")]
    assert supervisor.whereis("pcf8574", "front") is second
    assert len(ports.i2c.open_handles) == 1

    # A replacement is not a crash
    await supervisor.wait_for_restarts()
    assert supervisor.whereis("pcf8574", "front") is second
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_concurrent_acquire_keeps_one(supervisor, ports):
    a, b = await asyncio.gather(
        supervisor.acquire("pcf8574", _config("front")),
        supervisor.acquire("pcf8574", _config("front")),
    )
    assert a is b
    assert supervisor.registry.identities() == [("pcf8574", "front")]
    assert len(ports.i2c.open_handles) == 1
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_failed_start_registers_nothing(supervisor, ports, gpio_config):
    del gpio_config["pin_d7"]
    with pytest.raises(MissingConfigKeyError):
        await supervisor.acquire("gpio", gpio_config)
    assert supervisor.registry.identities() == []
    assert supervisor.children() == []
    assert ports.gpio.opened == []


@pytest.mark.asyncio
async def test_unknown_driver(supervisor):
    with pytest.raises(ConfigError):
        await supervisor.acquire("st7796", {})


@pytest.mark.asyncio
async def test_crash_restarts_only_that_display(supervisor):
    a = await supervisor.acquire("pcf8574", _config("a", 0x27, rows=4, cols=20))
    b = await supervisor.acquire("pcf8574", _config("b", 0x26))

    await _crash(supervisor, "a")

    restarted = supervisor.whereis("pcf8574", "a")
    assert restarted is not None
    assert restarted is not a
    assert restarted.is_alive()
    # Reseeded from the original config
    assert (restarted.state.rows, restarted.state.cols) == (4, 20)
    assert supervisor.whereis("pcf8574", "b") is b
    assert b.is_alive()
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_restart_intensity_abandons_identity(ports, sleep):
    supervisor = DisplaySupervisor(ports, sleep=sleep, max_restarts=2, clock=lambda: 0.0)
    await supervisor.acquire("pcf8574", _config("a", 0x27))
    b = await supervisor.acquire("pcf8574", _config("b", 0x26))

    await _crash(supervisor, "a")
    await _crash(supervisor, "a")
    assert supervisor.whereis("pcf8574", "a") is not None

    await _crash(supervisor, "a")
    assert supervisor.whereis("pcf8574", "a") is None
    assert b.is_alive()
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_restart_window_expires(ports, sleep):
    now = [0.0]
    supervisor = DisplaySupervisor(
        ports, sleep=sleep, max_restarts=1, max_seconds=5.0, clock=lambda: now[0]
    )
    await supervisor.acquire("pcf8574", _config("a"))

    await _crash(supervisor, "a")
    now[0] = 10.0
    await _crash(supervisor, "a")
    assert supervisor.whereis("pcf8574", "a") is not None
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_failing_restart_gives_up(supervisor, ports):
    await supervisor.acquire("pcf8574", _config("a"))
    ports.i2c.fail_open = True

    await _crash(supervisor, "a")
    assert supervisor.whereis("pcf8574", "a") is None
    assert supervisor.children() == []


@pytest.mark.asyncio
async def test_shutdown_stops_everything(supervisor, ports):
    first = await supervisor.acquire("pcf8574", _config("a", 0x27))
    second = await supervisor.acquire("pcf8574", _config("b", 0x26))

    await supervisor.shutdown()

    assert first.exit_reason == "normal"
    assert second.exit_reason == "normal"
    assert supervisor.registry.identities() == []
    assert ports.i2c.open_handles == []
    with pytest.raises(SupervisorError):
        await supervisor.acquire("pcf8574", _config("a"))


@pytest.mark.asyncio
async def test_acquire_all_from_toml(supervisor, tmp_path):
    path = tmp_path / "lcd.toml"
    path.write_text(
        """
[[displays]]
driver = "pcf8574"
display_name = "front"

[[displays]]
driver = "sn74hc595"
rows = 4
cols = 20
"""
    )
    cfg = load_from_toml(path)
    controllers = await supervisor.acquire_all(cfg.displays)

    assert [c.identity for c in controllers] == [
        ("pcf8574", "front"),
        ("sn74hc595", "spidev0.0"),
    ]
    assert controllers[1].state.rows == 4
    await supervisor.shutdown()


@pytest.mark.asyncio
async def test_from_config_uses_mock_buses(sleep):
    supervisor = DisplaySupervisor.from_config(default_config(), sleep=sleep)
    assert isinstance(supervisor.ports.i2c, MockI2C)

    (controller,) = await supervisor.acquire_all(default_config().displays)
    assert controller.identity == ("pcf8574", "display 1")
    assert supervisor.ports.i2c.frames(0x27)
    await supervisor.shutdown()


if __name__ == "__main__":
    pytest.main([__file__])
