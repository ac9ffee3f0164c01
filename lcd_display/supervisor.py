"""
Display Supervisor - Acquisition and Crash Recovery

This module contains the DisplaySupervisor class, which creates display
controllers on request and keeps at most one registered controller per
(driver kind, display name) identity.

Policies:
- acquire(): latest request wins. A controller already registered for the
  identity is killed and a fresh one started from the new config.
- Crash recovery is one-for-one: only the crashed controller is restarted,
  from the config it was last acquired with. Restarts are bounded per
  identity (max_restarts within max_seconds); past the limit the identity is
  abandoned and other displays carry on.

The kill-then-recreate step is not atomic. A second acquire for the same
identity that starts inside that window may bring up a transient duplicate;
whichever registers first wins and the other is released.
"""

import asyncio
import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Set, Type, Union

from .bus import BusPorts, TransportError, ports_for_config
from .config import DisplaySpec, LcdConfig
from .controller import KILLED, NORMAL, DisplayController, ExitReason
from .drivers import resolve_driver
from .hd44780 import HD44780Driver
from .registry import Identity, ProcessRegistry
from .validation import ValidationError


logger = logging.getLogger(__name__)

DEFAULT_MAX_RESTARTS = 3
DEFAULT_MAX_SECONDS = 5.0


class SupervisorError(Exception):
    """Raised when the supervisor cannot hand out a controller."""

    pass


@dataclass
class _Child:
    driver_cls: Type[HD44780Driver]
    config: Dict[str, Any]
    controller: DisplayController
    restarts: Deque[float] = field(default_factory=deque)

    @property
    def identity(self) -> Identity:
        return self.controller.identity


class DisplaySupervisor:
    """
    Supervisor for display controllers.

    Uses the injected bus ports for every driver it creates and the registry
    to enforce identity uniqueness.
    """

    def __init__(
        self,
        ports: BusPorts,
        registry: Optional[ProcessRegistry] = None,
        max_restarts: int = DEFAULT_MAX_RESTARTS,
        max_seconds: float = DEFAULT_MAX_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize supervisor.

        Args:
            ports: Bus implementations handed to every driver
            registry: Identity registry (default: new instance)
            max_restarts: Restarts allowed per identity within max_seconds
            max_seconds: Restart intensity window
            sleep: Blocking wait passed to drivers
            rng: Random source passed to drivers
            clock: Monotonic clock for restart intensity
        """
        if max_restarts < 0:
            raise ValueError(f"max_restarts must be >= 0, got {max_restarts}")
        if max_seconds <= 0:
            raise ValueError(f"max_seconds must be positive, got {max_seconds}")

        self.ports = ports
        self.registry = registry or ProcessRegistry()
        self.max_restarts = max_restarts
        self.max_seconds = max_seconds
        self._sleep = sleep
        self._rng = rng
        self._clock = clock
        self._children: Dict[Identity, _Child] = {}
        self._restart_tasks: Set[asyncio.Task] = set()
        self._shutting_down = False

    @classmethod
    def from_config(
        cls, lcd_config: LcdConfig, use_hardware: Optional[bool] = None, **kwargs: Any
    ) -> "DisplaySupervisor":
        """Supervisor on mock or hardware buses as selected by `[bus] mock`."""
        return cls(ports_for_config(lcd_config, use_hardware), **kwargs)

    # ------------------------------------------------------------------
    # Public API

    async def acquire(
        self,
        driver_kind: Union[str, Type[HD44780Driver]],
        config: Mapping[str, Any],
    ) -> DisplayController:
        """
        Get a freshly started controller for a display.

        Args:
            driver_kind: Driver name (e.g. "pcf8574") or driver class
            config: Display configuration mapping

        Returns:
            DisplayController: The registered controller for the identity

        Raises:
            ConfigError: Unknown driver or invalid configuration
            TransportError: The bus could not be opened or initialised
        """
        if self._shutting_down:
            raise SupervisorError("Supervisor is shutting down")

        driver_cls = resolve_driver(driver_kind)
        identity = (driver_cls.kind, driver_cls.display_name_for(config))

        existing = self.registry.lookup(identity)
        if existing is not None:
            logger.info(f"Replacing controller for {identity}")
            await existing.kill()

        controller = await self._start_child(driver_cls, config)
        if not self.registry.register(identity, controller):
            winner = self.registry.whereis(identity)
            logger.warning(f"Lost registration race for {identity}; releasing duplicate")
            await controller.kill()
            if winner is None:
                raise SupervisorError(f"Controller for {identity} exited during acquire")
            return winner

        self._children[identity] = _Child(driver_cls, dict(config), controller)
        logger.info(f"Acquired {identity}")
        return controller

    async def acquire_all(self, specs: Iterable[DisplaySpec]) -> List[DisplayController]:
        """Acquire every display of a loaded configuration, in order."""
        return [await self.acquire(spec.driver, spec.config) for spec in specs]

    def whereis(self, driver_kind: str, display_name: str) -> Optional[DisplayController]:
        return self.registry.whereis((driver_kind, display_name))

    def children(self) -> List[DisplayController]:
        return [child.controller for child in self._children.values()]

    async def wait_for_restarts(self) -> None:
        """Wait until no restart is in progress."""
        while self._restart_tasks:
            await asyncio.wait(set(self._restart_tasks))

    async def shutdown(self) -> None:
        """Cancel pending restarts and stop every child gracefully."""
        self._shutting_down = True
        for task in list(self._restart_tasks):
            task.cancel()
        if self._restart_tasks:
            await asyncio.wait(set(self._restart_tasks))

        children = list(self._children.values())
        await asyncio.gather(*(child.controller.stop() for child in children))
        self._children.clear()
        logger.info(f"Supervisor stopped {len(children)} displays")

    # ------------------------------------------------------------------
    # Child management

    async def _start_child(
        self, driver_cls: Type[HD44780Driver], config: Mapping[str, Any]
    ) -> DisplayController:
        driver = driver_cls(self.ports, sleep=self._sleep, rng=self._rng)
        controller = await DisplayController.start(driver, config)
        controller.add_exit_listener(self._on_child_exit)
        return controller

    def _on_child_exit(self, controller: DisplayController, reason: ExitReason) -> None:
        identity = controller.identity
        child = self._children.get(identity)
        if child is None or child.controller is not controller:
            return

        if reason in (NORMAL, KILLED) or self._shutting_down:
            del self._children[identity]
            return

        logger.warning(f"Controller {identity} crashed: {reason!r}")
        task = asyncio.get_running_loop().create_task(
            self._restart(child), name=f"restart:{identity}"
        )
        self._restart_tasks.add(task)
        task.add_done_callback(self._restart_tasks.discard)

    def _allow_restart(self, child: _Child) -> bool:
        now = self._clock()
        while child.restarts and now - child.restarts[0] > self.max_seconds:
            child.restarts.popleft()
        if len(child.restarts) >= self.max_restarts:
            return False
        child.restarts.append(now)
        return True

    async def _restart(self, child: _Child) -> None:
        identity = child.identity
        while True:
            if not self._allow_restart(child):
                logger.error(
                    f"Giving up on {identity}: more than {self.max_restarts} "
                    f"restarts in {self.max_seconds}s"
                )
                self._abandon(child)
                return
            try:
                controller = await self._start_child(child.driver_cls, child.config)
            except (ValidationError, TransportError) as e:
                logger.warning(f"Restart of {identity} failed: {e}")
                continue
            break

        if self._children.get(identity) is not child:
            # Re-acquired or shut down while restarting
            await controller.kill()
            return
        if not self.registry.register(identity, controller):
            logger.warning(f"{identity} was re-acquired during restart; dropping restart")
            self._children.pop(identity, None)
            await controller.kill()
            return

        child.controller = controller
        logger.info(f"Restarted {identity} ({len(child.restarts)} recent restarts)")

    def _abandon(self, child: _Child) -> None:
        if self._children.get(child.identity) is child:
            del self._children[child.identity]
