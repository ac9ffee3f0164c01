"""
Display Controller - One Actor per Display

This module contains the DisplayController class, which owns the state and
bus handles of exactly one physical display and serialises every command
sent to it.

Commands are queued in a mailbox drained by a single asyncio task. Each one
runs in a worker thread so the millisecond waits of the HD44780 protocol
never block the event loop and separate displays progress in parallel.
"""

import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from .hd44780 import HD44780Driver
from .results import Error, Result
from .state import DisplayState


logger = logging.getLogger(__name__)

ExitReason = Union[str, BaseException]
ExitListener = Callable[["DisplayController", ExitReason], None]

NORMAL = "normal"
KILLED = "killed"

_STOP = object()


class ControllerError(Exception):
    """Base exception for display controller errors."""

    pass


class ControllerExitedError(ControllerError):
    """Raised when calling a controller that has terminated."""

    pass


class DisplayController:
    """
    Actor owning one display.

    Lifecycle:
    - start(): driver bring-up, then the mailbox task is spawned
    - execute(): FIFO, one command at a time, never cancelled once dispatched
    - stop(): graceful; queued behind pending commands, powers the display down
    - kill() / exit(reason): terminate after the in-flight command and close
      the bus without further writes

    Exit listeners are called with the exit reason: "normal", "killed" or the
    exception passed to exit().
    """

    def __init__(self, driver: HD44780Driver, state: DisplayState):
        """
        Initialize controller around an already started display.

        Args:
            driver: Driver that produced the state
            state: Initial display state (owned by this controller from now on)
        """
        self.driver = driver
        self._state = state
        self._mailbox: asyncio.Queue = asyncio.Queue()
        self._listeners: List[ExitListener] = []
        self._task: Optional[asyncio.Task] = None
        self._accepting = True
        self._released = False
        self._cancel_deferred = False
        self._pending_reason: Optional[ExitReason] = None
        self._exit_reason: Optional[ExitReason] = None

        self.logger = logging.getLogger(f"{__name__}")

    @classmethod
    async def start(
        cls, driver: HD44780Driver, config: Mapping[str, Any]
    ) -> "DisplayController":
        """
        Bring up a display and spawn its controller.

        Raises:
            ConfigError: If the configuration is invalid
            TransportError: If the bus cannot be opened or initialised
        """
        state = await asyncio.to_thread(driver.start, config)
        controller = cls(driver, state)
        controller._spawn()
        return controller

    def _spawn(self) -> None:
        name = f"lcd:{self._state.driver_kind}:{self._state.display_name}"
        self._task = asyncio.get_running_loop().create_task(self._run(), name=name)
        self.logger.info(f"Controller {name} running")

    # ------------------------------------------------------------------
    # Introspection

    @property
    def identity(self) -> Tuple[str, str]:
        return self._state.identity

    @property
    def state(self) -> DisplayState:
        """The state after the last completed command."""
        return self._state

    def is_alive(self) -> bool:
        return self._accepting and self._exit_reason is None

    @property
    def exit_reason(self) -> Optional[ExitReason]:
        return self._exit_reason

    def add_exit_listener(self, listener: ExitListener) -> None:
        """Register a callback for termination; fires at once if already exited."""
        if self._exit_reason is not None:
            listener(self, self._exit_reason)
        else:
            self._listeners.append(listener)

    def remove_exit_listener(self, listener: ExitListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Client API

    async def execute(self, command: Any) -> Result:
        """
        Queue a command and wait for its result.

        Returns:
            Ok, Unsupported or Error

        Raises:
            ControllerExitedError: If the controller has terminated or is
                terminating
        """
        if not self.is_alive():
            raise ControllerExitedError(f"Controller {self.identity} has exited")
        future = asyncio.get_running_loop().create_future()
        self._mailbox.put_nowait((command, future))
        return await future

    async def stop(self) -> None:
        """Graceful stop: finish queued commands, power down, close the bus."""
        if not self.is_alive():
            await self._wait_exited()
            return
        self._accepting = False
        self._mailbox.put_nowait(_STOP)
        await self._wait_exited()

    async def kill(self) -> None:
        """Terminate after the in-flight command; queued commands fail."""
        await self._terminate(KILLED)

    async def exit(self, reason: BaseException) -> None:
        """Terminate abnormally, as if the actor had crashed with `reason`."""
        await self._terminate(reason)

    async def _terminate(self, reason: ExitReason) -> None:
        if self._exit_reason is None and self._pending_reason is None:
            self._pending_reason = reason
            self._accepting = False
            if self._task is not None:
                self._task.cancel()
        await self._wait_exited()

    async def _wait_exited(self) -> None:
        if self._task is not None and not self._task.done():
            # asyncio.wait never raises the task's cancellation into us
            await asyncio.wait({self._task})

    # ------------------------------------------------------------------
    # Actor loop

    async def _run(self) -> None:
        reason: ExitReason = NORMAL
        try:
            while True:
                item = await self._mailbox.get()
                if item is _STOP:
                    await self._run_in_flight(self.driver.stop, self._state)
                    self._released = True
                    if self._cancel_deferred:
                        raise asyncio.CancelledError()
                    break
                command, future = item
                if future.done():
                    # Caller gave up before dispatch
                    continue
                result = await self._dispatch(command)
                if not future.done():
                    future.set_result(result)
                if self._cancel_deferred:
                    raise asyncio.CancelledError()
        except asyncio.CancelledError:
            reason = self._pending_reason or KILLED
            raise
        except Exception as e:
            self.logger.exception(f"Controller {self.identity} crashed")
            reason = e
        finally:
            await self._finish(reason)

    async def _run_in_flight(self, fn: Callable, *args: Any) -> Any:
        # The worker thread cannot be interrupted: a cancel waits for it and
        # is re-raised by _run once the result has been delivered.
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            self._cancel_deferred = True
            await asyncio.wait({task})
            return task.result()

    async def _dispatch(self, command: Any) -> Result:
        self.logger.debug(f"{self.identity} <- {command!r}")
        try:
            result = await self._run_in_flight(self.driver.execute, self._state, command)
        except Exception as e:
            self.logger.exception(f"{self.identity}: driver raised on {command!r}")
            return Error(e)
        state = getattr(result, "state", None)
        if isinstance(state, DisplayState):
            self._state = state
        return result

    async def _finish(self, reason: ExitReason) -> None:
        self._accepting = False
        if not self._released:
            self._released = True
            try:
                await asyncio.to_thread(self.driver.release, self._state)
            except asyncio.CancelledError:
                # Release is best-effort once the loop itself is shutting down
                self.logger.warning(f"Release of {self.identity} interrupted")

        self._exit_reason = reason
        while not self._mailbox.empty():
            item = self._mailbox.get_nowait()
            if item is not _STOP:
                _, future = item
                if not future.done():
                    future.set_exception(
                        ControllerExitedError(f"Controller {self.identity} has exited")
                    )

        if reason in (NORMAL, KILLED):
            self.logger.info(f"Controller {self.identity} exited ({reason})")
        else:
            self.logger.warning(f"Controller {self.identity} exited abnormally: {reason!r}")

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(self, reason)
            except Exception:
                self.logger.exception(f"Exit listener for {self.identity} failed")
