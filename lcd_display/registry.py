"""
Process registry: (driver kind, display name) -> live DisplayController.

All methods are synchronous and never await, so on a single event loop
register() is atomic with respect to other coroutines.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .controller import DisplayController, ExitReason

logger = logging.getLogger(__name__)

Identity = Tuple[str, str]


class ProcessRegistry:
    def __init__(self) -> None:
        self._entries: Dict[Identity, DisplayController] = {}

    def register(self, identity: Identity, controller: DisplayController) -> bool:
        """
        Register a controller unless a live one already holds the identity.

        The entry is removed automatically when the controller exits.

        Returns:
            bool: True if registered, False if the identity is taken
        """
        if self.whereis(identity) is not None:
            return False
        if not controller.is_alive():
            return False

        self._entries[identity] = controller

        def _unregister(exited: DisplayController, reason: ExitReason) -> None:
            self.unregister(identity, exited)

        controller.add_exit_listener(_unregister)
        logger.debug(f"Registered {identity}")
        return True

    def unregister(self, identity: Identity, controller: Optional[DisplayController] = None) -> None:
        """Remove an entry; with `controller` given, only if it still owns it."""
        current = self._entries.get(identity)
        if current is None:
            return
        if controller is not None and current is not controller:
            return
        del self._entries[identity]
        logger.debug(f"Unregistered {identity}")

    def whereis(self, identity: Identity) -> Optional[DisplayController]:
        """Live controller for an identity, or None."""
        controller = self._entries.get(identity)
        if controller is not None and not controller.is_alive():
            # Terminating; its exit listener will drop the entry
            return None
        return controller

    def lookup(self, identity: Identity) -> Optional[DisplayController]:
        """Registered controller, including one that is still shutting down."""
        return self._entries.get(identity)

    def identities(self) -> List[Identity]:
        return [i for i, c in self._entries.items() if c.is_alive()]
