"""Tagged results returned by driver and controller execute calls."""

from dataclasses import dataclass
from typing import Any, Union

from .state import DisplayState


@dataclass(frozen=True)
class Ok:
    state: DisplayState


@dataclass(frozen=True)
class Unsupported:
    """The command is unknown to this driver or its preconditions failed."""

    command: Any
    state: DisplayState


@dataclass(frozen=True)
class Error:
    reason: BaseException


Result = Union[Ok, Unsupported, Error]
