from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from domain.services.interaction import PointerEvent

PointerHandler = Callable[["PointerEvent"], None]


class Subscription(Protocol):
    def close(self) -> None: ...


class PointerEventSource(Protocol):
    """Document-level pointer stream that delivers move/up events while subscribed."""

    def subscribe(self, on_move: PointerHandler, on_up: PointerHandler) -> Subscription: ...
