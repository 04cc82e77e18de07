from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from domain.ports.events import PointerEventSource, PointerHandler

if TYPE_CHECKING:
    from domain.services.interaction import PointerEvent


@dataclass(eq=False)
class _Listener:
    on_move: PointerHandler
    on_up: PointerHandler


class _Subscription:
    def __init__(self, source: InMemoryPointerEvents, listener: _Listener) -> None:
        self._source = source
        self._listener = listener

    def close(self) -> None:
        self._source._detach(self._listener)


class InMemoryPointerEvents(PointerEventSource):
    """Synchronous document-level pointer stream for headless hosts and replays."""

    def __init__(self) -> None:
        self._listeners: List[_Listener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, on_move: PointerHandler, on_up: PointerHandler) -> _Subscription:
        listener = _Listener(on_move, on_up)
        self._listeners.append(listener)
        return _Subscription(self, listener)

    def move(self, event: PointerEvent) -> None:
        for listener in list(self._listeners):
            listener.on_move(event)

    def up(self, event: PointerEvent) -> None:
        for listener in list(self._listeners):
            listener.on_up(event)

    def _detach(self, listener: _Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
