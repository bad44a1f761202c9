from __future__ import annotations

from typing import Callable, List

Listener = Callable[[], None]


class ChangeChannel:
    """Explicit listener registry used for ``data changed`` fan-out."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def connect(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def _disconnect() -> None:
            self.disconnect(listener)

        return _disconnect

    def disconnect(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def clear(self) -> None:
        self._listeners.clear()

    def emit(self) -> None:
        for listener in tuple(self._listeners):
            listener()

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = ["ChangeChannel", "Listener"]
