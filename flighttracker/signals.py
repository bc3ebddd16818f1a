"""
Minimal signal/callback registry.

Completion of asynchronous operations is delivered by emitting a signal on
the event loop thread. A failing listener is logged and does not stop the
remaining listeners.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """A named list of callbacks invoked in registration order."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[..., None]] = []

    def connect(self, callback: Callable[..., None]) -> None:
        self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, *args) -> None:
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f'{self.name} callback error: {e}')

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f'<Signal {self.name} ({len(self._callbacks)} listeners)>'
