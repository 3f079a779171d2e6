"""Marshal loader callbacks onto the Qt thread that owns the bind targets."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, Qt, Signal, Slot

from ..application.interfaces import Dispatcher

LOGGER = logging.getLogger(__name__)


class _Relay(QObject):
    """Lives on the UI thread; queued emissions run ``invoke`` there."""

    posted = Signal(object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.posted.connect(self.invoke, Qt.ConnectionType.QueuedConnection)

    @Slot(object)
    def invoke(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            LOGGER.exception("Dispatched callback failed")


class QtDispatcher(Dispatcher):
    """Post callables to the event loop of the thread that created this object.

    Construct it on the GUI thread.  ``post`` may be called from any worker
    thread; the callable runs on the next turn of the GUI event loop, never
    inline, so delivery order relative to the posting call is always
    asynchronous.
    """

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._relay = _Relay(parent)

    def post(self, callback: Callable[[], None]) -> None:
        try:
            self._relay.posted.emit(callback)
        except RuntimeError:  # pragma: no cover - relay deleted with its parent
            LOGGER.debug("Dispatcher relay is gone; dropping callback")
