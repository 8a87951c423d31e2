"""Trailing-edge debounce for bursty device pushes."""

import asyncio
import logging
from typing import Any, Callable

_LOG = logging.getLogger(__name__)


class Debouncer:
    """
    Collapse rapid calls into a single downstream call.

    Every call restarts the quiescence window; once the window elapses without a
    further call, the downstream function receives the last payload supplied.
    """

    def __init__(
        self,
        window: int,
        emit: Callable[[Any], None],
        scheduler: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Create instance.

        :param window: quiescence window in milliseconds
        :param emit: downstream function receiving the coalesced payload
        :param scheduler: object providing call_later, the running loop by default
        """
        self._window = window
        self._emit = emit
        self._scheduler = scheduler
        self._handle: asyncio.TimerHandle | None = None
        self._payload: Any = None

    def __call__(self, payload: Any) -> None:
        """Queue a payload, replacing any payload still pending."""
        self._payload = payload
        if self._handle is not None:
            self._handle.cancel()
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(self._window / 1000, self._fire)

    @property
    def pending(self) -> bool:
        """Return True while a payload waits for the window to elapse."""
        return self._handle is not None

    def _fire(self) -> None:
        payload = self._payload
        self._handle = None
        self._payload = None
        _LOG.debug("Debounce window elapsed, emitting %s", payload)
        self._emit(payload)
