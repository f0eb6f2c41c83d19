"""CancelScope — caller-owned cooperative cancellation for validation passes.

The engine never starts timers or threads.  It only *observes* a scope:
before descending into each field and before each rule application it calls
:meth:`CancelScope.raise_if_cancelled`.  A deadline is caller-supplied and
merely compared against ``time.monotonic()``.

Usage::

    scope = CancelScope(timeout=0.5)
    binding.validate(obj, cancel=scope)

    # or from another thread
    scope.cancel(RuntimeError("shutting down"))
"""

from __future__ import annotations

import threading
import time

from tagmodel.errors import DeadlineExceededError, ValidationCancelledError


class CancelScope:
    """A cancellation signal with an optional deadline.

    Parameters:
        timeout: Seconds from construction until the scope expires.
        deadline: Absolute ``time.monotonic()`` value; wins over *timeout*.
    """

    def __init__(self, *, timeout: float | None = None, deadline: float | None = None) -> None:
        if deadline is None and timeout is not None:
            deadline = time.monotonic() + timeout
        self._deadline = deadline
        self._event = threading.Event()
        self._reason: BaseException | None = None
        self._lock = threading.Lock()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self, reason: BaseException | str | None = None) -> None:
        """Signal cancellation.  The first reason wins.

        An exception instance is raised as-is by :meth:`raise_if_cancelled`;
        a string becomes the message of a :class:`ValidationCancelledError`.
        """
        with self._lock:
            if self._event.is_set():
                return
            if isinstance(reason, BaseException):
                self._reason = reason
            elif reason:
                self._reason = ValidationCancelledError(reason)
            else:
                self._reason = ValidationCancelledError()
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def error(self) -> BaseException | None:
        """The cancellation reason, or None while the scope is live."""
        if self._event.is_set():
            return self._reason
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def raise_if_cancelled(self) -> None:
        err = self.error()
        if err is not None:
            raise err
