"""Leading-edge throttle with a trailing call per cooldown window.

Behaviour of a Throttle wrapping ``fn`` with cooldown ``c``:
- The very first call runs fn() synchronously and arms a timer for ``c``.
- Calls made while the timer is armed are dropped.
- When the timer fires, the throttle returns to idle and fn() is scheduled
  on the next loop turn (call_soon), once per armed timer.
- Any later call while idle only arms a new timer; fn() then runs once at the
  end of that window.

All state changes happen inside event loop callbacks or the caller's own turn,
so no locking is needed.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from beartype import beartype
from loguru import logger


class Throttle:
    """Callable wrapper produced by make_throttle().

    Args:
        cooldown: Window length in seconds (MUST be >= 0)
        fn: Zero-argument callback; its exceptions are never caught here
        loop: Event loop used for scheduling; when None, the running loop is
            looked up on every call that arms a timer
    """

    @beartype
    def __init__(
        self,
        cooldown: int | float,
        fn: Callable[[], Any],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        assert cooldown >= 0, f"Cooldown must be non-negative: {cooldown}"
        self.cooldown = float(cooldown)
        self._fn = fn
        self._loop = loop
        self._pending = False
        self._fired_once = False
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """True while a cooldown timer is counting down."""
        return self._pending

    @property
    def fired_once(self) -> bool:
        return self._fired_once

    def __call__(self) -> None:
        if self._pending:
            return

        loop = self._loop or asyncio.get_running_loop()

        if not self._fired_once:
            self._fn()
            self._fired_once = True

        self._timer = loop.call_later(self.cooldown, self._on_timer, loop)
        self._pending = True
        logger.trace(f"Throttle armed for {self.cooldown:.3f}s")

    def _on_timer(self, loop: asyncio.AbstractEventLoop) -> None:
        self._pending = False
        self._timer = None
        logger.trace("Throttle window closed, scheduling trailing call")
        loop.call_soon(self._fn)


@beartype
def make_throttle(
    cooldown: int | float,
    fn: Callable[[], Any],
    loop: asyncio.AbstractEventLoop | None = None,
) -> Throttle:
    """Wrap ``fn`` so bursts of calls collapse into one trailing call.

    Args:
        cooldown: Window length in seconds
        fn: Zero-argument callback
        loop: Optional event loop (default: the running loop at call time)

    Returns:
        Throttle instance; call it as often as needed.

    Example:
        redraw = make_throttle(0.1, view.redraw)
        for event in events:
            redraw()
    """
    return Throttle(cooldown, fn, loop)
