"""
Autosave - Debounced persistence of the editor state.

Every graph or scene change calls ``schedule()``. The first change arms a
deadline ``delay`` seconds ahead; ``poll()`` (called once per frame) writes
once the deadline has passed. Changes that arrive while armed are folded
into the same write, so a continuously animating scene is saved at most
once per ``delay`` instead of every frame.
"""

from __future__ import annotations

import logging
import time
from typing import Callable


logger = logging.getLogger(__name__)


class Autosave:
    """Debounced writer around a save callback."""

    def __init__(
        self,
        save: Callable[[], object],
        delay: float = 1.0,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._save = save
        self.delay = delay
        self.enabled = enabled
        self._clock = clock
        self._deadline: float | None = None
        self.save_count = 0

    @property
    def pending(self) -> bool:
        """True if a change is waiting to be written."""
        return self._deadline is not None

    def schedule(self) -> None:
        """Note a change; arms the deadline if not already armed."""
        if not self.enabled:
            return
        if self._deadline is None:
            self._deadline = self._clock() + self.delay

    def poll(self) -> bool:
        """Write if the deadline has passed. Returns True if a write happened."""
        if self._deadline is None or self._clock() < self._deadline:
            return False
        return self.flush()

    def flush(self) -> bool:
        """
        Write now if anything is pending.

        A failed write is logged and retried after another ``delay``.
        """
        if self._deadline is None:
            return False
        try:
            self._save()
        except OSError as e:
            logger.warning("Autosave failed, retrying in %.1fs: %s", self.delay, e)
            self._deadline = self._clock() + self.delay
            return False
        self._deadline = None
        self.save_count += 1
        logger.debug("Autosaved (%d)", self.save_count)
        return True

    def cancel(self) -> None:
        """Drop a pending write (the state on disk is already current)."""
        self._deadline = None
