from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import simpy

from promo.core.config import PresenceConfig


class RNGLike(Protocol):
    def randint(self, a: int, b: int) -> int: ...


TickListener = Callable[[int, int], None]


def clamp(value: int, lo: int, hi: int) -> int:
    return lo if value < lo else hi if value > hi else value


class PresenceSimulator:
    """
    Bounded random walk behind the "X online" badge.

    - happy_customers_base is drawn once, here in the constructor.
    - initialize() draws the starting online count and starts the tick process.
    - tick() moves the count by a uniform step in [-max_step, max_step], then clamps.
    - dispose() cancels the tick process; later calls are no-ops.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        rng: RNGLike,
        cfg: PresenceConfig | None = None,
        on_tick: TickListener | None = None,
    ) -> None:
        self.env = env
        self.rng = rng
        self.cfg = cfg or PresenceConfig()
        self.on_tick = on_tick

        self._happy_customers_base = int(self.rng.randint(self.cfg.happy_min, self.cfg.happy_max))
        self._online_count: int | None = None
        self._proc: simpy.Process | None = None
        self._loop_started = False
        self._disposed = False

    @property
    def happy_customers_base(self) -> int:
        return self._happy_customers_base

    @property
    def online_count(self) -> int:
        if self._online_count is None:
            raise RuntimeError("PresenceSimulator not initialized. Call initialize() first.")
        return self._online_count

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.is_alive and not self._disposed

    def initialize(self) -> int:
        if self._disposed:
            raise RuntimeError("PresenceSimulator already disposed.")
        if self._online_count is not None:
            raise RuntimeError("PresenceSimulator already initialized.")

        self._online_count = int(self.rng.randint(self.cfg.online_min, self.cfg.online_max))
        self._proc = self.env.process(self._tick_loop())
        return self._online_count

    def tick(self) -> int:
        before = self.online_count
        step = self.cfg.max_step
        delta = int(self.rng.randint(-step, step))
        after = clamp(before + delta, self.cfg.online_min, self.cfg.online_max)
        self._online_count = after

        if self.on_tick is not None:
            self.on_tick(before, after)
        return after

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True

        proc, self._proc = self._proc, None
        if proc is None or not proc.is_alive:
            return
        # Not yet started: the loop sees _disposed on its first step and exits.
        # Active: a tick listener disposed us; the loop exits after the tick.
        if self._loop_started and proc is not self.env.active_process:
            proc.interrupt("disposed")

    def _tick_loop(self):
        self._loop_started = True
        while not self._disposed:
            try:
                yield self.env.timeout(self.cfg.tick_seconds)
            except simpy.Interrupt:
                return
            self.tick()
