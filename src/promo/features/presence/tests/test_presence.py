from __future__ import annotations

import pytest
import simpy

from promo.core.config import PresenceConfig
from promo.core.rng import RNG


class ScriptedRNG:
    """
    randint() returns scripted values in order; records requested bounds.
    """

    def __init__(self, values):
        self.values = list(values)
        self.i = 0
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        v = self.values[self.i % len(self.values)]
        self.i += 1
        return int(v)


def make_sim(env, rng, **kwargs):
    from promo.features.presence.service import PresenceSimulator

    return PresenceSimulator(env=env, rng=rng, cfg=PresenceConfig(), **kwargs)


def test_happy_customers_drawn_once_at_construction():
    env = simpy.Environment()
    rng = ScriptedRNG([1043, 50, 3])
    sim = make_sim(env, rng)

    assert rng.calls == [(700, 1300)]
    assert sim.happy_customers_base == 1043

    sim.initialize()
    env.run(until=40.0)

    assert sim.happy_customers_base == 1043
    assert sim.happy_customers_base == 1043
    assert rng.calls.count((700, 1300)) == 1


def test_initialize_draws_inclusive_online_range():
    env = simpy.Environment()
    rng = ScriptedRNG([800, 100])
    sim = make_sim(env, rng)

    assert sim.initialize() == 100
    assert rng.calls[1] == (0, 100)
    assert sim.online_count == 100


def test_tick_uses_symmetric_step_and_clamps_high():
    env = simpy.Environment()
    rng = ScriptedRNG([800, 98, 5])
    sim = make_sim(env, rng)
    sim.initialize()

    assert sim.tick() == 100
    assert rng.calls[-1] == (-5, 5)


def test_tick_clamps_low():
    env = simpy.Environment()
    rng = ScriptedRNG([800, 2, -5])
    sim = make_sim(env, rng)
    sim.initialize()

    assert sim.tick() == 0


def test_online_count_stays_in_bounds_for_long_walks():
    env = simpy.Environment()
    seen: list[tuple[int, int]] = []
    sim = make_sim(env, RNG(seed=7), on_tick=lambda before, after: seen.append((before, after)))
    sim.initialize()

    env.run(until=4.0 * 5000 + 1)

    assert len(seen) == 5000
    for before, after in seen:
        assert 0 <= after <= 100
        assert abs(after - before) <= 5


def test_ticks_fire_on_fixed_period():
    env = simpy.Environment()
    times: list[float] = []
    sim = make_sim(env, RNG(seed=1), on_tick=lambda before, after: times.append(env.now))
    sim.initialize()

    env.run(until=13.0)

    assert times == [4.0, 8.0, 12.0]


def test_dispose_stops_ticking_and_is_idempotent():
    env = simpy.Environment()
    ticks: list[int] = []
    sim = make_sim(env, RNG(seed=3), on_tick=lambda before, after: ticks.append(after))
    sim.initialize()

    env.run(until=9.0)
    assert len(ticks) == 2

    sim.dispose()
    sim.dispose()
    assert sim.is_running is False

    env.run(until=100.0)
    assert len(ticks) == 2


def test_dispose_before_first_step_never_ticks():
    env = simpy.Environment()
    ticks: list[int] = []
    sim = make_sim(env, RNG(seed=3), on_tick=lambda before, after: ticks.append(after))
    sim.initialize()
    sim.dispose()

    env.run(until=50.0)
    assert ticks == []


def test_dispose_from_tick_listener():
    env = simpy.Environment()
    ticks: list[int] = []

    def listener(before, after):
        ticks.append(after)
        sim.dispose()

    sim = make_sim(env, RNG(seed=3), on_tick=listener)
    sim.initialize()

    env.run(until=50.0)
    assert len(ticks) == 1


def test_lifecycle_misuse_raises():
    env = simpy.Environment()
    sim = make_sim(env, RNG(seed=3))

    with pytest.raises(RuntimeError):
        _ = sim.online_count

    sim.initialize()
    with pytest.raises(RuntimeError):
        sim.initialize()

    sim.dispose()
    fresh = make_sim(env, RNG(seed=3))
    fresh.dispose()
    with pytest.raises(RuntimeError):
        fresh.initialize()
