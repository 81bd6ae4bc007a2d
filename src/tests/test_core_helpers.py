from promo.core.ids import RUN_ID_LENGTH, IdsService, resolve_run_id
from promo.core.rng import RNG


def test_resolve_run_id_hashes_config_only_for_auto():
    raw = {"run": {"seed": 1}, "offer": {"price_amount": 9500}}

    auto = resolve_run_id("auto", raw)

    assert len(auto) == RUN_ID_LENGTH
    assert resolve_run_id("auto", dict(raw)) == auto
    assert resolve_run_id("auto", {**raw, "offer": {"price_amount": 8500}}) != auto
    assert resolve_run_id("nightly", raw) == "nightly"


def test_ids_are_sequenced_per_prefix():
    ids = IdsService(run_id="r1")

    assert ids.next_id("panel") == "panel_r1_00000001"
    assert ids.next_id("visitor") == "visitor_r1_00000001"
    assert ids.next_id("panel") == "panel_r1_00000002"
    assert ids.issued("panel") == 2
    assert ids.issued("cs") == 0


def test_chance_edges():
    rng = RNG(seed=3)

    assert not any(rng.chance(0.0) for _ in range(100))
    assert all(rng.chance(1.0) for _ in range(100))


def test_exponential_mean_and_zero():
    rng = RNG(seed=3)

    assert rng.exponential(0) == 0.0
    draws = [rng.exponential(10.0) for _ in range(5000)]
    assert min(draws) >= 0.0
    assert 9.0 < sum(draws) / len(draws) < 11.0


def test_same_seed_replays_draws():
    a, b = RNG(seed=42), RNG(seed=42)
    assert [a.randint(0, 100) for _ in range(10)] == [b.randint(0, 100) for _ in range(10)]
