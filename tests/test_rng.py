import pytest

from farmsim.core.rng import RNG


def test_rng_determinism_same_seed() -> None:
    rng_a = RNG(12345)
    rng_b = RNG(12345)

    ints_a = [rng_a.randint(1, 100) for _ in range(5)]
    ints_b = [rng_b.randint(1, 100) for _ in range(5)]
    floats_a = [rng_a.random() for _ in range(5)]
    floats_b = [rng_b.random() for _ in range(5)]

    assert ints_a == ints_b
    assert floats_a == floats_b


def test_rng_different_seed() -> None:
    rng_a = RNG(11111)
    rng_b = RNG(22222)

    draws_a = [rng_a.randint(1, 100) for _ in range(5)]
    draws_b = [rng_b.randint(1, 100) for _ in range(5)]

    assert draws_a != draws_b


def test_rng_state_export_restores_stream() -> None:
    rng = RNG(7)
    for _ in range(10):
        rng.random()
    payload = rng.export_state()
    expected = [rng.random() for _ in range(5)]

    restored = RNG(999)
    restored.restore_state(payload)

    assert [restored.random() for _ in range(5)] == expected


def test_rng_equality_tracks_state() -> None:
    rng_a = RNG(3)
    rng_b = RNG(3)
    assert rng_a == rng_b

    rng_a.random()
    assert rng_a != rng_b


def test_rng_chance_extremes() -> None:
    rng = RNG(5)
    assert all(rng.chance(1.0) for _ in range(20))
    assert not any(rng.chance(0.0) for _ in range(20))


def test_rng_restore_rejects_bad_payload() -> None:
    rng = RNG(1)
    with pytest.raises(ValueError):
        rng.restore_state({"version": 3, "state": ["x"], "gauss": None})
