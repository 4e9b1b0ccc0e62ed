def test_import_farmsim_package() -> None:
    import importlib

    module = importlib.import_module("farmsim")
    assert module is not None
    assert module.__version__


def test_import_controller_no_side_effects() -> None:
    from farmsim.services.controllers import FarmController

    assert FarmController is not None


def test_import_rng_no_side_effects() -> None:
    from farmsim.core.rng import RNG

    rng = RNG(42)
    value = rng.randint(0, 1)
    assert value in (0, 1)
