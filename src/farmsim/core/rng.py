"""Deterministic RNG wrapper built on top of random.Random."""
from __future__ import annotations

from random import Random
from typing import Any, List, TypedDict


class RNGStatePayload(TypedDict):
    """JSON-friendly snapshot of the underlying Mersenne Twister state."""

    version: int
    state: List[int]
    gauss: float | None


class RNG:
    """Wrapper around random.Random that provides deterministic helpers."""

    def __init__(self, seed: int) -> None:
        self._random = Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._random.randint(a, b)

    def random(self) -> float:
        """Return the next random floating point number in the range [0.0, 1.0)."""
        return self._random.random()

    def chance(self, probability: float) -> bool:
        """Return True with the given probability (0-1)."""
        return self._random.random() < probability

    def export_state(self) -> RNGStatePayload:
        """Return the generator state in a form json.dumps accepts."""
        version, internal, gauss = self._random.getstate()
        return {"version": version, "state": list(internal), "gauss": gauss}

    def restore_state(self, payload: RNGStatePayload) -> None:
        """Restore a state previously produced by export_state."""
        values = payload["state"]
        if not isinstance(values, list) or not all(isinstance(value, int) for value in values):
            raise ValueError("RNG state must be a list of integers.")
        gauss = payload.get("gauss")
        if gauss is not None and not isinstance(gauss, (int, float)):
            raise ValueError("RNG gauss value must be a number or null.")
        try:
            self._random.setstate((payload["version"], tuple(values), gauss))
        except (TypeError, ValueError) as exc:
            raise ValueError(str(exc)) from exc

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, RNG):
            return NotImplemented
        return self._random.getstate() == other._random.getstate()

    def __repr__(self) -> str:
        return f"RNG(version={self._random.getstate()[0]})"
