"""Seeded random sources and distribution specifications."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping

import numpy as np
from scipy import stats

from .errors import InvalidParameter


def _require_number(family: str, name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise InvalidParameter(
            f"{family}.{name} must be a number, got {type(value).__name__}"
        )
    if not math.isfinite(value):
        raise InvalidParameter(f"{family}.{name} must be finite, got {value}")
    return value


def _check_uniform(p: dict[str, float]) -> None:
    if p["high"] <= p["low"]:
        raise InvalidParameter(
            f"uniform requires low < high, got low={p['low']}, high={p['high']}"
        )


def _check_normal(p: dict[str, float]) -> None:
    if p["sd"] <= 0:
        raise InvalidParameter(f"normal.sd must be positive, got {p['sd']}")


def _check_exponential(p: dict[str, float]) -> None:
    if p["rate"] <= 0:
        raise InvalidParameter(f"exponential.rate must be positive, got {p['rate']}")


def _check_binomial(p: dict[str, float]) -> None:
    n = p["n"]
    if n < 0 or int(n) != n:
        raise InvalidParameter(f"binomial.n must be a non-negative integer, got {n}")
    if not 0 <= p["p"] <= 1:
        raise InvalidParameter(f"binomial.p must be in [0, 1], got {p['p']}")


def _check_poisson(p: dict[str, float]) -> None:
    if p["lam"] < 0:
        raise InvalidParameter(f"poisson.lam must be non-negative, got {p['lam']}")


def _check_beta(p: dict[str, float]) -> None:
    for name in ("a", "b"):
        if p[name] <= 0:
            raise InvalidParameter(f"beta.{name} must be positive, got {p[name]}")


@dataclass(frozen=True)
class _Family:
    """Parameter names, validation and numpy/scipy bindings of one family."""

    params: tuple[str, ...]
    check: Callable[[dict[str, float]], None]
    sample: Callable[[np.random.Generator, dict[str, float], Any], Any]
    frozen: Callable[[dict[str, float]], Any]
    discrete: bool = False


FAMILIES: dict[str, _Family] = {
    "uniform": _Family(
        params=("low", "high"),
        check=_check_uniform,
        sample=lambda rng, p, size: rng.uniform(p["low"], p["high"], size),
        frozen=lambda p: stats.uniform(loc=p["low"], scale=p["high"] - p["low"]),
    ),
    "normal": _Family(
        params=("mean", "sd"),
        check=_check_normal,
        sample=lambda rng, p, size: rng.normal(p["mean"], p["sd"], size),
        frozen=lambda p: stats.norm(loc=p["mean"], scale=p["sd"]),
    ),
    "exponential": _Family(
        params=("rate",),
        check=_check_exponential,
        sample=lambda rng, p, size: rng.exponential(1.0 / p["rate"], size),
        frozen=lambda p: stats.expon(scale=1.0 / p["rate"]),
    ),
    "binomial": _Family(
        params=("n", "p"),
        check=_check_binomial,
        sample=lambda rng, p, size: rng.binomial(int(p["n"]), p["p"], size),
        frozen=lambda p: stats.binom(int(p["n"]), p["p"]),
        discrete=True,
    ),
    "poisson": _Family(
        params=("lam",),
        check=_check_poisson,
        sample=lambda rng, p, size: rng.poisson(p["lam"], size),
        frozen=lambda p: stats.poisson(p["lam"]),
        discrete=True,
    ),
    "beta": _Family(
        params=("a", "b"),
        check=_check_beta,
        sample=lambda rng, p, size: rng.beta(p["a"], p["b"], size),
        frozen=lambda p: stats.beta(p["a"], p["b"]),
    ),
}


@dataclass(frozen=True)
class Distribution:
    """A distribution family plus its parameters.

    Construction validates every parameter, so an invalid parameter set
    fails before a single value is drawn. ``params`` is stored as a
    read-only copy; changing the mapping passed in has no effect.

    Example:
        >>> Distribution("normal", {"mean": 0.0, "sd": 1.0})
        >>> Distribution.uniform(0.0, 1.0)
    """

    family: str
    params: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        spec = FAMILIES.get(self.family)
        if spec is None:
            raise InvalidParameter(
                f"Unknown distribution family '{self.family}' "
                f"(choices: {', '.join(sorted(FAMILIES))})"
            )
        missing = [name for name in spec.params if name not in self.params]
        if missing:
            raise InvalidParameter(f"{self.family} is missing parameters: {missing}")
        unknown = sorted(set(self.params) - set(spec.params))
        if unknown:
            raise InvalidParameter(f"{self.family} got unknown parameters: {unknown}")
        for name in spec.params:
            _require_number(self.family, name, self.params[name])
        spec.check(self.params)

    def __hash__(self) -> int:
        return hash((self.family, tuple(sorted(self.params.items()))))

    # Convenience constructors
    @classmethod
    def uniform(cls, low: float = 0.0, high: float = 1.0) -> "Distribution":
        return cls("uniform", {"low": low, "high": high})

    @classmethod
    def normal(cls, mean: float = 0.0, sd: float = 1.0) -> "Distribution":
        return cls("normal", {"mean": mean, "sd": sd})

    @classmethod
    def exponential(cls, rate: float = 1.0) -> "Distribution":
        return cls("exponential", {"rate": rate})

    @classmethod
    def binomial(cls, n: int, p: float) -> "Distribution":
        return cls("binomial", {"n": n, "p": p})

    @classmethod
    def poisson(cls, lam: float) -> "Distribution":
        return cls("poisson", {"lam": lam})

    @classmethod
    def beta(cls, a: float, b: float) -> "Distribution":
        return cls("beta", {"a": a, "b": b})

    @property
    def discrete(self) -> bool:
        return FAMILIES[self.family].discrete

    def frozen(self):
        """Return the equivalent scipy.stats frozen distribution."""
        return FAMILIES[self.family].frozen(self.params)

    def density(self, x):
        """Density (continuous) or mass (discrete) at x."""
        dist = self.frozen()
        return dist.pmf(x) if self.discrete else dist.pdf(x)

    def cdf(self, x):
        return self.frozen().cdf(x)

    def quantile(self, q):
        """Inverse CDF. Probabilities must lie in [0, 1]."""
        q_arr = np.asarray(q, dtype=float)
        if np.any(~np.isfinite(q_arr)) or np.any((q_arr < 0) | (q_arr > 1)):
            raise InvalidParameter(f"quantile probabilities must be in [0, 1], got {q}")
        return self.frozen().ppf(q)

    def mean(self) -> float:
        return float(self.frozen().mean())

    def sample(self, rng: np.random.Generator, size=None):
        return FAMILIES[self.family].sample(rng, self.params, size)


STANDARD_UNIFORM = Distribution.uniform(0.0, 1.0)


def _validate_seed(seed: Any) -> int:
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise InvalidParameter(
            f"seed must be a non-negative integer, got {type(seed).__name__}"
        )
    if seed < 0:
        raise InvalidParameter(f"seed must be a non-negative integer, got {seed}")
    return int(seed)


class SeededSource:
    """Deterministic draw source owned by the caller.

    Wraps a single ``numpy.random.Generator`` (PCG64). Two sources built from
    the same seed yield identical values for the same sequence of requests.
    Reseeding never mutates a source: ``reseed`` returns a fresh one, so
    whatever was consumed before has no effect on what comes after.
    """

    def __init__(self, seed: int | np.random.SeedSequence):
        if isinstance(seed, np.random.SeedSequence):
            self._seed = None
            self._seed_seq = seed
        else:
            self._seed = _validate_seed(seed)
            self._seed_seq = np.random.SeedSequence(self._seed)
        self._rng = np.random.default_rng(self._seed_seq)
        self.draws_consumed = 0

    @classmethod
    def unseeded(cls) -> "SeededSource":
        """Source seeded from OS entropy. Not reproducible unless ``entropy`` is kept."""
        return cls(np.random.SeedSequence())

    @property
    def seed(self) -> int | None:
        """Integer seed, or None for spawned/entropy-seeded sources."""
        return self._seed

    @property
    def entropy(self) -> int:
        return self._seed_seq.entropy

    @property
    def spawn_key(self) -> tuple[int, ...]:
        return tuple(self._seed_seq.spawn_key)

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def draw(self, dist: Distribution, size=None):
        """Draw one value (size=None) or an array of values from dist."""
        values = dist.sample(self._rng, size)
        self.draws_consumed += 1 if size is None else int(np.prod(size))
        return values

    def uniform(self, size=None):
        """Draw from uniform(0, 1)."""
        return self.draw(STANDARD_UNIFORM, size)

    def stream(self, dist: Distribution) -> Iterator[float]:
        """Lazy infinite sequence of scalar draws from dist."""
        while True:
            yield self.draw(dist)

    def reseed(self, seed: int) -> "SeededSource":
        return SeededSource(seed)

    def spawn(self, n: int) -> list["SeededSource"]:
        """Create n independent child sources.

        Each call produces new children; the parent stream is not consumed.
        """
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise InvalidParameter(f"spawn count must be a non-negative integer, got {n}")
        return [SeededSource(child) for child in self._seed_seq.spawn(n)]

    def __repr__(self) -> str:
        if self._seed is not None:
            return f"SeededSource(seed={self._seed})"
        return f"SeededSource(entropy={self.entropy}, spawn_key={self.spawn_key})"
