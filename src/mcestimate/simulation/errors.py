"""Error types raised by the sampling and estimation layers."""

from __future__ import annotations


class MonteCarloError(Exception):
    """Base class for estimation errors."""


class InvalidParameter(MonteCarloError, ValueError):
    """A distribution, trial or run parameter is outside its domain.

    Always raised before any draw is consumed.
    """


class UndefinedResult(MonteCarloError, ArithmeticError):
    """An aggregate has no defined value (zero trials, zero crossings)."""
