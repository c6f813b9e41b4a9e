"""Exception types raised by the model comparison pipeline.

Both concrete errors subclass ``ValueError`` so callers that already
guard against bad values keep working.
"""


class HousePriceError(Exception):
    """Base class for all pipeline errors."""


class DomainError(HousePriceError, ValueError):
    """A value lies outside the domain of a transform.

    Raised when the log-price target is requested for a table that
    contains a non-positive (or missing) sale price.
    """


class InvalidArgumentError(HousePriceError, ValueError):
    """Malformed input that must abort the run before any training.

    Examples: a split fraction outside (0, 1), an empty hyperparameter
    grid, a feature matrix whose row count does not match its target,
    or a hold-out set too small to compute R².
    """
