class RollError(Exception):
    """Base class for every recoverable roll/store failure."""


class InvalidArgument(RollError, ValueError):
    """Bad setter or option input (e.g. non-positive luck)."""


class InvalidBoost(RollError):
    """A rarity boost would drive a pool weight negative."""


class EmptyPool(RollError):
    """No eligible rarities, or zero total weight, after filtering/boosting."""


class NoAttempts(RollError):
    """Effective luck resolved to zero attempts."""
