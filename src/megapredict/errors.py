from __future__ import annotations


class RoundError(Exception):
    """Base class for failures raised by the round lifecycle."""


class PriceUnavailable(RoundError):
    """The price feed failed or produced something that is not a usable price."""


class NoActiveRound(RoundError):
    """Resolution was requested before any round was started."""


class InvalidTransition(RoundError):
    """The requested transition is not allowed from the round's current state."""
