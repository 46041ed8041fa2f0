from .errors import InvalidTransition, NoActiveRound, PriceUnavailable, RoundError
from .forecast import predict
from .history import PriceHistory
from .models import Prediction, PriceSample, ResolutionResult, Round, RoundResolution
from .rounds import RoundManager
from .scheduler import next_scheduled_start

__all__ = [
    "InvalidTransition",
    "NoActiveRound",
    "PriceUnavailable",
    "RoundError",
    "predict",
    "PriceHistory",
    "Prediction",
    "PriceSample",
    "ResolutionResult",
    "Round",
    "RoundResolution",
    "RoundManager",
    "next_scheduled_start",
]
