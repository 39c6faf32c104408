"""Exchange-rate plugins."""

from swapadapters.rate.base import RateHint, RateInfo, RatePair, RatePlugin, is_fiat
from swapadapters.rate.nomics import NomicsRatePlugin

__all__ = [
    "RateHint",
    "RateInfo",
    "RatePair",
    "RatePlugin",
    "is_fiat",
    "NomicsRatePlugin",
]
