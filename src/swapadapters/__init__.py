"""Swap and exchange-rate adapter plugins for wallet cores.

Plugins:
- SideShift.ai: fixed-rate swaps
- CoinSwitch: fixed-rate offers with floating-rate fallback
- Nomics: crypto/fiat exchange rates
"""

from swapadapters.errors import (
    ExchangeError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
    SwapError,
    SwapPermissionError,
)
from swapadapters.factory import create_rate_plugin, create_swap_plugin
from swapadapters.rate import NomicsRatePlugin, RateHint, RatePair, RatePlugin
from swapadapters.swap import (
    CoinSwitchPlugin,
    SideShiftPlugin,
    SwapInfo,
    SwapPlugin,
    SwapQuote,
    SwapRequest,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "SwapError",
    "SwapBelowLimitError",
    "SwapAboveLimitError",
    "SwapCurrencyError",
    "SwapPermissionError",
    "ExchangeError",
    # Swap
    "SwapInfo",
    "SwapPlugin",
    "SwapQuote",
    "SwapRequest",
    "SideShiftPlugin",
    "CoinSwitchPlugin",
    # Rates
    "RateHint",
    "RatePair",
    "RatePlugin",
    "NomicsRatePlugin",
    # Factory
    "create_swap_plugin",
    "create_rate_plugin",
]
