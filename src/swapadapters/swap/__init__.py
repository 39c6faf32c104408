"""Swap plugins for third-party exchange aggregators."""

from swapadapters.swap.base import (
    SwapInfo,
    SwapPlugin,
    SwapQuote,
    SwapRequest,
    make_swap_plugin_quote,
)
from swapadapters.swap.coinswitch import CoinSwitchPlugin
from swapadapters.swap.sideshift import SideShiftPlugin

__all__ = [
    "SwapInfo",
    "SwapPlugin",
    "SwapQuote",
    "SwapRequest",
    "make_swap_plugin_quote",
    "CoinSwitchPlugin",
    "SideShiftPlugin",
]
