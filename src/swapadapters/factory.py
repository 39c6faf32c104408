"""Factory for creating swap and rate plugins from settings.

The host calls these with its shared HTTP client and logger; credentials
come from the environment via ``Settings``.
"""

import logging
from typing import Callable, Optional

import httpx

from swapadapters.config import Settings, get_settings
from swapadapters.rate.base import RatePlugin
from swapadapters.swap.base import SwapPlugin

logger = logging.getLogger(__name__)


def create_sideshift_plugin(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
) -> SwapPlugin:
    from swapadapters.swap.sideshift import SideShiftPlugin

    return SideShiftPlugin(
        affiliate_id=settings.sideshift_affiliate_id,
        client=client,
        base_url=settings.sideshift_base_url,
        log=log,
        timeout=settings.http_timeout,
    )


def create_coinswitch_plugin(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
) -> SwapPlugin:
    from swapadapters.swap.coinswitch import CoinSwitchPlugin

    return CoinSwitchPlugin(
        api_key=settings.coinswitch_api_key,
        client=client,
        base_url=settings.coinswitch_base_url,
        log=log,
        timeout=settings.http_timeout,
    )


def create_nomics_plugin(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
) -> RatePlugin:
    from swapadapters.rate.nomics import NomicsRatePlugin

    return NomicsRatePlugin(
        api_key=settings.nomics_api_key,
        client=client,
        base_url=settings.nomics_base_url,
        log=log,
        timeout=settings.http_timeout,
    )


SWAP_PLUGINS: dict[str, Callable[..., SwapPlugin]] = {
    "sideshift": create_sideshift_plugin,
    "coinswitch": create_coinswitch_plugin,
}

RATE_PLUGINS: dict[str, Callable[..., RatePlugin]] = {
    "nomics": create_nomics_plugin,
}


def create_swap_plugin(
    plugin_id: str,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
    settings: Optional[Settings] = None,
) -> SwapPlugin:
    """Create a swap plugin by id ("sideshift", "coinswitch").

    Raises:
        ValueError: Unknown plugin id, or a required credential is missing
    """
    factory = SWAP_PLUGINS.get(plugin_id.lower())
    if factory is None:
        raise ValueError(f"Unknown swap plugin '{plugin_id}'")

    plugin = factory(settings or get_settings(), client, log)
    logger.info(f"Created {plugin.swap_info.display_name} swap plugin")
    return plugin


def create_rate_plugin(
    plugin_id: str,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
    settings: Optional[Settings] = None,
) -> RatePlugin:
    """Create a rate plugin by id ("nomics")."""
    factory = RATE_PLUGINS.get(plugin_id.lower())
    if factory is None:
        raise ValueError(f"Unknown rate plugin '{plugin_id}'")

    plugin = factory(settings or get_settings(), client, log)
    logger.info(f"Created {plugin.rate_info.display_name} rate plugin")
    return plugin
