"""Command line entry point.

Usage:
    python -m swapadapters plugins
    python -m swapadapters rates BTC/iso:USD iso:EUR/ETH
"""

import argparse
import asyncio
import logging
import sys

from swapadapters.config import get_settings
from swapadapters.factory import RATE_PLUGINS, create_rate_plugin
from swapadapters.rate.base import RateHint
from swapadapters.rate.nomics import RATE_INFO as NOMICS_INFO
from swapadapters.swap.coinswitch import SWAP_INFO as COINSWITCH_INFO
from swapadapters.swap.sideshift import SWAP_INFO as SIDESHIFT_INFO

logger = logging.getLogger(__name__)


def parse_pair(text: str) -> RateHint:
    """Parse ``FROM/TO`` into a RateHint."""
    from_currency, sep, to_currency = text.partition("/")
    if not sep or not from_currency or not to_currency:
        raise argparse.ArgumentTypeError(f"expected FROM/TO, got '{text}'")
    return RateHint(from_currency=from_currency, to_currency=to_currency)


def cmd_plugins(args: argparse.Namespace) -> int:
    for info in (SIDESHIFT_INFO, COINSWITCH_INFO):
        print(f"swap  {info.plugin_id:<12} {info.display_name:<14} {info.support_email}")
    print(f"rate  {NOMICS_INFO.plugin_id:<12} {NOMICS_INFO.display_name}")
    return 0


async def fetch_rates(plugin_id: str, pairs: list[RateHint]) -> int:
    plugin = create_rate_plugin(plugin_id)
    rates = await plugin.fetch_rates(pairs)
    for pair in rates:
        print(f"{pair.from_currency}/{pair.to_currency} {pair.rate}")
    return 0 if rates else 1


def cmd_rates(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(fetch_rates(args.plugin, args.pairs))
    except ValueError as e:
        logger.error(str(e))
        return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapadapters", description="Exchange swap and rate plugins"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plugins = subparsers.add_parser("plugins", help="List available plugins")
    plugins.set_defaults(func=cmd_plugins)

    rates = subparsers.add_parser("rates", help="Fetch exchange rates")
    rates.add_argument("pairs", nargs="+", type=parse_pair, help="Pairs as FROM/TO (fiat as iso:USD)")
    rates.add_argument("--plugin", default="nomics", choices=sorted(RATE_PLUGINS))
    rates.set_defaults(func=cmd_rates)

    return parser


def main(argv=None) -> int:
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
