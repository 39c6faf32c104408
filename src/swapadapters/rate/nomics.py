"""Nomics crypto/fiat exchange rates.

Fills in fiat prices for crypto currencies the host cannot price
from its other rate sources.
API docs: https://nomics.com/docs/
"""

import logging
import math
from typing import Optional

import httpx
from pydantic import RootModel

from swapadapters.cleaners import Payload, parse_payload
from swapadapters.http import DEFAULT_TIMEOUT, open_client
from swapadapters.rate.base import (
    RateHint,
    RateInfo,
    RatePair,
    RatePlugin,
    fiat_iso_code,
    is_fiat,
)

logger = logging.getLogger(__name__)

NOMICS_BASE_URL = "https://api.nomics.com/v1"

RATE_INFO = RateInfo(plugin_id="nomics", display_name="Nomics")


class Ticker(Payload):
    price: str


class Tickers(RootModel[list[Ticker]]):
    pass


class NomicsRatePlugin(RatePlugin):
    """Nomics rate plugin (mixed crypto/fiat pairs only)."""

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = NOMICS_BASE_URL,
        log: Optional[logging.Logger] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not api_key:
            raise ValueError("No Nomics exchange rates API key provided")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.log = log or logger
        self._client = client
        self._timeout = timeout

    @property
    def rate_info(self) -> RateInfo:
        return RATE_INFO

    async def fetch_rates(self, pairs_hint: list[RateHint]) -> list[RatePair]:
        pairs = []
        async with open_client(self._client, self._timeout) as client:
            for hint in pairs_hint:
                # Skip if codes are both fiat or both crypto
                if is_fiat(hint.from_currency) == is_fiat(hint.to_currency):
                    continue

                pair = await self._fetch_pair(client, hint)
                if pair is not None:
                    pairs.append(pair)

        self.log.debug(f"nomics priced {len(pairs)} of {len(pairs_hint)} pair(s)")
        return pairs

    async def _fetch_pair(self, client: httpx.AsyncClient, hint: RateHint) -> Optional[RatePair]:
        """Price one mixed pair, or None when Nomics cannot."""
        inverted = is_fiat(hint.from_currency)
        crypto, fiat = (
            (hint.to_currency, hint.from_currency) if inverted else (hint.from_currency, hint.to_currency)
        )

        try:
            response = await client.get(
                f"{self.base_url}/currencies/ticker",
                params={"key": self.api_key, "ids": crypto, "convert": fiat_iso_code(fiat)},
            )
            if response.status_code == 429:
                return None
            response.raise_for_status()

            tickers = parse_payload(Tickers, response.json()).unwrap().root
            price = float(tickers[0].price)
            if not math.isfinite(price) or (inverted and price == 0):
                raise ValueError(f"unusable price {tickers[0].price!r}")
        except Exception as e:
            self.log.warning(
                f"Issue with Nomics rate data structure for "
                f"{hint.from_currency}/{hint.to_currency} pair. Error: {e}"
            )
            return None

        rate = 1 / price if inverted else price
        return RatePair(from_currency=hint.from_currency, to_currency=hint.to_currency, rate=rate)
