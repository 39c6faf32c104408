"""Exchange-rate plugin interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

FIAT_PREFIX = "iso:"


@dataclass(frozen=True)
class RateInfo:
    """Static rate-source identity."""

    plugin_id: str
    display_name: str


@dataclass(frozen=True)
class RateHint:
    """A pair the host would like priced."""

    from_currency: str
    to_currency: str


@dataclass(frozen=True)
class RatePair:
    """A priced pair: one ``from_currency`` buys ``rate`` of ``to_currency``."""

    from_currency: str
    to_currency: str
    rate: float


def is_fiat(currency_code: str) -> bool:
    """Fiat codes carry the ``iso:`` marker (e.g. ``iso:USD``)."""
    return FIAT_PREFIX in currency_code


def fiat_iso_code(currency_code: str) -> str:
    """``iso:USD`` -> ``USD``."""
    return currency_code.split(":", 1)[1]


class RatePlugin(ABC):
    """Abstract base class for exchange-rate plugins."""

    @property
    @abstractmethod
    def rate_info(self) -> RateInfo:
        pass

    @abstractmethod
    async def fetch_rates(self, pairs_hint: list[RateHint]) -> list[RatePair]:
        """Price the hinted pairs this source can handle.

        Never raises; unpriceable pairs are left out of the result.
        """
        pass
