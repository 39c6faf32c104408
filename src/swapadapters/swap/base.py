"""Shared swap types: requests, normalized quotes and the plugin interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from swapadapters.wallet import CurrencyWallet, Transaction

logger = logging.getLogger(__name__)

QuoteFor = Literal["from", "to"]


@dataclass(frozen=True)
class SwapInfo:
    """Static plugin identity shown to the user."""

    plugin_id: str
    display_name: str
    support_email: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SwapRequest:
    """A request to swap between two wallets."""

    from_wallet: CurrencyWallet
    to_wallet: CurrencyWallet
    from_currency_code: str
    to_currency_code: str
    native_amount: str  # Integer string in the smallest unit
    quote_for: QuoteFor = "from"

    def __post_init__(self):
        if not str(self.native_amount).isdigit():
            raise ValueError(f"native_amount must be a non-negative integer string: {self.native_amount!r}")
        if self.quote_for not in ("from", "to"):
            raise ValueError(f"quote_for must be 'from' or 'to': {self.quote_for!r}")

    def to_dict(self) -> dict:
        """Loggable form, wallets replaced by their ids."""
        return {
            "from_wallet": self.from_wallet.id,
            "to_wallet": self.to_wallet.id,
            "from_currency_code": self.from_currency_code,
            "to_currency_code": self.to_currency_code,
            "native_amount": self.native_amount,
            "quote_for": self.quote_for,
        }


@dataclass
class SwapQuote:
    """A normalized swap quote backed by a ready-to-sign funding transaction."""

    request: SwapRequest
    from_native_amount: str
    to_native_amount: str
    transaction: Transaction
    destination_address: str
    plugin_id: str
    is_estimate: bool
    expiration_date: Optional[datetime] = None
    quote_id: Optional[str] = None
    network_fee_currency_code: str = ""
    network_fee: str = "0"

    async def approve(self) -> Transaction:
        """Sign, broadcast and save the funding transaction."""
        wallet = self.request.from_wallet
        signed = await wallet.sign_tx(self.transaction)
        broadcast = await wallet.broadcast_tx(signed)
        await wallet.save_tx(broadcast)
        logger.info(f"{self.plugin_id} swap {self.quote_id} funded by tx {broadcast.txid}")
        return broadcast

    async def close(self) -> None:
        """Release the quote. Nothing is held remotely."""
        return None

    def to_dict(self) -> dict:
        """Loggable form of the quote."""
        return {
            "plugin_id": self.plugin_id,
            "from_native_amount": self.from_native_amount,
            "to_native_amount": self.to_native_amount,
            "network_fee": self.network_fee,
            "network_fee_currency_code": self.network_fee_currency_code,
            "destination_address": self.destination_address,
            "is_estimate": self.is_estimate,
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
            "quote_id": self.quote_id,
            "txid": self.transaction.txid,
        }


def make_swap_plugin_quote(
    request: SwapRequest,
    from_native_amount: str,
    to_native_amount: str,
    tx: Transaction,
    destination_address: str,
    plugin_id: str,
    is_estimate: bool = False,
    expiration_date: Optional[datetime] = None,
    quote_id: Optional[str] = None,
) -> SwapQuote:
    """Package a funding transaction into a SwapQuote.

    The network fee is read from the transaction. Token spends pay their
    fee in the wallet's parent currency, reported as ``parent_network_fee``.
    """
    if tx.parent_network_fee is not None:
        network_fee = tx.parent_network_fee
    else:
        network_fee = tx.network_fee

    return SwapQuote(
        request=request,
        from_native_amount=from_native_amount,
        to_native_amount=to_native_amount,
        transaction=tx,
        destination_address=destination_address,
        plugin_id=plugin_id,
        is_estimate=is_estimate,
        expiration_date=expiration_date,
        quote_id=quote_id,
        network_fee_currency_code=request.from_wallet.currency_code,
        network_fee=network_fee,
    )


def network_fee_option(currency_code: str) -> str:
    """Fee priority for the deposit transaction."""
    return "high" if currency_code.upper() == "BTC" else "standard"


def is_below(native_amount: str, native_limit: str) -> bool:
    return Decimal(native_amount) < Decimal(native_limit)


def is_above(native_amount: str, native_limit: str) -> bool:
    return Decimal(native_amount) > Decimal(native_limit)


class SwapPlugin(ABC):
    """Abstract base class for swap plugins."""

    @property
    @abstractmethod
    def swap_info(self) -> SwapInfo:
        """Plugin identity metadata."""
        pass

    @abstractmethod
    async def fetch_swap_quote(self, request: SwapRequest) -> SwapQuote:
        """
        Get a swap quote with a funding transaction ready to approve.

        Args:
            request: The swap request

        Returns:
            SwapQuote for the request

        Raises:
            SwapBelowLimitError, SwapAboveLimitError, SwapCurrencyError,
            SwapPermissionError, ExchangeError
        """
        pass
