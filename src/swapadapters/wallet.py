"""Wallet collaborator interface consumed by the swap plugins.

The host wallet core owns address derivation, unit conversion and
transaction construction. Plugins only call through ``CurrencyWallet``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Any, Optional


@dataclass
class ReceiveAddress:
    """Receive address in every format the wallet can produce."""

    public_address: str
    segwit_address: Optional[str] = None
    legacy_address: Optional[str] = None


@dataclass
class SpendTarget:
    """One output of a funding transaction."""

    native_amount: str
    public_address: str
    unique_identifier: Optional[str] = None  # Memo / destination tag


@dataclass
class SwapData:
    """Swap metadata attached to a funding transaction."""

    order_id: str
    is_estimate: bool
    payout_address: str
    payout_currency_code: str
    payout_native_amount: str
    payout_wallet_id: str
    plugin: dict
    refund_address: Optional[str] = None
    order_uri: Optional[str] = None


@dataclass
class SpendInfo:
    """Everything the wallet needs to build a funding transaction."""

    currency_code: str
    spend_targets: list[SpendTarget]
    swap_data: SwapData
    network_fee_option: Optional[str] = None  # "high" | "standard" | None


@dataclass
class Transaction:
    """Transaction record returned by the wallet."""

    txid: str
    currency_code: str
    native_amount: str
    network_fee: str = "0"
    parent_network_fee: Optional[str] = None
    spend_info: Optional[SpendInfo] = None
    other_params: dict[str, Any] = field(default_factory=dict)


class CurrencyWallet(ABC):
    """Host wallet capability, one instance per wallet."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Wallet id."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def currency_code(self) -> str:
        """Native currency of the wallet (network fees are paid in it)."""
        raise NotImplementedError()

    @abstractmethod
    async def get_receive_address(self, currency_code: str) -> ReceiveAddress:
        raise NotImplementedError()

    @abstractmethod
    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        """Convert a native integer amount to the display denomination."""
        raise NotImplementedError()

    @abstractmethod
    async def denomination_to_native(self, amount: str, currency_code: str) -> str:
        """Convert a display amount to the native integer amount."""
        raise NotImplementedError()

    @abstractmethod
    async def make_spend(self, spend_info: SpendInfo) -> Transaction:
        """Build a funding transaction (unsigned)."""
        raise NotImplementedError()

    @abstractmethod
    async def sign_tx(self, tx: Transaction) -> Transaction:
        raise NotImplementedError()

    @abstractmethod
    async def broadcast_tx(self, tx: Transaction) -> Transaction:
        raise NotImplementedError()

    @abstractmethod
    async def save_tx(self, tx: Transaction) -> None:
        raise NotImplementedError()


def native_to_denomination(native_amount: str, multiplier: str) -> str:
    """Convert a native integer string to a denomination string.

    Args:
        native_amount: Amount in the smallest unit (e.g. "100000000")
        multiplier: Native units per denomination unit (e.g. "100000000")

    Returns:
        Plain decimal string without exponent or trailing zeros
    """
    value = Decimal(native_amount) / Decimal(multiplier)
    return _plain(value)


def denomination_to_native(amount: str, multiplier: str) -> str:
    """Convert a denomination string to a native integer string.

    Precision finer than one native unit is truncated.
    """
    value = (Decimal(amount) * Decimal(multiplier)).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return str(int(value))


def _plain(value: Decimal) -> str:
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"
