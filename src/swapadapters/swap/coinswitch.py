"""CoinSwitch swap integration.

CoinSwitch offers fixed-rate offers (locked for a few minutes) and
floating-rate orders settled at the live rate. A quote is a fixed offer
when one can be had, otherwise a floating estimate.
API docs: https://developer.coinswitch.co/
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_DOWN, Decimal
from typing import Any, Optional

import httpx

from swapadapters.cleaners import Amount, Payload, PositiveAmount, parse_payload, plain
from swapadapters.errors import (
    ExchangeError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
)
from swapadapters.http import DEFAULT_TIMEOUT, open_client
from swapadapters.swap.base import (
    SwapInfo,
    SwapPlugin,
    SwapQuote,
    SwapRequest,
    is_above,
    is_below,
    make_swap_plugin_quote,
    network_fee_option,
)
from swapadapters.wallet import CurrencyWallet, SpendInfo, SpendTarget, SwapData

logger = logging.getLogger(__name__)

COINSWITCH_BASE_URL = "https://api.coinswitch.co/"
ORDER_URI = "https://coinswitch.co/app/exchange/transaction/"

ESTIMATE_EXPIRATION = timedelta(minutes=15)
FIXED_EXPIRATION = timedelta(minutes=5)

# Currencies whose legacy address format CoinSwitch cannot pay out to
DONT_USE_LEGACY = {"DGB"}

SWAP_INFO = SwapInfo(
    plugin_id="coinswitch",
    display_name="CoinSwitch",
    support_email="support@coinswitch.co",
)


# ======================
# Wire payloads
# ======================


class Reply(Payload):
    success: bool = False
    code: Optional[Any] = None
    data: Optional[Any] = None


class Offer(Payload):
    offerReferenceId: str
    depositCoinAmount: PositiveAmount
    destinationCoinAmount: PositiveAmount


class PairLimits(Payload):
    limitMinDepositCoin: Amount
    limitMaxDepositCoin: Amount


class FloatingRate(Payload):
    rate: PositiveAmount
    minerFee: Amount
    limitMinDepositCoin: Amount
    limitMaxDepositCoin: Amount


class ExchangeAddress(Payload):
    address: str
    tag: Optional[str] = None


class OrderInfo(Payload):
    orderId: str
    exchangeAddress: ExchangeAddress
    expectedDepositCoinAmount: Optional[Amount] = None
    expectedDestinationCoinAmount: Optional[Amount] = None


# ======================
# Helpers
# ======================


def estimate_exchange_amount(rate: Decimal, deposit_amount: Decimal, miner_fee: Decimal) -> Decimal:
    """Destination amount received for a deposit at the floating rate."""
    return rate * deposit_amount - miner_fee


def estimate_deposit_amount(rate: Decimal, destination_amount: Decimal, miner_fee: Decimal) -> Decimal:
    """Deposit needed to receive ``destination_amount`` at the floating rate."""
    return ((destination_amount + miner_fee) / rate).quantize(
        Decimal("1E-16"), rounding=ROUND_DOWN
    )


def _consume_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


async def get_address(wallet: CurrencyWallet, currency_code: str) -> str:
    """Legacy address when the wallet has one, unless the currency is denylisted."""
    address_info = await wallet.get_receive_address(currency_code)
    if address_info.legacy_address and currency_code.upper() not in DONT_USE_LEGACY:
        return address_info.legacy_address
    return address_info.public_address


class CoinSwitchPlugin(SwapPlugin):
    """CoinSwitch swap plugin with fixed-offer and floating-estimate quotes."""

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = COINSWITCH_BASE_URL,
        log: Optional[logging.Logger] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize CoinSwitch plugin.

        Args:
            api_key: CoinSwitch API key (required)
            client: Shared HTTP client (a per-request client is used if None)
            base_url: API base URL override
            log: Logger for request/quote tracing
            timeout: Timeout for per-request clients
        """
        if not api_key:
            raise ValueError("No coinswitch apiKey provided.")

        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.log = log or logger
        self._client = client
        self._timeout = timeout

    @property
    def swap_info(self) -> SwapInfo:
        return SWAP_INFO

    async def call(self, route: str, params: dict) -> dict:
        """POST ``params`` to a CoinSwitch route and return the decoded reply."""
        self.log.debug(f"coinswitch call: {route} {params}")
        try:
            async with open_client(self._client, self._timeout) as client:
                response = await client.post(
                    self.base_url + route,
                    content=json.dumps(params),
                    headers={
                        "Content-Type": "application/json",
                        "x-api-key": self.api_key,
                    },
                )
        except httpx.HTTPError as e:
            raise ExchangeError(f"CoinSwitch request failed: {e}") from e

        if not response.is_success:
            raise ExchangeError(
                f"CoinSwitch returned error code {response.status_code}",
                status_code=response.status_code,
            )

        try:
            out = response.json()
        except ValueError:
            raise ExchangeError(
                f"CoinSwitch returned a non-JSON reply ({response.status_code})",
                status_code=response.status_code,
            )
        self.log.debug(f"coinswitch reply: {out}")
        return out

    def check_reply(self, raw: Any, request: Optional[SwapRequest] = None) -> Any:
        """Validate the reply envelope and return its data.

        A reply without data means the pair is unsupported when it answers
        a quote for ``request``.
        """
        reply = parse_payload(Reply, raw).unwrap()
        if request is not None and not reply.data:
            self.log.warning(f"coinswitch SwapCurrencyError {json.dumps(request.to_dict())}")
            raise SwapCurrencyError(SWAP_INFO, request.from_currency_code, request.to_currency_code)
        if not reply.success:
            raise ExchangeError(json.dumps(reply.code), code=reply.code)
        return reply.data

    async def fetch_swap_quote(self, request: SwapRequest) -> SwapQuote:
        """Fixed quote when possible, floating estimate otherwise."""
        self.log.info(f"coinswitch swap requested {json.dumps(request.to_dict())}")

        fixed_task = asyncio.ensure_future(self.get_fixed_quote(request))
        estimate_task = asyncio.ensure_future(self.get_estimate(request))
        try:
            quote = await fixed_task
        except asyncio.CancelledError:
            estimate_task.cancel()
            estimate_task.add_done_callback(_consume_result)
            raise
        except Exception as e:
            self.log.info(f"coinswitch fixed quote failed, using estimate: {type(e).__name__}: {e}")
            return await estimate_task

        # The estimate result is never used once a fixed quote exists
        estimate_task.cancel()
        estimate_task.add_done_callback(_consume_result)
        return quote

    async def _quote_amount(self, request: SwapRequest) -> str:
        if request.quote_for == "from":
            return await request.from_wallet.native_to_denomination(
                request.native_amount, request.from_currency_code
            )
        return await request.to_wallet.native_to_denomination(
            request.native_amount, request.to_currency_code
        )

    async def _check_limits(
        self, request: SwapRequest, from_native_amount: str, limit_min: Decimal, limit_max: Decimal
    ) -> None:
        native_min, native_max = await asyncio.gather(
            request.from_wallet.denomination_to_native(plain(limit_min), request.from_currency_code),
            request.from_wallet.denomination_to_native(plain(limit_max), request.from_currency_code),
        )

        if is_below(from_native_amount, native_min):
            self.log.warning(f"coinswitch SwapBelowLimitError {SWAP_INFO.to_dict()} {native_min}")
            raise SwapBelowLimitError(SWAP_INFO, native_min)

        if is_above(from_native_amount, native_max):
            self.log.warning(f"coinswitch SwapAboveLimitError {SWAP_INFO.to_dict()} {native_max}")
            raise SwapAboveLimitError(SWAP_INFO, native_max)

    async def _reject_fee_eaten(self, request: SwapRequest, rate: FloatingRate) -> None:
        """The miner fee swallows the whole payout; the minimum is one unit past break-even."""
        break_even = await request.from_wallet.denomination_to_native(
            plain(estimate_deposit_amount(rate.rate, Decimal(0), rate.minerFee)),
            request.from_currency_code,
        )
        native_min = str(int(break_even) + 1)
        self.log.warning(f"coinswitch SwapBelowLimitError {SWAP_INFO.to_dict()} {native_min}")
        raise SwapBelowLimitError(SWAP_INFO, native_min)

    async def get_fixed_quote(self, request: SwapRequest) -> SwapQuote:
        """Quote from a fixed-rate offer, locked for five minutes."""
        (from_address, to_address), quote_amount = await asyncio.gather(
            self._addresses(request), self._quote_amount(request)
        )

        deposit_coin = request.from_currency_code.lower()
        destination_coin = request.to_currency_code.lower()
        offer_params = {"depositCoin": deposit_coin, "destinationCoin": destination_coin}
        if request.quote_for == "from":
            offer_params["depositCoinAmount"] = quote_amount
        else:
            offer_params["destinationCoinAmount"] = quote_amount

        offer_reply, pairs_reply = await asyncio.gather(
            self.call("v2/fixed/offer", offer_params),
            self.call(
                "v2/fixed/pairs",
                {"depositCoin": deposit_coin, "destinationCoin": destination_coin},
            ),
        )
        offer = parse_payload(Offer, self.check_reply(offer_reply, request)).unwrap()
        pairs = self.check_reply(pairs_reply, request)
        limits = parse_payload(PairLimits, pairs[0] if isinstance(pairs, list) else pairs).unwrap()

        if request.quote_for == "from":
            from_amount = quote_amount
            from_native_amount = request.native_amount
            to_native_amount = await request.to_wallet.denomination_to_native(
                plain(offer.destinationCoinAmount), request.to_currency_code
            )
        else:
            from_amount = plain(offer.depositCoinAmount)
            from_native_amount = await request.from_wallet.denomination_to_native(
                from_amount, request.from_currency_code
            )
            to_native_amount = request.native_amount

        await self._check_limits(
            request, from_native_amount, limits.limitMinDepositCoin, limits.limitMaxDepositCoin
        )

        order_reply = await self.call(
            "v2/fixed/order",
            {
                "depositCoin": deposit_coin,
                "destinationCoin": destination_coin,
                "depositCoinAmount": float(from_amount),
                "offerReferenceId": offer.offerReferenceId,
                "destinationAddress": {"address": to_address, "tag": None},
                "refundAddress": {"address": from_address, "tag": None},
            },
        )
        order = parse_payload(OrderInfo, self.check_reply(order_reply)).unwrap()

        return await self._make_quote(
            request,
            order,
            from_native_amount,
            to_native_amount,
            from_address,
            to_address,
            is_estimate=False,
            fee_option=network_fee_option(request.from_currency_code),
            expires_in=FIXED_EXPIRATION,
        )

    async def get_estimate(self, request: SwapRequest) -> SwapQuote:
        """Quote at the floating rate, settled at the live rate."""
        (from_address, to_address), quote_amount = await asyncio.gather(
            self._addresses(request), self._quote_amount(request)
        )

        deposit_coin = request.from_currency_code.lower()
        destination_coin = request.to_currency_code.lower()

        rate_reply = await self.call(
            "v2/rate", {"depositCoin": deposit_coin, "destinationCoin": destination_coin}
        )
        rate = parse_payload(FloatingRate, self.check_reply(rate_reply, request)).unwrap()

        if request.quote_for == "from":
            from_amount = quote_amount
            from_native_amount = request.native_amount
            exchange_amount = estimate_exchange_amount(rate.rate, Decimal(quote_amount), rate.minerFee)
            if exchange_amount <= 0:
                await self._reject_fee_eaten(request, rate)
            to_native_amount = await request.to_wallet.denomination_to_native(
                plain(exchange_amount), request.to_currency_code
            )
        else:
            from_amount = plain(estimate_deposit_amount(rate.rate, Decimal(quote_amount), rate.minerFee))
            from_native_amount = await request.from_wallet.denomination_to_native(
                from_amount, request.from_currency_code
            )
            to_native_amount = request.native_amount

        await self._check_limits(
            request, from_native_amount, rate.limitMinDepositCoin, rate.limitMaxDepositCoin
        )

        order_reply = await self.call(
            "v2/order",
            {
                "depositCoin": deposit_coin,
                "destinationCoin": destination_coin,
                "depositCoinAmount": float(from_amount),
                "destinationAddress": {"address": to_address, "tag": None},
                "refundAddress": {"address": from_address, "tag": None},
            },
        )
        order = parse_payload(OrderInfo, self.check_reply(order_reply)).unwrap()

        return await self._make_quote(
            request,
            order,
            from_native_amount,
            to_native_amount,
            from_address,
            to_address,
            is_estimate=True,
            fee_option=None,
            expires_in=ESTIMATE_EXPIRATION,
        )

    async def _addresses(self, request: SwapRequest) -> tuple[str, str]:
        from_address, to_address = await asyncio.gather(
            get_address(request.from_wallet, request.from_currency_code),
            get_address(request.to_wallet, request.to_currency_code),
        )
        return from_address, to_address

    async def _make_quote(
        self,
        request: SwapRequest,
        order: OrderInfo,
        from_native_amount: str,
        to_native_amount: str,
        from_address: str,
        to_address: str,
        is_estimate: bool,
        fee_option: Optional[str],
        expires_in: timedelta,
    ) -> SwapQuote:
        spend_info = SpendInfo(
            currency_code=request.from_currency_code,
            spend_targets=[
                SpendTarget(
                    native_amount=from_native_amount,
                    public_address=order.exchangeAddress.address,
                    unique_identifier=order.exchangeAddress.tag,
                )
            ],
            network_fee_option=fee_option,
            swap_data=SwapData(
                order_id=order.orderId,
                order_uri=ORDER_URI + order.orderId,
                is_estimate=is_estimate,
                payout_address=to_address,
                payout_currency_code=request.to_currency_code,
                payout_native_amount=to_native_amount,
                payout_wallet_id=request.to_wallet.id,
                plugin=SWAP_INFO.to_dict(),
                refund_address=from_address,
            ),
        )
        kind = "estimate" if is_estimate else "fixedRate"
        self.log.debug(f"coinswitch {kind} spendInfo {spend_info}")
        tx = await request.from_wallet.make_spend(spend_info)

        quote = make_swap_plugin_quote(
            request,
            from_native_amount,
            to_native_amount,
            tx,
            to_address,
            SWAP_INFO.plugin_id,
            is_estimate=is_estimate,
            expiration_date=datetime.now(timezone.utc) + expires_in,
            quote_id=order.orderId,
        )
        self.log.info(f"coinswitch swap quote {json.dumps(quote.to_dict())}")
        return quote
