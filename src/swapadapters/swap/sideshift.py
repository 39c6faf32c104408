"""SideShift.ai fixed-rate swap integration.

SideShift quotes a fixed rate for a short window, then turns the quote
into an order with a deposit address.
API docs: https://documenter.getpostman.com/view/6895769/TWDZGvjd
"""

import asyncio
import json
import logging
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any, Optional

import httpx

from swapadapters.cleaners import Payload, PositiveAmount, parse_payload, plain
from swapadapters.errors import (
    ExchangeError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
    SwapPermissionError,
)
from swapadapters.http import DEFAULT_TIMEOUT, open_client
from swapadapters.swap.base import (
    SwapInfo,
    SwapPlugin,
    SwapQuote,
    SwapRequest,
    make_swap_plugin_quote,
    network_fee_option,
)
from swapadapters.wallet import CurrencyWallet, SpendInfo, SpendTarget, SwapData

logger = logging.getLogger(__name__)

SIDESHIFT_BASE_URL = "https://sideshift.ai/api/v1"

# Wallet currency code -> SideShift method id.
# Codes listed here are never rejected for lacking a direct SideShift id.
CURRENCY_CODE_TRANSCRIPTION = {
    "USDT": "usdtErc20",
}

EIGHT_PLACES = Decimal("0.00000001")

SWAP_INFO = SwapInfo(
    plugin_id="sideshift",
    display_name="SideShift.ai",
    support_email="help@sideshift.ai",
)


# ======================
# Wire payloads
# ======================


class ErrorMessage(Payload):
    message: str


class Permissions(Payload):
    createOrder: bool
    createQuote: bool


class PairRate(Payload):
    rate: Optional[PositiveAmount] = None
    min: Optional[PositiveAmount] = None
    max: Optional[PositiveAmount] = None
    error: Optional[ErrorMessage] = None


class FixedQuoteRequest(Payload):
    depositMethod: str
    settleMethod: str
    depositAmount: str


class FixedQuote(Payload):
    id: Optional[str] = None
    error: Optional[ErrorMessage] = None


class OrderRequest(Payload):
    type: str
    quoteId: str
    affiliateId: str
    sessionSecret: Optional[str] = None
    settleAddress: str


class DepositAddress(Payload):
    address: str
    memo: Optional[str] = None


class Order(Payload):
    expiresAtISO: str
    depositAddress: DepositAddress
    id: str
    orderId: str
    settleAmount: PositiveAmount
    depositAmount: PositiveAmount


# ======================
# Helpers
# ======================


def get_safe_currency_code(currency_code: str) -> str:
    """Map a wallet currency code to the SideShift method id."""
    return CURRENCY_CODE_TRANSCRIPTION.get(currency_code.upper(), currency_code.lower())


async def get_address(wallet: CurrencyWallet, currency_code: str) -> str:
    """Segwit address when the wallet has one, else the public address."""
    address_info = await wallet.get_receive_address(currency_code)
    return address_info.segwit_address or address_info.public_address


def to_fixed8(amount: Decimal, rounding: str = ROUND_HALF_UP) -> str:
    return str(amount.quantize(EIGHT_PLACES, rounding=rounding))


def parse_expiration(iso: str) -> datetime:
    return datetime.fromisoformat(iso.replace("Z", "+00:00"))


class SideShiftApi:
    """Thin JSON client for the SideShift REST API."""

    def __init__(
        self,
        base_url: str = SIDESHIFT_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with open_client(self._client, self._timeout) as client:
                if method == "GET":
                    response = await client.get(url)
                else:
                    response = await client.request(
                        method,
                        url,
                        headers={"Content-Type": "application/json"},
                        content=json.dumps(body),
                    )
        except httpx.HTTPError as e:
            raise ExchangeError(f"SideShift.ai request failed: {e}") from e

        try:
            return response.json()
        except ValueError:
            raise ExchangeError(
                f"SideShift.ai returned error code {response.status_code}",
                status_code=response.status_code,
            )

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: dict) -> Any:
        return await self.request("POST", path, body)


class SideShiftPlugin(SwapPlugin):
    """SideShift.ai swap plugin (fixed-rate quotes only)."""

    def __init__(
        self,
        affiliate_id: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = SIDESHIFT_BASE_URL,
        log: Optional[logging.Logger] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize SideShift plugin.

        Args:
            affiliate_id: SideShift affiliate id attached to every order
            client: Shared HTTP client (a per-request client is used if None)
            base_url: API base URL override
            log: Logger for request/quote tracing
            timeout: Timeout for per-request clients
        """
        self.affiliate_id = affiliate_id
        self.api = SideShiftApi(base_url, client, timeout)
        self.log = log or logger

    @property
    def swap_info(self) -> SwapInfo:
        return SWAP_INFO

    async def fetch_swap_quote(self, request: SwapRequest) -> SwapQuote:
        self.log.info(f"sideshift swap requested {json.dumps(request.to_dict())}")

        permissions = parse_payload(Permissions, await self.api.get("/permissions")).unwrap()
        if not permissions.createOrder or not permissions.createQuote:
            self.log.warning(f"sideshift SwapPermissionError {SWAP_INFO.to_dict()} geoRestriction")
            raise SwapPermissionError(SWAP_INFO, "geoRestriction")

        deposit_address, settle_address = await asyncio.gather(
            get_address(request.from_wallet, request.from_currency_code),
            get_address(request.to_wallet, request.to_currency_code),
        )

        safe_from = get_safe_currency_code(request.from_currency_code)
        safe_to = get_safe_currency_code(request.to_currency_code)

        rate = parse_payload(PairRate, await self.api.get(f"/pairs/{safe_from}/{safe_to}")).unwrap()
        if rate.error is not None:
            self.log.warning(f"sideshift SwapCurrencyError {json.dumps(request.to_dict())}")
            raise SwapCurrencyError(SWAP_INFO, request.from_currency_code, request.to_currency_code)
        if rate.rate is None or rate.min is None or rate.max is None:
            raise ExchangeError(f"SideShift.ai pair {safe_from}/{safe_to} reply is missing rate limits")

        if request.quote_for == "from":
            quote_amount = await request.from_wallet.native_to_denomination(
                request.native_amount, request.from_currency_code
            )
            deposit_amount = to_fixed8(Decimal(quote_amount), ROUND_DOWN)
        else:
            quote_amount = await request.to_wallet.native_to_denomination(
                request.native_amount, request.to_currency_code
            )
            deposit_amount = to_fixed8(Decimal(quote_amount) / rate.rate)

        fixed_quote_request = FixedQuoteRequest(
            depositMethod=safe_from,
            settleMethod=safe_to,
            depositAmount=deposit_amount,
        )
        fixed_quote = parse_payload(
            FixedQuote, await self.api.post("/quotes", fixed_quote_request.model_dump())
        ).unwrap()

        if fixed_quote.error is not None:
            await self._check_quote_error(rate, request, fixed_quote.error.message)
        if fixed_quote.id is None:
            raise ExchangeError("SideShift.ai quote reply has no id")

        order_request = OrderRequest(
            type="fixed",
            quoteId=fixed_quote.id,
            affiliateId=self.affiliate_id,
            settleAddress=settle_address,
        )
        order = parse_payload(
            Order, await self.api.post("/orders", order_request.model_dump(exclude_none=True))
        ).unwrap()

        from_native_amount, to_native_amount = await asyncio.gather(
            request.from_wallet.denomination_to_native(
                plain(order.depositAmount), request.from_currency_code
            ),
            request.to_wallet.denomination_to_native(
                plain(order.settleAmount), request.to_currency_code
            ),
        )

        spend_info = SpendInfo(
            currency_code=request.from_currency_code,
            spend_targets=[
                SpendTarget(
                    native_amount=from_native_amount,
                    public_address=order.depositAddress.address,
                    unique_identifier=order.depositAddress.memo,
                )
            ],
            network_fee_option=network_fee_option(request.from_currency_code),
            swap_data=SwapData(
                order_id=order.orderId,
                is_estimate=False,
                payout_address=settle_address,
                payout_currency_code=safe_to,
                payout_native_amount=to_native_amount,
                payout_wallet_id=request.to_wallet.id,
                plugin=SWAP_INFO.to_dict(),
                refund_address=deposit_address,
            ),
        )
        tx = await request.from_wallet.make_spend(spend_info)

        quote = make_swap_plugin_quote(
            request,
            from_native_amount,
            to_native_amount,
            tx,
            settle_address,
            SWAP_INFO.plugin_id,
            is_estimate=False,
            expiration_date=parse_expiration(order.expiresAtISO),
            quote_id=order.id,
        )
        self.log.info(f"sideshift swap quote {json.dumps(quote.to_dict())}")
        return quote

    async def _check_quote_error(self, rate: PairRate, request: SwapRequest, message: str) -> None:
        """Translate a quote error message into a typed limit error."""
        if message == "Amount too low":
            native_min = await request.from_wallet.denomination_to_native(
                plain(rate.min), request.from_currency_code
            )
            self.log.warning(f"sideshift SwapBelowLimitError {SWAP_INFO.to_dict()} {native_min}")
            raise SwapBelowLimitError(SWAP_INFO, native_min)

        if message == "Amount too high":
            native_max = await request.from_wallet.denomination_to_native(
                plain(rate.max), request.from_currency_code
            )
            self.log.warning(f"sideshift SwapAboveLimitError {SWAP_INFO.to_dict()} {native_max}")
            raise SwapAboveLimitError(SWAP_INFO, native_max)

        raise ExchangeError(f"SideShift.ai quote failed: {message}", code=message)
