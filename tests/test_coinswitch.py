"""Tests for the CoinSwitch swap plugin."""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest

from swapadapters.errors import (
    ExchangeError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
)
from swapadapters.swap.coinswitch import (
    ORDER_URI,
    CoinSwitchPlugin,
    estimate_deposit_amount,
    estimate_exchange_amount,
    get_address,
    plain,
)

OFFER = {
    "success": True,
    "data": {
        "offerReferenceId": "offer-1",
        "depositCoinAmount": 2,
        "destinationCoinAmount": 0.1,
    },
}
PAIRS = {"success": True, "data": [{"limitMinDepositCoin": 0.001, "limitMaxDepositCoin": 10}]}
FIXED_ORDER = {
    "success": True,
    "data": {"orderId": "fixed-1", "exchangeAddress": {"address": "3FixedDeposit", "tag": None}},
}
RATE = {
    "success": True,
    "data": {
        "rate": 0.05,
        "minerFee": 0.001,
        "limitMinDepositCoin": 0.001,
        "limitMaxDepositCoin": 10,
    },
}
ESTIMATE_ORDER = {
    "success": True,
    "data": {"orderId": "float-1", "exchangeAddress": {"address": "3FloatDeposit", "tag": "77"}},
}


def add_fixed_routes(exchange, offer=OFFER, pairs=PAIRS):
    exchange.add("POST", "/v2/fixed/offer", (200, offer))
    exchange.add("POST", "/v2/fixed/pairs", (200, pairs))
    exchange.add("POST", "/v2/fixed/order", (200, FIXED_ORDER))


def add_estimate_routes(exchange, rate=RATE):
    exchange.add("POST", "/v2/rate", (200, rate))
    exchange.add("POST", "/v2/order", (200, ESTIMATE_ORDER))


def hold(cancelled: asyncio.Event):
    """Quote path that never finishes and records its cancellation."""

    async def _hold(request):
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    return _hold


@pytest.fixture
def plugin(client):
    return CoinSwitchPlugin(api_key="cs-key", client=client)


class TestEstimateMath:
    """Tests for floating-rate amount calculation."""

    def test_exchange_amount_subtracts_miner_fee(self):
        amount = estimate_exchange_amount(Decimal("0.05"), Decimal("2"), Decimal("0.001"))

        assert plain(amount) == "0.099"

    def test_deposit_amount_adds_miner_fee(self):
        amount = estimate_deposit_amount(Decimal("0.05"), Decimal("0.099"), Decimal("0.001"))

        assert amount == Decimal("2")

    def test_deposit_amount_truncates_to_16_places(self):
        amount = estimate_deposit_amount(Decimal("3"), Decimal("1"), Decimal("0"))

        assert plain(amount) == "0.3333333333333333"


class TestAddresses:
    """Tests for receive address selection."""

    @pytest.mark.asyncio
    async def test_prefers_legacy_address(self, btc_wallet):
        assert await get_address(btc_wallet, "BTC") == "1BtcLegacy"

    @pytest.mark.asyncio
    async def test_denylisted_currency_uses_public_address(self, dgb_wallet):
        assert await get_address(dgb_wallet, "DGB") == "dgb1public"


class TestFixedQuote:
    """Tests for the fixed-offer path."""

    @pytest.mark.asyncio
    async def test_fixed_quote_from_source(self, plugin, exchange, make_request, btc_wallet):
        add_fixed_routes(exchange)

        before = datetime.now(timezone.utc)
        quote = await plugin.get_fixed_quote(make_request(native_amount="200000000"))

        assert quote.is_estimate is False
        assert quote.quote_id == "fixed-1"
        assert quote.from_native_amount == "200000000"
        assert quote.to_native_amount == "100000000000000000"
        assert quote.destination_address == "0xEthPublic"
        assert before + timedelta(minutes=5) <= quote.expiration_date
        assert quote.expiration_date <= datetime.now(timezone.utc) + timedelta(minutes=5)

        assert exchange.body("/v2/fixed/offer") == {
            "depositCoin": "btc",
            "destinationCoin": "eth",
            "depositCoinAmount": "2",
        }
        order = exchange.body("/v2/fixed/order")
        assert order["depositCoinAmount"] == 2.0
        assert order["offerReferenceId"] == "offer-1"
        assert order["destinationAddress"] == {"address": "0xEthPublic", "tag": None}
        assert order["refundAddress"] == {"address": "1BtcLegacy", "tag": None}

        spend = btc_wallet.spends[0]
        assert spend.network_fee_option == "high"
        assert spend.spend_targets[0].public_address == "3FixedDeposit"
        assert spend.swap_data.order_uri == ORDER_URI + "fixed-1"
        assert spend.swap_data.payout_currency_code == "ETH"
        assert spend.swap_data.is_estimate is False

    @pytest.mark.asyncio
    async def test_fixed_quote_for_destination(self, plugin, exchange, make_request):
        add_fixed_routes(exchange)

        quote = await plugin.get_fixed_quote(
            make_request(native_amount="100000000000000000", quote_for="to")
        )

        assert exchange.body("/v2/fixed/offer")["destinationCoinAmount"] == "0.1"
        assert quote.from_native_amount == "200000000"
        assert quote.to_native_amount == "100000000000000000"

    @pytest.mark.asyncio
    async def test_requests_carry_api_key(self, plugin, exchange, make_request):
        add_fixed_routes(exchange)

        await plugin.get_fixed_quote(make_request(native_amount="200000000"))

        for request in exchange.requests:
            assert request.headers["x-api-key"] == "cs-key"
            assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_below_limit(self, plugin, exchange, make_request, btc_wallet):
        pairs = {"success": True, "data": [{"limitMinDepositCoin": 5, "limitMaxDepositCoin": 10}]}
        add_fixed_routes(exchange, pairs=pairs)

        with pytest.raises(SwapBelowLimitError) as exc:
            await plugin.get_fixed_quote(make_request(native_amount="200000000"))

        assert exc.value.native_min == "500000000"
        assert exchange.sent("/v2/fixed/order") == []
        assert btc_wallet.spends == []

    @pytest.mark.asyncio
    async def test_above_limit(self, plugin, exchange, make_request):
        pairs = {"success": True, "data": [{"limitMinDepositCoin": 0.001, "limitMaxDepositCoin": 1.5}]}
        add_fixed_routes(exchange, pairs=pairs)

        with pytest.raises(SwapAboveLimitError) as exc:
            await plugin.get_fixed_quote(make_request(native_amount="200000000"))

        assert exc.value.native_max == "150000000"

    @pytest.mark.asyncio
    async def test_offer_without_data_is_unsupported_pair(self, plugin, exchange, make_request):
        add_fixed_routes(exchange, offer={"success": False, "code": "PAIR_NOT_SUPPORTED"})

        with pytest.raises(SwapCurrencyError):
            await plugin.get_fixed_quote(make_request())


class TestEstimate:
    """Tests for the floating-rate path."""

    @pytest.mark.asyncio
    async def test_estimate_from_source(self, plugin, exchange, make_request, btc_wallet):
        add_estimate_routes(exchange)

        before = datetime.now(timezone.utc)
        quote = await plugin.get_estimate(make_request(native_amount="200000000"))

        # (0.05 * 2) - 0.001 = 0.099 ETH
        assert quote.to_native_amount == "99000000000000000"
        assert quote.from_native_amount == "200000000"
        assert quote.is_estimate is True
        assert quote.quote_id == "float-1"
        assert quote.expiration_date >= before + timedelta(minutes=15)

        spend = btc_wallet.spends[0]
        assert spend.network_fee_option is None
        assert spend.spend_targets[0].unique_identifier == "77"
        assert spend.swap_data.is_estimate is True

    @pytest.mark.asyncio
    async def test_estimate_for_destination(self, plugin, exchange, make_request):
        add_estimate_routes(exchange)

        quote = await plugin.get_estimate(
            make_request(native_amount="99000000000000000", quote_for="to")
        )

        assert quote.from_native_amount == "200000000"
        assert exchange.body("/v2/order")["depositCoinAmount"] == 2.0

    @pytest.mark.asyncio
    async def test_estimate_above_limit(self, plugin, exchange, make_request):
        add_estimate_routes(exchange)

        with pytest.raises(SwapAboveLimitError) as exc:
            await plugin.get_estimate(make_request(native_amount="1100000000"))

        assert exc.value.native_max == "1000000000"

    @pytest.mark.asyncio
    async def test_miner_fee_exceeding_payout_is_below_limit(
        self, plugin, exchange, make_request, btc_wallet
    ):
        rate = {"success": True, "data": {**RATE["data"], "rate": 0.0001, "minerFee": 0.01}}
        add_estimate_routes(exchange, rate=rate)

        # 0.0001 * 1 - 0.01 leaves nothing to pay out; break-even is 100 BTC
        with pytest.raises(SwapBelowLimitError) as exc:
            await plugin.get_estimate(make_request(native_amount="100000000"))

        assert exc.value.native_min == "10000000001"
        assert exchange.sent("/v2/order") == []
        assert btc_wallet.spends == []

    @pytest.mark.asyncio
    async def test_rate_without_data_is_unsupported_pair(self, plugin, exchange, make_request):
        add_estimate_routes(exchange, rate={"success": False, "code": "PAIR_NOT_SUPPORTED"})

        with pytest.raises(SwapCurrencyError) as exc:
            await plugin.get_estimate(make_request())

        assert exc.value.to_currency_code == "ETH"
        assert exchange.sent("/v2/order") == []


class TestFetchSwapQuote:
    """Tests for fixed-then-estimate selection."""

    @pytest.mark.asyncio
    async def test_uses_fixed_quote_when_available(
        self, plugin, exchange, make_request, btc_wallet, monkeypatch
    ):
        add_fixed_routes(exchange)
        add_estimate_routes(exchange)
        estimate_cancelled = asyncio.Event()
        monkeypatch.setattr(plugin, "get_estimate", hold(estimate_cancelled))

        quote = await plugin.fetch_swap_quote(make_request(native_amount="200000000"))
        await asyncio.wait_for(estimate_cancelled.wait(), timeout=1)

        assert quote.is_estimate is False
        assert quote.quote_id == "fixed-1"
        assert exchange.sent("/v2/order") == []
        assert len(btc_wallet.spends) == 1

    @pytest.mark.asyncio
    async def test_cancelling_quote_cancels_both_paths(self, plugin, make_request, monkeypatch):
        fixed_cancelled, estimate_cancelled = asyncio.Event(), asyncio.Event()
        monkeypatch.setattr(plugin, "get_fixed_quote", hold(fixed_cancelled))
        monkeypatch.setattr(plugin, "get_estimate", hold(estimate_cancelled))

        task = asyncio.ensure_future(plugin.fetch_swap_quote(make_request()))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.wait_for(estimate_cancelled.wait(), timeout=1)

        assert fixed_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_zero_floating_rate_after_fixed_failure(self, plugin, exchange, make_request):
        add_fixed_routes(exchange, offer={"success": False})
        add_estimate_routes(exchange, rate={"success": True, "data": {**RATE["data"], "rate": 0}})

        with pytest.raises(ExchangeError, match="Invalid FloatingRate reply"):
            await plugin.fetch_swap_quote(
                make_request(native_amount="99000000000000000", quote_for="to")
            )

        assert exchange.sent("/v2/order") == []

    @pytest.mark.asyncio
    async def test_falls_back_to_estimate(self, plugin, exchange, make_request):
        add_fixed_routes(exchange, offer={"success": False, "code": "OFFER_FAILED"})
        add_estimate_routes(exchange)
        request = make_request(native_amount="200000000")

        quote = await plugin.fetch_swap_quote(request)
        estimate = await plugin.get_estimate(request)

        assert quote.is_estimate is True
        assert quote.quote_id == estimate.quote_id
        assert quote.from_native_amount == estimate.from_native_amount
        assert quote.to_native_amount == estimate.to_native_amount
        assert quote.destination_address == estimate.destination_address

    @pytest.mark.asyncio
    async def test_falls_back_on_transport_error(self, plugin, exchange, make_request):
        exchange.add("POST", "/v2/fixed/offer", (500, {"message": "boom"}))
        add_estimate_routes(exchange)

        quote = await plugin.fetch_swap_quote(make_request(native_amount="200000000"))

        assert quote.is_estimate is True

    @pytest.mark.asyncio
    async def test_estimate_error_surfaces_when_both_fail(self, plugin, exchange, make_request):
        add_fixed_routes(exchange, offer={"success": False})
        add_estimate_routes(exchange)

        with pytest.raises(SwapBelowLimitError):
            await plugin.fetch_swap_quote(make_request(native_amount="1000"))


class TestReplies:
    """Tests for reply checking and transport errors."""

    def test_failed_reply_raises_exchange_code(self, plugin):
        with pytest.raises(ExchangeError) as exc:
            plugin.check_reply({"success": False, "code": "INVALID_ADDRESS", "data": {"x": 1}})

        assert exc.value.code == "INVALID_ADDRESS"
        assert str(exc.value) == json.dumps("INVALID_ADDRESS")

    def test_missing_data_with_request_is_unsupported(self, plugin, make_request):
        with pytest.raises(SwapCurrencyError):
            plugin.check_reply({"success": True}, make_request())

    def test_successful_reply_returns_data(self, plugin):
        assert plugin.check_reply({"success": True, "data": {"a": 1}}) == {"a": 1}

    @pytest.mark.asyncio
    async def test_http_error_status(self, plugin, exchange):
        exchange.add("POST", "/v2/rate", (503, {"message": "down"}))

        with pytest.raises(ExchangeError) as exc:
            await plugin.call("v2/rate", {"depositCoin": "btc", "destinationCoin": "eth"})

        assert exc.value.status_code == 503
        assert "CoinSwitch returned error code 503" in str(exc.value)

    @pytest.mark.asyncio
    async def test_connection_error(self, make_request):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        plugin = CoinSwitchPlugin(
            api_key="cs-key", client=httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        )

        with pytest.raises(ExchangeError, match="CoinSwitch request failed"):
            await plugin.call("v2/rate", {})

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="apiKey"):
            CoinSwitchPlugin(api_key="")
