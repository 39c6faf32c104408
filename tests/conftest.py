"""Pytest configuration and fixtures."""

import json
import os
from dataclasses import replace
from typing import Any, Callable, Optional, Union

import httpx
import pytest

# Keep a developer .env from leaking into tests
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"

from swapadapters.swap.base import SwapRequest
from swapadapters.wallet import (
    CurrencyWallet,
    ReceiveAddress,
    SpendInfo,
    Transaction,
    denomination_to_native,
    native_to_denomination,
)

MULTIPLIERS = {
    "BTC": "100000000",
    "LTC": "100000000",
    "DGB": "100000000",
    "ETH": "1000000000000000000",
    "USDT": "1000000",
}


class FakeWallet(CurrencyWallet):
    """In-memory wallet that records the spends it is asked to build."""

    def __init__(self, wallet_id: str, currency_code: str, address: ReceiveAddress):
        self._id = wallet_id
        self._currency_code = currency_code
        self.address = address
        self.spends: list[SpendInfo] = []
        self.broadcasts: list[Transaction] = []
        self.saved: list[Transaction] = []

    @property
    def id(self) -> str:
        return self._id

    @property
    def currency_code(self) -> str:
        return self._currency_code

    async def get_receive_address(self, currency_code: str) -> ReceiveAddress:
        return self.address

    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        return native_to_denomination(native_amount, MULTIPLIERS[currency_code.upper()])

    async def denomination_to_native(self, amount: str, currency_code: str) -> str:
        return denomination_to_native(amount, MULTIPLIERS[currency_code.upper()])

    async def make_spend(self, spend_info: SpendInfo) -> Transaction:
        self.spends.append(spend_info)
        return Transaction(
            txid=f"{self._id}-tx-{len(self.spends)}",
            currency_code=spend_info.currency_code,
            native_amount=spend_info.spend_targets[0].native_amount,
            network_fee="2500",
            spend_info=spend_info,
        )

    async def sign_tx(self, tx: Transaction) -> Transaction:
        return replace(tx, other_params={**tx.other_params, "signed": True})

    async def broadcast_tx(self, tx: Transaction) -> Transaction:
        self.broadcasts.append(tx)
        return tx

    async def save_tx(self, tx: Transaction) -> None:
        self.saved.append(tx)


Reply = Union[tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class MockExchange:
    """Route table behind an httpx.MockTransport.

    Routes map ``(method, path)`` to ``(status, json_body)`` or to a
    handler. Unrouted requests get a 404 with a non-JSON body.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Reply] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, reply: Reply) -> None:
        self.routes[(method, path)] = reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, text="Not Found")
        if callable(reply):
            return reply(request)
        status, body = reply
        return httpx.Response(status, json=body)

    def sent(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def body(self, path: str, index: int = 0) -> Optional[dict]:
        return json.loads(self.sent(path)[index].content)


@pytest.fixture
def exchange() -> MockExchange:
    return MockExchange()


@pytest.fixture
def client(exchange: MockExchange) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(exchange.handler))


@pytest.fixture
def btc_wallet() -> FakeWallet:
    return FakeWallet(
        "btc-wallet",
        "BTC",
        ReceiveAddress(
            public_address="1BtcPublic",
            segwit_address="bc1qbtcsegwit",
            legacy_address="1BtcLegacy",
        ),
    )


@pytest.fixture
def eth_wallet() -> FakeWallet:
    return FakeWallet("eth-wallet", "ETH", ReceiveAddress(public_address="0xEthPublic"))


@pytest.fixture
def make_request(btc_wallet, eth_wallet):
    """Build a BTC -> ETH request, overridable per test."""

    def _make(**overrides) -> SwapRequest:
        fields = {
            "from_wallet": btc_wallet,
            "to_wallet": eth_wallet,
            "from_currency_code": "BTC",
            "to_currency_code": "ETH",
            "native_amount": "100000000",
            "quote_for": "from",
        }
        fields.update(overrides)
        return SwapRequest(**fields)

    return _make


@pytest.fixture
def usdt_wallet() -> FakeWallet:
    return FakeWallet("usdt-wallet", "ETH", ReceiveAddress(public_address="0xUsdtPublic"))


@pytest.fixture
def dgb_wallet() -> FakeWallet:
    return FakeWallet(
        "dgb-wallet",
        "DGB",
        ReceiveAddress(public_address="dgb1public", legacy_address="DLegacyDgb"),
    )
