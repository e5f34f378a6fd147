"""Tests for the Raydium API v3 and Trade API wrapper."""

from __future__ import annotations

from typing import Any

import pytest

from dex_client.async_rest import AsyncRestError, AsyncRestRequest
from dex_client.constants import NATIVE_MINT
from dex_client.raydium import RaydiumTradeClient
from fakes import POOL_ID, TOKEN_MINT, make_pool, make_quote

OTHER_POOL = "7XawhbbxtsRcQA8KTkHT9f9nc6d69UwqCDh6U5EEbEmX"


def _pool_payload(pool_id: str, price: float = 2.0) -> dict[str, Any]:
    return {
        "type": "Standard",
        "programId": "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",
        "id": pool_id,
        "mintA": {"address": TOKEN_MINT, "decimals": 6, "symbol": "TKN"},
        "mintB": {"address": NATIVE_MINT, "decimals": 9, "symbol": "WSOL"},
        "price": price,
        "tvl": 12345.6,
    }


def _quote_payload(pool_ids: list[str]) -> dict[str, Any]:
    return {
        "id": "quote-1",
        "success": True,
        "version": "V1",
        "data": {
            "swapType": "BaseIn",
            "inputMint": NATIVE_MINT,
            "inputAmount": "100000000",
            "outputMint": TOKEN_MINT,
            "outputAmount": 49000000,
            "otherAmountThreshold": "48500000",
            "slippageBps": 100,
            "priceImpactPct": 0.02,
            "routePlan": [
                {"poolId": pool_id, "inputMint": NATIVE_MINT, "outputMint": TOKEN_MINT}
                for pool_id in pool_ids
            ],
        },
    }


class FakeRestClient:
    def __init__(self, responses: list[dict[str, Any]]) -> None:
        self.responses = responses
        self.requests: list[AsyncRestRequest] = []
        self.closed = False

    async def send(self, request: AsyncRestRequest) -> dict[str, Any]:
        self.requests.append(request)
        return self.responses.pop(0)

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_list_pools_follows_pagination():
    api = FakeRestClient(
        [
            {"success": True, "data": {"count": 2, "data": [_pool_payload(POOL_ID)], "hasNextPage": True}},
            {"success": True, "data": {"count": 2, "data": [_pool_payload(OTHER_POOL)], "hasNextPage": False}},
        ]
    )
    client = RaydiumTradeClient(api, FakeRestClient([]))

    pools = await client.list_pools(TOKEN_MINT, NATIVE_MINT)

    assert [pool.id for pool in pools] == [POOL_ID, OTHER_POOL]
    assert pools[0].program_id == "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
    assert [request.params["page"] for request in api.requests] == [1, 2]
    assert api.requests[0].params["mint1"] == TOKEN_MINT
    assert api.requests[0].params["poolType"] == "all"


@pytest.mark.asyncio
async def test_list_pools_skips_malformed_entries():
    api = FakeRestClient(
        [{"success": True, "data": {"data": [{"id": "broken"}, _pool_payload(POOL_ID)]}}]
    )
    client = RaydiumTradeClient(api, FakeRestClient([]))

    pools = await client.list_pools(TOKEN_MINT, NATIVE_MINT)

    assert [pool.id for pool in pools] == [POOL_ID]


@pytest.mark.asyncio
async def test_get_pool_returns_fresh_snapshot():
    api = FakeRestClient([{"success": True, "data": [_pool_payload(POOL_ID, price=3.5)]}])
    client = RaydiumTradeClient(api, FakeRestClient([]))

    pool = await client.get_pool(POOL_ID)

    assert pool.price == 3.5
    assert api.requests[0].path == "/pools/info/ids"
    assert api.requests[0].params == {"ids": POOL_ID}


@pytest.mark.asyncio
async def test_get_pool_missing_returns_none():
    api = FakeRestClient([{"success": True, "data": [None]}])
    client = RaydiumTradeClient(api, FakeRestClient([]))

    assert await client.get_pool(POOL_ID) is None


@pytest.mark.asyncio
async def test_get_usd_price_parses_string_values():
    api = FakeRestClient([{"success": True, "data": {NATIVE_MINT: "151.25"}}])
    client = RaydiumTradeClient(api, FakeRestClient([]))

    assert await client.get_usd_price(NATIVE_MINT) == 151.25


def test_get_routes_only_uses_given_pools():
    client = RaydiumTradeClient(FakeRestClient([]), FakeRestClient([]))
    pools = [
        make_pool(),
        make_pool(pool_id=OTHER_POOL, other_mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"),
    ]

    routes = client.get_routes(NATIVE_MINT, TOKEN_MINT, pools)

    assert [route.pool_id for route in routes] == [POOL_ID]


@pytest.mark.asyncio
async def test_fetch_route_data_keeps_quotes_inside_pool_set():
    trade = FakeRestClient([_quote_payload([POOL_ID])])
    client = RaydiumTradeClient(FakeRestClient([]), trade)
    routes = client.get_routes(NATIVE_MINT, TOKEN_MINT, [make_pool()])

    quotes = await client.fetch_route_data(routes, 100_000_000, 100)

    assert len(quotes) == 1
    assert quotes[0].output_amount == "49000000"
    assert quotes[0].raw_payload["id"] == "quote-1"
    params = trade.requests[0].params
    assert params["amount"] == "100000000"
    assert params["slippageBps"] == "100"
    assert params["txVersion"] == "V0"


@pytest.mark.asyncio
async def test_fetch_route_data_discards_routes_through_other_pools():
    trade = FakeRestClient([_quote_payload([POOL_ID, OTHER_POOL])])
    client = RaydiumTradeClient(FakeRestClient([]), trade)
    routes = client.get_routes(NATIVE_MINT, TOKEN_MINT, [make_pool()])

    assert await client.fetch_route_data(routes, 100_000_000, 100) == []


@pytest.mark.asyncio
async def test_compute_swap_base_in_rejects_malformed_quote():
    payload = _quote_payload([POOL_ID])
    payload["data"]["outputAmount"] = "-5"
    client = RaydiumTradeClient(FakeRestClient([]), FakeRestClient([payload]))

    with pytest.raises(AsyncRestError, match="Malformed"):
        await client.compute_swap_base_in(NATIVE_MINT, TOKEN_MINT, 1, 100)


@pytest.mark.asyncio
async def test_build_swap_posts_quote_and_accounts():
    trade = FakeRestClient(
        [{"success": True, "data": [{"transaction": "dHgx"}, {"transaction": "dHgy"}]}]
    )
    client = RaydiumTradeClient(FakeRestClient([]), trade)
    quote = make_quote(NATIVE_MINT, TOKEN_MINT, 100)

    transactions = await client.build_swap(
        quote,
        wallet="wallet-address",
        compute_unit_price_micro_lamports=465915,
        wrap_sol=True,
        unwrap_sol=False,
        output_account="token-account",
    )

    assert transactions == ["dHgx", "dHgy"]
    request = trade.requests[0]
    assert request.method == "POST"
    assert request.path == "/transaction/swap-base-in"
    assert request.body["computeUnitPriceMicroLamports"] == "465915"
    assert request.body["swapResponse"] == dict(quote.raw_payload)
    assert request.body["wrapSol"] is True
    assert request.body["outputAccount"] == "token-account"
    assert "inputAccount" not in request.body


@pytest.mark.asyncio
async def test_build_swap_without_transactions_raises():
    client = RaydiumTradeClient(
        FakeRestClient([]), FakeRestClient([{"success": True, "data": []}])
    )

    with pytest.raises(AsyncRestError):
        await client.build_swap(
            make_quote(NATIVE_MINT, TOKEN_MINT, 100),
            wallet="wallet-address",
            compute_unit_price_micro_lamports=0,
            wrap_sol=True,
            unwrap_sol=False,
        )


@pytest.mark.asyncio
async def test_close_releases_both_clients():
    api, trade = FakeRestClient([]), FakeRestClient([])
    client = RaydiumTradeClient(api, trade)

    await client.close()

    assert api.closed and trade.closed
