"""
LiFi tool handlers.

Each handler takes a validated argument model and returns the JSON result of
one or more upstream calls. Reference data (chain list, single token metadata)
and listings (token lists, bridge/exchange lists) go through the cache; live
state (balances, allowances, quotes, routes, status, gas prices) is always
fetched fresh.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from core.cache import TTLCache, cache_key
from core.config import GatewayConfig
from core.upstream import LiFiClient, UpstreamError
from models.gateway_models import (
    ChainsFilterArgs,
    ConnectionsArgs,
    GasPriceArgs,
    NoArgs,
    QuoteArgs,
    QuoteToAmountArgs,
    RoutesArgs,
    StatusArgs,
    TokenAllowanceArgs,
    TokenAllowanceMulticallArgs,
    TokenArgs,
    TokenBalanceArgs,
    TokenBalancesArgs,
)
from utils.evm import decode_uint, encode_allowance, encode_balance_of, is_native_token

logger = logging.getLogger(__name__)

# JSON-RPC batch size sent to chain nodes
RPC_BATCH_SIZE = 100


class LiFiTools:
    """Tool handlers backed by the LiFi API, chain RPC nodes and the response cache."""

    def __init__(self, client: LiFiClient, cache: TTLCache, config: GatewayConfig) -> None:
        self.client = client
        self.cache = cache
        self.reference_ttl = config.reference_ttl
        self.listing_ttl = config.listing_ttl

    # ===== Cached lookups =====

    async def get_chains(self) -> list[dict[str, Any]]:
        async def fetch() -> list[dict[str, Any]]:
            data = await self.client.call("chains")
            return data["chains"]

        return await self.cache.get_or_compute("chains", self.reference_ttl, fetch)

    async def get_tokens(self, chains: list[int | str] | None = None) -> dict[str, Any]:
        key = cache_key("tokens", chains) if chains else cache_key("tokens", "all")
        return await self.cache.get_or_compute(
            key, self.listing_ttl, lambda: self.client.call("tokens", {"chains": chains})
        )

    async def get_token(self, chain: int | str, token: str) -> dict[str, Any]:
        # Addresses are case-insensitive; symbols are left untouched
        token_key = token.lower() if token.startswith("0x") else token
        return await self.cache.get_or_compute(
            cache_key("token", chain, token_key),
            self.reference_ttl,
            lambda: self.client.call("token", {"chain": chain, "token": token}),
        )

    async def get_tools(self, chains: list[int | str] | None = None) -> dict[str, Any]:
        key = cache_key("tools", chains) if chains else cache_key("tools", "all")
        return await self.cache.get_or_compute(
            key, self.listing_ttl, lambda: self.client.call("tools", {"chains": chains})
        )

    async def rpc_url(self, chain_id: int) -> str:
        """RPC endpoint advertised for chain_id in the cached chain list."""
        for chain in await self.get_chains():
            if chain.get("id") == chain_id:
                urls = (chain.get("metamask") or {}).get("rpcUrls") or []
                if urls:
                    return urls[0]
                break
        raise UpstreamError(f"No RPC URL known for chain {chain_id}")

    # ===== Quotes and routing =====

    async def swap(self, args: QuoteArgs) -> Any:
        return await self.client.call("quote", self._quote_params(args))

    async def bridge(self, args: QuoteArgs) -> Any:
        params = self._quote_params(args)
        params["allowBridges"] = "all"
        params["allowExchanges"] = "none"
        return await self.client.call("quote", params)

    async def quote_to_amount(self, args: QuoteToAmountArgs) -> Any:
        return await self.client.call(
            "quote/toAmount",
            {
                "fromChain": args.from_chain,
                "toChain": args.to_chain,
                "fromToken": args.from_token,
                "toToken": args.to_token,
                "toAmount": args.to_amount,
                "fromAddress": args.from_address,
                "slippage": args.slippage,
            },
        )

    async def connections(self, args: ConnectionsArgs) -> Any:
        return await self.client.call("connections", args.model_dump(by_alias=True))

    async def routes(self, args: RoutesArgs) -> Any:
        body = args.model_dump(by_alias=True, exclude_none=True)
        return await self.client.call("advanced/routes", method="POST", json_body=body)

    async def status(self, args: StatusArgs) -> Any:
        return await self.client.call("status", args.model_dump(by_alias=True))

    @staticmethod
    def _quote_params(args: QuoteArgs) -> dict[str, Any]:
        return args.model_dump(by_alias=True)

    # ===== Reference data =====

    async def chains(self, args: NoArgs) -> Any:
        return await self.get_chains()

    async def tokens(self, args: ChainsFilterArgs) -> Any:
        return await self.get_tokens(args.chains)

    async def token(self, args: TokenArgs) -> Any:
        return await self.get_token(args.chain, args.token)

    async def tools(self, args: ChainsFilterArgs) -> Any:
        return await self.get_tools(args.chains)

    # ===== Live state =====

    async def token_balance(self, args: TokenBalanceArgs) -> Any:
        token = await self.get_token(args.chain_id, args.token)
        rpc_url = await self.rpc_url(args.chain_id)
        balances = await self._read_balances(rpc_url, args.wallet_address, [token])
        return balances[0]

    async def token_balances(self, args: TokenBalancesArgs) -> Any:
        listing = await self.get_tokens([args.chain_id])
        by_chain = listing.get("tokens", {})
        tokens = by_chain.get(str(args.chain_id)) or by_chain.get(args.chain_id) or []
        if not tokens:
            return []
        rpc_url = await self.rpc_url(args.chain_id)
        return await self._read_balances(rpc_url, args.wallet_address, tokens)

    async def token_allowance(self, args: TokenAllowanceArgs) -> Any:
        token = await self.get_token(args.token.chain_id, args.token.address)
        allowances = await self._read_allowances(
            args.owner_address, [(token, args.spender_address)]
        )
        return allowances[0]

    async def token_allowance_multicall(self, args: TokenAllowanceMulticallArgs) -> Any:
        resolved = await asyncio.gather(
            *(self.get_token(item.token.chain_id, item.token.address) for item in args.tokens)
        )
        pairs = [(token, item.spender_address) for token, item in zip(resolved, args.tokens)]
        return await self._read_allowances(args.owner_address, pairs)

    async def gas_price(self, args: GasPriceArgs) -> Any:
        return await self.client.call(f"gas/prices/{args.chain_id}")

    async def gas_prices(self, args: NoArgs) -> Any:
        return await self.client.call("gas/prices")

    # ===== RPC helpers =====

    async def _read_balances(
        self, rpc_url: str, wallet: str, tokens: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        calls: list[tuple[str, list[Any]]] = []
        for token in tokens:
            if is_native_token(token["address"]):
                calls.append(("eth_getBalance", [wallet, "latest"]))
            else:
                calls.append(
                    ("eth_call", [{"to": token["address"], "data": encode_balance_of(wallet)}, "latest"])
                )

        block_number, *raw = await self._rpc_chunked(rpc_url, [("eth_blockNumber", []), *calls])
        block = str(decode_uint(block_number))
        # Amounts are rendered as decimal strings so wide integers survive any JSON consumer
        return [
            {**token, "amount": str(decode_uint(value)), "blockNumber": block}
            for token, value in zip(tokens, raw)
        ]

    async def _read_allowances(
        self, owner: str, pairs: list[tuple[dict[str, Any], str]]
    ) -> list[dict[str, Any]]:
        results: list[dict[str, Any] | None] = [None] * len(pairs)
        by_chain: dict[int, list[int]] = {}
        for index, (token, spender) in enumerate(pairs):
            if is_native_token(token["address"]):
                # Native currency has no allowance
                results[index] = {"token": token, "spenderAddress": spender, "allowance": None}
            else:
                by_chain.setdefault(token["chainId"], []).append(index)

        for chain_id, indexes in by_chain.items():
            rpc_url = await self.rpc_url(chain_id)
            calls = [
                (
                    "eth_call",
                    [
                        {
                            "to": pairs[i][0]["address"],
                            "data": encode_allowance(owner, pairs[i][1]),
                        },
                        "latest",
                    ],
                )
                for i in indexes
            ]
            raw = await self._rpc_chunked(rpc_url, calls)
            for i, value in zip(indexes, raw):
                token, spender = pairs[i]
                results[i] = {
                    "token": token,
                    "spenderAddress": spender,
                    "allowance": str(decode_uint(value)),
                }

        return results  # type: ignore[return-value]

    async def _rpc_chunked(self, rpc_url: str, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        chunks = [calls[i:i + RPC_BATCH_SIZE] for i in range(0, len(calls), RPC_BATCH_SIZE)]
        responses = await asyncio.gather(*(self.client.rpc_batch(rpc_url, chunk) for chunk in chunks))
        return [result for chunk in responses for result in chunk]
