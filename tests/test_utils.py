"""
Tests for EVM call encoding and JSON serialization helpers.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest

from models.gateway_models import SessionState, ToolResult
from utils.evm import (
    decode_uint,
    encode_address,
    encode_allowance,
    encode_balance_of,
    is_native_token,
)
from utils.serialization import dumps, to_jsonable

OWNER = "0x552008c0f6870c2f77e5cC1d2eb9bdff03e30Ea0"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"


class TestEvmEncoding:
    def test_native_tokens(self):
        assert is_native_token("0x0000000000000000000000000000000000000000")
        assert is_native_token("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE")
        assert not is_native_token(SPENDER)

    def test_encode_address_pads_to_word(self):
        word = encode_address(OWNER)
        assert len(word) == 64
        assert word.endswith(OWNER[2:].lower())
        assert word.startswith("0" * 24)

    @pytest.mark.parametrize("address", ["0x1234", "not-an-address", "0x" + "g" * 40])
    def test_encode_address_rejects_invalid(self, address):
        with pytest.raises(ValueError):
            encode_address(address)

    def test_balance_of_calldata(self):
        data = encode_balance_of(OWNER)
        assert data.startswith("0x70a08231")
        assert len(data) == 10 + 64

    def test_allowance_calldata(self):
        data = encode_allowance(OWNER, SPENDER)
        assert data.startswith("0xdd62ed3e")
        assert len(data) == 10 + 128

    def test_decode_uint(self):
        assert decode_uint("0x10") == 16
        assert decode_uint("0x" + "f" * 64) == 2**256 - 1
        assert decode_uint("0x") == 0
        assert decode_uint(None) == 0


@dataclass
class Sample:
    name: str
    amount: int


class TestSerialization:
    def test_wide_integers_keep_every_digit(self):
        value = 2**200 + 7
        assert json.loads(dumps({"amount": value}))["amount"] == value

    def test_common_types(self):
        data = to_jsonable(
            {
                "when": datetime(2024, 1, 2, 3, 4, 5),
                "price": Decimal("1.50"),
                "state": SessionState.OPEN,
                "tags": {"a"},
                "raw": b"\x01\x02",
                "sample": Sample("eth", 3),
            }
        )

        assert data == {
            "when": "2024-01-02T03:04:05",
            "price": "1.50",
            "state": "open",
            "tags": ["a"],
            "raw": "0x0102",
            "sample": {"name": "eth", "amount": 3},
        }

    def test_pydantic_models(self):
        data = to_jsonable(ToolResult(tool="chains", result=[1]))
        assert data == {"tool": "chains", "result": [1], "error": None}

    def test_unserializable_raises(self):
        with pytest.raises(TypeError):
            to_jsonable(object())
