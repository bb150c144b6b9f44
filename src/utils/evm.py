"""
Minimal EVM call encoding for ERC-20 balance and allowance reads.

Only the two view functions the balance tools need are encoded; results are
decoded as a single uint256.
"""

# keccak256 selectors
BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)

NATIVE_TOKEN_ADDRESSES = {
    "0x0000000000000000000000000000000000000000",
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
}


def is_native_token(address: str) -> bool:
    return address.lower() in NATIVE_TOKEN_ADDRESSES


def encode_address(address: str) -> str:
    """Left-pad a 20-byte hex address to a 32-byte ABI word (no 0x prefix)."""
    raw = address.lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    if len(raw) != 40 or any(c not in "0123456789abcdef" for c in raw):
        raise ValueError(f"Invalid address: {address}")
    return raw.rjust(64, "0")


def encode_balance_of(owner: str) -> str:
    return BALANCE_OF_SELECTOR + encode_address(owner)


def encode_allowance(owner: str, spender: str) -> str:
    return ALLOWANCE_SELECTOR + encode_address(owner) + encode_address(spender)


def decode_uint(result: str | None) -> int:
    """Decode a hex quantity or uint256 word; an empty result decodes to 0."""
    if not result or result == "0x":
        return 0
    return int(result, 16)
