"""Solidity ABI calldata for the three entry points the engine calls."""

from __future__ import annotations

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

DISTRIBUTE_NATIVE_SIG = "distributeETH(address[])"
DISTRIBUTE_TOKEN_SIG = "distributeToken(address,address[],uint256)"
APPROVE_SIG = "approve(address,uint256)"

DISTRIBUTE_NATIVE_SELECTOR = function_signature_to_4byte_selector(DISTRIBUTE_NATIVE_SIG)
DISTRIBUTE_TOKEN_SELECTOR = function_signature_to_4byte_selector(DISTRIBUTE_TOKEN_SIG)
APPROVE_SELECTOR = function_signature_to_4byte_selector(APPROVE_SIG)


def encode_distribute_native(recipients: list[str] | tuple[str, ...]) -> bytes:
    args = [to_checksum_address(r) for r in recipients]
    return DISTRIBUTE_NATIVE_SELECTOR + encode(["address[]"], [args])


def encode_distribute_token(
    token: str, recipients: list[str] | tuple[str, ...], total: int,
) -> bytes:
    args = [to_checksum_address(r) for r in recipients]
    return DISTRIBUTE_TOKEN_SELECTOR + encode(
        ["address", "address[]", "uint256"],
        [to_checksum_address(token), args, total],
    )


def encode_approve(spender: str, amount: int) -> bytes:
    return APPROVE_SELECTOR + encode(
        ["address", "uint256"], [to_checksum_address(spender), amount],
    )
