"""EVM integration components."""

from fireside_tips.evm.wallet import JsonRpcWallet, WalletRpcError

__all__ = ["JsonRpcWallet", "WalletRpcError"]
