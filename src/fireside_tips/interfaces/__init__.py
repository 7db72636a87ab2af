"""Protocol interfaces for all fireside_tips collaborators."""

from fireside_tips.interfaces.price import PriceSource
from fireside_tips.interfaces.roster import RosterResolver
from fireside_tips.interfaces.wallet import WalletTransport
from fireside_tips.interfaces.notifier import TipNotifier
from fireside_tips.interfaces.executor import TransactionExecutor
from fireside_tips.interfaces.store import TipStore

__all__ = [
    "PriceSource",
    "RosterResolver",
    "WalletTransport",
    "TipNotifier",
    "TransactionExecutor",
    "TipStore",
]
