"""
Read models for on-chain auctions.

Reconciles the auction registry, per-auction contracts and the IPFS metadata
gateway into consistent snapshots for a marketplace UI.
"""

from auction_reader.config import configure_logging, get_settings
from auction_reader.errors import (
    AuctionReaderError,
    BalanceReadFailure,
    ChainReadError,
    LiveStateReadFailure,
    MetadataUnavailable,
    NativeBalanceReadFailure,
    ProposalNotFound,
    RegistryReadFailure,
    TokenBalanceReadFailure,
)
from auction_reader.services.auction_aggregator import AuctionAggregator, AuctionSubscription, SubscriptionStatus
from auction_reader.services.auction_list import AuctionListAggregator
from auction_reader.services.wallet_balance import WalletBalanceAggregator

__version__ = "0.1.0"

__all__ = [
    "AuctionAggregator",
    "AuctionListAggregator",
    "AuctionReaderError",
    "AuctionSubscription",
    "BalanceReadFailure",
    "ChainReadError",
    "LiveStateReadFailure",
    "MetadataUnavailable",
    "NativeBalanceReadFailure",
    "ProposalNotFound",
    "RegistryReadFailure",
    "SubscriptionStatus",
    "TokenBalanceReadFailure",
    "WalletBalanceAggregator",
    "configure_logging",
    "get_settings",
]
