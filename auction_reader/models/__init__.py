from auction_reader.models.auction import (
    ZERO_ADDRESS,
    AssetAttribute,
    AuctionListItem,
    AuctionMetadata,
    AuctionProposal,
    AuctionSnapshot,
    Bid,
    BidCheck,
    LiveAuctionState,
    ProposalStatus,
    is_zero_address,
)
from auction_reader.models.wallet import WalletBalanceSnapshot

__all__ = [
    "ZERO_ADDRESS",
    "AssetAttribute",
    "AuctionListItem",
    "AuctionMetadata",
    "AuctionProposal",
    "AuctionSnapshot",
    "Bid",
    "BidCheck",
    "LiveAuctionState",
    "ProposalStatus",
    "WalletBalanceSnapshot",
    "is_zero_address",
]
