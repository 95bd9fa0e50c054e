#!/usr/bin/env python3
"""
Pydantic models for the auction read layer.

Everything handed to a consumer is frozen: aggregators publish new copies
instead of mutating a snapshot in place.
"""

from enum import IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from auction_reader.utils.formatting import format_units

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_NAME = "Untitled"
DEFAULT_DESCRIPTION = ""
DEFAULT_CATEGORY = "Uncategorized"
PLACEHOLDER_IMAGE = "/placeholder.svg"


def is_zero_address(address: Optional[str]) -> bool:
    """True for the empty value and for 0x000...0 in any casing"""
    if not address:
        return True
    try:
        return int(str(address), 16) == 0
    except ValueError:
        return False


class ProposalStatus(IntEnum):
    """Lifecycle of a registry proposal (slot 4 of the registry tuple)"""
    PENDING = 0
    REJECTED = 1
    LIVE = 2
    FINISHED = 3


class AuctionProposal(BaseModel):
    """Registry entry for one proposal; read-only and never mutated locally"""
    model_config = ConfigDict(frozen=True)

    proposal_id: int = Field(..., ge=0, description="Registry identifier")
    proposer: str = Field(ZERO_ADDRESS, description="Address that submitted the proposal")
    metadata_uri: str = Field("", description="Content-addressable metadata URI")
    starting_bid: int = Field(0, ge=0, description="Starting bid in base units")
    duration: int = Field(0, ge=0, description="Auction duration in seconds")
    status: ProposalStatus = Field(ProposalStatus.PENDING, description="Proposal status")
    auction_address: str = Field(ZERO_ADDRESS, description="Live auction contract, zero until instantiated")

    # Registry tuple slots; the only place positions are known
    SLOT_PROPOSER: ClassVar[int] = 0
    SLOT_METADATA_URI: ClassVar[int] = 1
    SLOT_STARTING_BID: ClassVar[int] = 2
    SLOT_DURATION: ClassVar[int] = 3
    SLOT_STATUS: ClassVar[int] = 4
    SLOT_AUCTION_ADDRESS: ClassVar[int] = 5

    @classmethod
    def from_registry_tuple(cls, proposal_id: int, raw: Sequence[Any]) -> "AuctionProposal":
        """Map the registry's fixed-position tuple onto named fields"""
        if len(raw) <= cls.SLOT_AUCTION_ADDRESS:
            raise ValueError(f"Registry tuple too short: expected 6 slots, got {len(raw)}")
        return cls(
            proposal_id=proposal_id,
            proposer=raw[cls.SLOT_PROPOSER] or ZERO_ADDRESS,
            metadata_uri=raw[cls.SLOT_METADATA_URI] or "",
            starting_bid=int(raw[cls.SLOT_STARTING_BID] or 0),
            duration=int(raw[cls.SLOT_DURATION] or 0),
            status=int(raw[cls.SLOT_STATUS] or 0),
            auction_address=raw[cls.SLOT_AUCTION_ADDRESS] or ZERO_ADDRESS,
        )

    @property
    def has_live_auction(self) -> bool:
        return not is_zero_address(self.auction_address)

    @property
    def is_empty(self) -> bool:
        """Registries answer unknown ids with an all-zero struct"""
        return is_zero_address(self.proposer) and not self.metadata_uri and self.starting_bid == 0


class AssetAttribute(BaseModel):
    """Free-form name/value property of the auctioned asset"""
    model_config = ConfigDict(frozen=True)

    name: str
    value: str

    @field_validator('name', 'value', mode='before')
    @classmethod
    def stringify(cls, v):
        return "" if v is None else str(v)


class AuctionMetadata(BaseModel):
    """Asset description resolved from the metadata URI"""
    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_NAME
    description: str = DEFAULT_DESCRIPTION
    short_description: str = ""
    category: str = DEFAULT_CATEGORY
    thumbnail_uri: Optional[str] = None
    image_uris: List[str] = Field(default_factory=list)
    attributes: List[AssetAttribute] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "AuctionMetadata":
        """Build from a gateway JSON document, falling back to defaults field by field"""
        images = document.get("imageUri", document.get("imageUris"))
        if isinstance(images, str):
            images = [images]
        if not isinstance(images, list):
            images = []

        attributes = []
        for item in document.get("attributes") or []:
            if isinstance(item, dict) and "name" in item:
                attributes.append(AssetAttribute(name=item.get("name"), value=item.get("value")))

        return cls(
            name=document.get("name") or DEFAULT_NAME,
            description=document.get("description") or DEFAULT_DESCRIPTION,
            short_description=document.get("shortDescription") or "",
            category=document.get("type") or document.get("category") or DEFAULT_CATEGORY,
            thumbnail_uri=document.get("thumbnail") or None,
            image_uris=[str(uri) for uri in images if uri],
            attributes=attributes,
        )


class Bid(BaseModel):
    """One bid, in emission order of the Bid event stream"""
    model_config = ConfigDict(frozen=True)

    bidder: str = Field(..., description="Bidder address")
    amount: int = Field(..., ge=0, description="Bid amount in base units")


class LiveAuctionState(BaseModel):
    """State read from the per-auction contract"""
    model_config = ConfigDict(frozen=True)

    highest_bid: int = Field(0, ge=0)
    highest_bidder: str = ""
    end_time: int = Field(0, description="Deadline as unix seconds, 0 when unknown")
    bid_history: List[Bid] = Field(default_factory=list)


class AuctionSnapshot(BaseModel):
    """Point-in-time merged view of proposal, metadata and live state"""
    model_config = ConfigDict(frozen=True)

    proposal_id: Optional[int] = None
    proposal: Optional[AuctionProposal] = None
    metadata: AuctionMetadata = Field(default_factory=AuctionMetadata)
    live: LiveAuctionState = Field(default_factory=LiveAuctionState)

    # Gateway URLs derived from metadata
    image_urls: List[str] = Field(default_factory=list)
    thumbnail_url: Optional[str] = None

    # Countdown, maintained by the owning subscription
    time_left: str = ""
    is_finished: bool = False

    # Degradation markers
    metadata_degraded: bool = False
    live_state_degraded: bool = False

    @property
    def starting_bid(self) -> int:
        return self.proposal.starting_bid if self.proposal else 0

    @property
    def highest_bid(self) -> int:
        return self.live.highest_bid

    @property
    def end_time(self) -> int:
        return self.live.end_time

    @property
    def bid_history(self) -> List[Bid]:
        return self.live.bid_history

    @property
    def auction_address(self) -> str:
        return self.proposal.auction_address if self.proposal else ZERO_ADDRESS

    @computed_field
    @property
    def display_price(self) -> int:
        return self.live.highest_bid if self.live.highest_bid > 0 else self.starting_bid

    @computed_field
    @property
    def formatted_price(self) -> str:
        return format_units(self.display_price)

    @computed_field
    @property
    def participant_count(self) -> int:
        return len({bid.bidder.lower() for bid in self.live.bid_history})


class AuctionListItem(BaseModel):
    """Summary of one Live or Finished auction for list views"""
    model_config = ConfigDict(frozen=True)

    proposal_id: int
    proposer: str
    name: str = DEFAULT_NAME
    category: str = DEFAULT_CATEGORY
    image_url: str = PLACEHOLDER_IMAGE
    starting_bid: int = 0
    highest_bid: int = 0
    status: ProposalStatus
    auction_address: str = ZERO_ADDRESS
    end_time: int = 0

    @computed_field
    @property
    def display_price(self) -> int:
        return self.highest_bid if self.highest_bid > 0 else self.starting_bid


class BidCheck(BaseModel):
    """Result of validating a prospective bid against a snapshot"""
    model_config = ConfigDict(frozen=True)

    amount: int
    minimum_bid: int
    above_highest_bid: bool
    meets_starting_bid: bool
    allowance_sufficient: bool
    auction_active: bool
    allowance_shortfall: int = 0
    problems: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems
