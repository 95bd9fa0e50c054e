#!/usr/bin/env python3
"""
Summaries of every Live or Finished auction in the registry, for list pages.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from auction_reader.chain_reader import ChainReader
from auction_reader.config import get_settings
from auction_reader.errors import RegistryReadFailure
from auction_reader.metadata_resolver import MetadataResolver, to_gateway_url
from auction_reader.models.auction import (
    PLACEHOLDER_IMAGE,
    AuctionListItem,
    AuctionMetadata,
    AuctionProposal,
    ProposalStatus,
)
from auction_reader.utils.formatting import short_address

logger = logging.getLogger(__name__)

LISTED_STATUSES = (ProposalStatus.LIVE, ProposalStatus.FINISHED)


class AuctionListAggregator:
    """Reads all proposals and their auction summaries concurrently.

    Per-item failures (metadata, live reads) only degrade that item; a failure
    to read the registry itself raises RegistryReadFailure.
    """

    def __init__(
        self,
        chain_reader: ChainReader,
        metadata_resolver: Optional[MetadataResolver] = None,
        thumbnail_gateway: Optional[str] = None,
    ):
        self.chain_reader = chain_reader
        self.metadata_resolver = metadata_resolver
        self.thumbnail_gateway = thumbnail_gateway or get_settings().thumbnail_gateway

    async def fetch_auctions(self) -> List[AuctionListItem]:
        count = await self.chain_reader.read_proposal_count()
        proposals = await asyncio.gather(*(self._read_proposal(i) for i in range(count)))
        listed = [p for p in proposals if p is not None and p.status in LISTED_STATUSES]
        items = await asyncio.gather(*(self._summarize(p) for p in listed))
        logger.info(f"Listed {len(items)} of {count} proposals")
        return list(items)

    async def _read_proposal(self, proposal_id: int) -> Optional[AuctionProposal]:
        try:
            return await self.chain_reader.read_registry_field(proposal_id)
        except RegistryReadFailure as e:
            logger.warning(f"Skipping proposal {proposal_id}: {e}")
            return None

    async def _summarize(self, proposal: AuctionProposal) -> AuctionListItem:
        metadata, (highest_bid, end_time) = await asyncio.gather(
            self._metadata(proposal),
            self._live_summary(proposal),
        )
        image_url = (
            to_gateway_url(metadata.thumbnail_uri, self.thumbnail_gateway)
            if metadata.thumbnail_uri else PLACEHOLDER_IMAGE
        )
        return AuctionListItem(
            proposal_id=proposal.proposal_id,
            proposer=proposal.proposer,
            name=metadata.name,
            category=metadata.category,
            image_url=image_url,
            starting_bid=proposal.starting_bid,
            highest_bid=highest_bid,
            status=proposal.status,
            auction_address=proposal.auction_address,
            end_time=end_time,
        )

    async def _metadata(self, proposal: AuctionProposal) -> AuctionMetadata:
        if not proposal.metadata_uri or self.metadata_resolver is None:
            return AuctionMetadata()
        try:
            return AuctionMetadata.from_document(await self.metadata_resolver.resolve(proposal.metadata_uri))
        except Exception as e:
            logger.error(f"Failed to fetch metadata for proposal {proposal.proposal_id}: {e}")
            return AuctionMetadata()

    async def _live_summary(self, proposal: AuctionProposal) -> Tuple[int, int]:
        if not proposal.has_live_auction:
            return 0, 0
        try:
            highest_bid, end_time = await asyncio.gather(
                self.chain_reader.read_scalar(proposal.auction_address, "highestBid"),
                self.chain_reader.read_scalar(proposal.auction_address, "endTime"),
            )
            return int(highest_bid), int(end_time)
        except Exception as e:
            logger.error(f"Failed to read auction contract at {short_address(proposal.auction_address)}: {e}")
            return 0, 0
