#!/usr/bin/env python3
"""
Auction snapshot aggregation.

AuctionAggregator merges the registry entry, the metadata document and the
live auction contract into one AuctionSnapshot. AuctionSubscription owns the
per-identifier state machine (Idle -> Loading -> Ready/Failed -> Disposed),
discards results of superseded fetches by generation, and runs the countdown.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

from auction_reader.chain_reader import BID_EVENT, ChainReader
from auction_reader.config import get_settings
from auction_reader.errors import LiveStateReadFailure, RegistryReadFailure
from auction_reader.metadata_resolver import MetadataResolver, to_gateway_url
from auction_reader.models.auction import (
    AuctionMetadata,
    AuctionProposal,
    AuctionSnapshot,
    LiveAuctionState,
    is_zero_address,
)
from auction_reader.services.bid_history import reconstruct_bid_history
from auction_reader.services.countdown import TICK_INTERVAL, Countdown
from auction_reader.utils.formatting import short_address

logger = logging.getLogger(__name__)

# Event history is always scanned from genesis so it is complete
HISTORY_FROM_BLOCK = 0


class SubscriptionStatus(str, Enum):
    """Lifecycle of one auction subscription"""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


class AuctionAggregator:
    """Builds auction snapshots from the chain and the metadata gateway.

    chain_reader may be None while the wallet/provider is still being set up;
    subscriptions stay idle until it is assigned.
    """

    def __init__(
        self,
        chain_reader: Optional[ChainReader],
        metadata_resolver: Optional[MetadataResolver] = None,
        thumbnail_gateway: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        tick_interval: float = TICK_INTERVAL,
    ):
        settings = get_settings()
        self.chain_reader = chain_reader
        self.metadata_resolver = metadata_resolver
        self.image_gateway = metadata_resolver.gateway if metadata_resolver else settings.ipfs_gateway
        self.thumbnail_gateway = thumbnail_gateway or settings.thumbnail_gateway
        self.clock = clock
        self.tick_interval = tick_interval

    def subscribe(self, proposal_id: Optional[int] = None) -> "AuctionSubscription":
        """New idle subscription; await start() (or use it as an async context manager)"""
        return AuctionSubscription(self, proposal_id)

    async def build_snapshot(self, proposal_id: int, previous: Optional[AuctionSnapshot] = None) -> AuctionSnapshot:
        """Read everything for proposal_id and merge it into a snapshot.

        Only the registry read is mandatory and raises RegistryReadFailure.
        Metadata and live state are read concurrently once the registry entry
        is known; their failures degrade the snapshot instead of raising.
        previous supplies the live values kept when the live batch fails.
        """
        proposal = await self._read_proposal(proposal_id)

        (metadata, metadata_degraded), (live, live_degraded) = await asyncio.gather(
            self._resolve_metadata(proposal),
            self._read_live_state(proposal, previous),
        )

        return AuctionSnapshot(
            proposal_id=proposal_id,
            proposal=proposal,
            metadata=metadata,
            live=live,
            image_urls=[to_gateway_url(uri, self.image_gateway) for uri in metadata.image_uris],
            thumbnail_url=to_gateway_url(metadata.thumbnail_uri, self.thumbnail_gateway) if metadata.thumbnail_uri else None,
            metadata_degraded=metadata_degraded,
            live_state_degraded=live_degraded,
        )

    async def _read_proposal(self, proposal_id: int) -> AuctionProposal:
        if self.chain_reader is None:
            raise RegistryReadFailure("No chain reader available", None, "proposals")
        try:
            return await self.chain_reader.read_registry_field(proposal_id)
        except RegistryReadFailure:
            raise
        except Exception as e:
            raise RegistryReadFailure(f"Failed to read proposal {proposal_id}: {e}", None, "proposals") from e

    async def _resolve_metadata(self, proposal: AuctionProposal) -> Tuple[AuctionMetadata, bool]:
        if not proposal.metadata_uri or self.metadata_resolver is None:
            return AuctionMetadata(), False
        try:
            document = await self.metadata_resolver.resolve(proposal.metadata_uri)
            return AuctionMetadata.from_document(document), False
        except Exception as e:
            logger.warning(f"Metadata unavailable for proposal {proposal.proposal_id}: {e}")
            return AuctionMetadata(), True

    async def _read_live_state(
        self,
        proposal: AuctionProposal,
        previous: Optional[AuctionSnapshot],
    ) -> Tuple[LiveAuctionState, bool]:
        if not proposal.has_live_auction:
            return LiveAuctionState(), False
        try:
            return await self.read_live_batch(proposal.auction_address), False
        except LiveStateReadFailure as e:
            logger.error(f"Live state read failed for proposal {proposal.proposal_id}: {e}")
            if previous is not None and previous.auction_address.lower() == proposal.auction_address.lower():
                return previous.live, True
            return LiveAuctionState(), True

    async def read_live_batch(self, auction_address: str) -> LiveAuctionState:
        """Three scalar reads plus the full Bid history, issued concurrently.

        The batch is all-or-nothing: any failure raises LiveStateReadFailure.
        """
        reader = self.chain_reader
        results = await asyncio.gather(
            reader.read_scalar(auction_address, "highestBid"),
            reader.read_scalar(auction_address, "endTime"),
            reader.read_scalar(auction_address, "highestBidder"),
            reader.read_event_log(auction_address, BID_EVENT, HISTORY_FROM_BLOCK),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                raise LiveStateReadFailure(
                    f"Live auction {short_address(auction_address)} unreadable: {result}",
                    auction_address,
                    getattr(result, "operation", None),
                ) from result

        highest_bid, end_time, highest_bidder, logs = results
        return LiveAuctionState(
            highest_bid=int(highest_bid),
            end_time=int(end_time),
            highest_bidder="" if is_zero_address(highest_bidder) else str(highest_bidder),
            bid_history=reconstruct_bid_history(logs),
        )


class AuctionSubscription:
    """Live view of one auction identifier.

    Every (re)load bumps a generation counter; a fetch whose generation is no
    longer current when it completes is dropped, so a slow stale fetch never
    overwrites a newer snapshot.
    """

    def __init__(self, aggregator: AuctionAggregator, proposal_id: Optional[int] = None):
        self._aggregator = aggregator
        self._proposal_id = proposal_id
        self._snapshot = AuctionSnapshot()
        self._status = SubscriptionStatus.IDLE
        self._error: Optional[str] = None
        self._generation = 0
        self._countdown: Optional[Countdown] = None
        self._listeners: List[Callable[["AuctionSubscription"], None]] = []

    async def __aenter__(self) -> "AuctionSubscription":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.dispose()

    @property
    def proposal_id(self) -> Optional[int]:
        return self._proposal_id

    @property
    def snapshot(self) -> AuctionSnapshot:
        return self._snapshot

    @property
    def status(self) -> SubscriptionStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return self._status == SubscriptionStatus.LOADING

    @property
    def is_refetching(self) -> bool:
        return self.is_loading and self._snapshot.proposal is not None

    @property
    def countdown_running(self) -> bool:
        return self._countdown is not None and self._countdown.running

    def add_listener(self, callback: Callable[["AuctionSubscription"], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[["AuctionSubscription"], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    async def start(self) -> None:
        """Initial load for the identifier given at subscription time"""
        await self._load()

    async def set_proposal_id(self, proposal_id: Optional[int]) -> None:
        """Switch to another identifier; the old snapshot and countdown are dropped"""
        if self._status == SubscriptionStatus.DISPOSED:
            return
        if proposal_id == self._proposal_id and self._status in (SubscriptionStatus.LOADING, SubscriptionStatus.READY):
            return
        self._proposal_id = proposal_id
        self._cancel_countdown()
        self._snapshot = AuctionSnapshot()
        await self._load()

    async def refresh(self) -> None:
        """Rebuild the snapshot from scratch; safe while another load is in flight"""
        if self._status == SubscriptionStatus.DISPOSED:
            return
        await self._load()

    def dispose(self) -> None:
        """Tear down: stop the countdown and ignore any fetch still in flight"""
        self._generation += 1
        self._cancel_countdown()
        self._status = SubscriptionStatus.DISPOSED
        self._listeners.clear()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._status != SubscriptionStatus.DISPOSED

    async def _load(self) -> None:
        self._generation += 1
        generation = self._generation
        proposal_id = self._proposal_id

        if proposal_id is None or self._aggregator.chain_reader is None:
            self._cancel_countdown()
            self._snapshot = AuctionSnapshot()
            self._status = SubscriptionStatus.IDLE
            self._error = None
            self._notify()
            return

        previous = self._snapshot if self._snapshot.proposal_id == proposal_id else None
        self._status = SubscriptionStatus.LOADING
        self._error = None
        self._notify()

        try:
            snapshot = await self._aggregator.build_snapshot(proposal_id, previous)
        except RegistryReadFailure as e:
            if not self._is_current(generation):
                logger.debug(f"Dropping failed fetch {generation} for proposal {proposal_id}: superseded")
                return
            logger.error(f"Failed to load auction {proposal_id}: {e}")
            self._cancel_countdown()
            self._snapshot = AuctionSnapshot()
            self._status = SubscriptionStatus.FAILED
            self._error = f"Failed to load auction {proposal_id}"
            self._notify()
            return

        if not self._is_current(generation):
            logger.debug(f"Dropping fetch {generation} for proposal {proposal_id}: superseded")
            return
        self._publish(snapshot)

    def _publish(self, snapshot: AuctionSnapshot) -> None:
        self._cancel_countdown()
        if snapshot.end_time > 0:
            countdown = Countdown(
                snapshot.end_time,
                self._on_tick,
                interval=self._aggregator.tick_interval,
                clock=self._aggregator.clock,
            )
            time_left, finished = countdown.start()
            snapshot = snapshot.model_copy(update={"time_left": time_left, "is_finished": finished})
            if countdown.running:
                self._countdown = countdown
        self._snapshot = snapshot
        self._status = SubscriptionStatus.READY
        self._error = None
        logger.info(
            f"Auction {snapshot.proposal_id} ready: price={snapshot.formatted_price} "
            f"bids={len(snapshot.bid_history)} finished={snapshot.is_finished}"
        )
        self._notify()

    def _on_tick(self, time_left: str, finished: bool) -> None:
        if self._status == SubscriptionStatus.DISPOSED:
            return
        self._snapshot = self._snapshot.model_copy(update={"time_left": time_left, "is_finished": finished})
        self._notify()

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
