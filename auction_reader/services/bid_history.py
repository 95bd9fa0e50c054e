#!/usr/bin/env python3
"""
Shape raw Bid event logs into bid records.
"""

import logging
from typing import Any, Iterable, List, Mapping, Union

from auction_reader.chain_reader import RawLogEntry
from auction_reader.models.auction import Bid

logger = logging.getLogger(__name__)


def _args_of(entry: Union[RawLogEntry, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(entry, RawLogEntry):
        return entry.args
    return entry.get("args") or {}


def reconstruct_bid_history(entries: Iterable[Union[RawLogEntry, Mapping[str, Any]]]) -> List[Bid]:
    """One Bid per log entry, in the order the logs were emitted.

    No sorting and no de-duplication: a bidder who bid three times appears
    three times. Entries without bidder/amount arguments are skipped.
    """
    history: List[Bid] = []
    for entry in entries:
        args = _args_of(entry)
        bidder = args.get("bidder")
        amount = args.get("amount")
        if bidder is None or amount is None:
            logger.warning(f"Skipping Bid log without bidder/amount: {dict(args)}")
            continue
        history.append(Bid(bidder=str(bidder), amount=int(amount)))
    return history
