#!/usr/bin/env python3
"""
Read-only checks a UI runs before handing a bid to the wallet, plus debug logging.

Nothing here builds or signs transactions.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Union

from auction_reader.models.auction import AuctionSnapshot, BidCheck
from auction_reader.utils.formatting import format_units, parse_units

logger = logging.getLogger(__name__)

# JSON-RPC / wallet error codes with a known meaning
RPC_ERROR_HINTS = {
    -32603: "Internal JSON-RPC error: reconnect the wallet and check the RPC endpoint",
    -32000: "Insufficient funds for gas or a pending transaction",
    4001: "User rejected the transaction",
}

# Revert reasons with a known meaning
REVERT_HINTS = {
    "insufficient allowance": "Allowance too low; approve a larger amount",
    "bid must be higher": "Bid must exceed the current highest bid",
    "auction is not active": "Auction has ended or has not started",
    "transfer failed": "Token transfer failed; check balance and allowance",
}


def minimum_next_bid(snapshot: AuctionSnapshot) -> int:
    """Smallest amount the contract accepts next"""
    if snapshot.highest_bid > 0:
        return snapshot.highest_bid + 1
    return snapshot.starting_bid


def check_bid(
    snapshot: AuctionSnapshot,
    amount: Union[int, str],
    allowance: int,
    now: Optional[float] = None,
) -> BidCheck:
    """Validate a bid against snapshot and the bidder's allowance.

    amount is in base units, or a decimal string as typed by the user ("1.5").
    Raises ValueError for a string that is not a valid amount.
    """
    if isinstance(amount, str):
        amount = parse_units(amount)
    now = time.time() if now is None else now
    above_highest = snapshot.highest_bid == 0 or amount > snapshot.highest_bid
    meets_starting = snapshot.highest_bid > 0 or amount >= snapshot.starting_bid
    allowance_ok = allowance >= amount
    active = snapshot.end_time > 0 and now < snapshot.end_time

    problems: List[str] = []
    if not above_highest:
        problems.append(f"Bid must be higher than {format_units(snapshot.highest_bid)}")
    if not meets_starting:
        problems.append(f"Bid must be at least {format_units(snapshot.starting_bid)}")
    if not allowance_ok:
        problems.append(f"Allowance short by {format_units(amount - allowance)}")
    if not active:
        problems.append("Auction is not active")

    return BidCheck(
        amount=amount,
        minimum_bid=minimum_next_bid(snapshot),
        above_highest_bid=above_highest,
        meets_starting_bid=meets_starting,
        allowance_sufficient=allowance_ok,
        auction_active=active,
        allowance_shortfall=max(amount - allowance, 0),
        problems=problems,
    )


def log_bidding_details(
    snapshot: AuctionSnapshot,
    amount: Union[int, str],
    allowance: int,
    user_address: Optional[str] = None,
    now: Optional[float] = None,
) -> BidCheck:
    """Log everything relevant to a bid attempt at DEBUG level and return the check"""
    result = check_bid(snapshot, amount, allowance, now)
    amount = result.amount
    end = datetime.fromtimestamp(snapshot.end_time, tz=timezone.utc) if snapshot.end_time else None
    logger.debug(f"🔍 Bidding details for auction {snapshot.auction_address}")
    logger.debug(f"   User: {user_address}")
    logger.debug(f"   Bid amount: {format_units(amount)} ({amount} wei)")
    logger.debug(f"   Allowance: {format_units(allowance)}")
    logger.debug(f"   Highest bid: {format_units(snapshot.highest_bid)}")
    logger.debug(f"   Starting bid: {format_units(snapshot.starting_bid)}")
    logger.debug(f"   End time: {end.isoformat() if end else 'unknown'}")
    for label, passed in (
        ("Bid > highest", result.above_highest_bid),
        ("Bid >= starting", result.meets_starting_bid),
        ("Allowance >= bid", result.allowance_sufficient),
        ("Auction active", result.auction_active),
    ):
        logger.debug(f"   {label}: {'✅ PASS' if passed else '❌ FAIL'}")
    return result


def log_transaction_error(error: BaseException, kind: str = "bid") -> List[str]:
    """Log a failed approval/bid and return human-readable hints for it"""
    logger.error(f"❌ {kind.upper()} transaction error: {error}")
    hints: List[str] = []
    message = str(error).lower()
    for marker, hint in REVERT_HINTS.items():
        if marker in message:
            hints.append(hint)

    code = getattr(error, "code", None)
    if code is None and error.args and isinstance(error.args[0], dict):
        code = error.args[0].get("code")
    if code in RPC_ERROR_HINTS:
        hints.append(RPC_ERROR_HINTS[code])
    elif "internal json-rpc error" in message:
        hints.append(RPC_ERROR_HINTS[-32603])

    for hint in hints:
        logger.warning(f"💡 {hint}")
    return hints
