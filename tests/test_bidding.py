#!/usr/bin/env python3
"""
Tests for pre-bid checks and transaction error hints
"""

import logging

import pytest

from auction_reader.models.auction import AuctionSnapshot, LiveAuctionState
from auction_reader.services.bidding import (
    RPC_ERROR_HINTS,
    check_bid,
    log_bidding_details,
    log_transaction_error,
    minimum_next_bid,
)
from conftest import ETHER, NOW, make_proposal


def _snapshot(highest_bid=0, starting_bid=ETHER, end_time=NOW + 3600):
    return AuctionSnapshot(
        proposal_id=1,
        proposal=make_proposal(1, starting_bid=starting_bid),
        live=LiveAuctionState(highest_bid=highest_bid, end_time=end_time),
    )


class TestCheckBid:

    def test_minimum_next_bid(self):
        assert minimum_next_bid(_snapshot()) == ETHER
        assert minimum_next_bid(_snapshot(highest_bid=2 * ETHER)) == 2 * ETHER + 1

    def test_valid_first_bid(self):
        result = check_bid(_snapshot(), ETHER, allowance=ETHER, now=NOW)
        assert result.ok
        assert result.problems == []
        assert result.allowance_shortfall == 0

    def test_below_starting_bid(self):
        result = check_bid(_snapshot(), ETHER - 1, allowance=ETHER, now=NOW)
        assert not result.meets_starting_bid
        assert result.problems == ["Bid must be at least 1"]

    def test_not_above_highest(self):
        result = check_bid(_snapshot(highest_bid=2 * ETHER), 2 * ETHER, allowance=5 * ETHER, now=NOW)
        assert not result.above_highest_bid
        assert result.meets_starting_bid
        assert result.problems == ["Bid must be higher than 2"]

    def test_allowance_shortfall(self):
        result = check_bid(_snapshot(), 2 * ETHER, allowance=ETHER // 2, now=NOW)
        assert not result.allowance_sufficient
        assert result.allowance_shortfall == 3 * ETHER // 2
        assert result.problems == ["Allowance short by 1.5"]

    def test_ended_auction(self):
        result = check_bid(_snapshot(end_time=NOW - 1), 2 * ETHER, allowance=2 * ETHER, now=NOW)
        assert not result.auction_active
        assert result.problems == ["Auction is not active"]

    def test_decimal_string_amount(self):
        """User input like "1.5" is parsed into base units"""
        result = check_bid(_snapshot(), "1.5", allowance=2 * ETHER, now=NOW)
        assert result.amount == 3 * ETHER // 2
        assert result.ok

    def test_invalid_string_amount(self):
        with pytest.raises(ValueError):
            check_bid(_snapshot(), "abc", allowance=ETHER, now=NOW)

    def test_unknown_deadline_is_inactive(self):
        result = check_bid(_snapshot(end_time=0), 2 * ETHER, allowance=2 * ETHER, now=NOW)
        assert not result.auction_active

    def test_log_bidding_details(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="auction_reader.services.bidding"):
            result = log_bidding_details(_snapshot(), ETHER, ETHER, user_address="0xabc", now=NOW)
        assert result.ok
        assert "Bid amount: 1" in caplog.text
        assert "FAIL" not in caplog.text


class RpcError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class TestTransactionErrors:

    def test_revert_reason_hint(self):
        hints = log_transaction_error(Exception("execution reverted: Insufficient allowance"))
        assert hints == ["Allowance too low; approve a larger amount"]

    def test_rpc_code_attribute(self):
        hints = log_transaction_error(RpcError("User denied transaction signature", 4001), kind="approve")
        assert hints == [RPC_ERROR_HINTS[4001]]

    def test_rpc_error_dict(self):
        """web3 raises ValueError({'code': ..., 'message': ...}) for node errors"""
        hints = log_transaction_error(ValueError({"code": -32000, "message": "insufficient funds for gas"}))
        assert RPC_ERROR_HINTS[-32000] in hints

    def test_internal_error_message(self):
        hints = log_transaction_error(Exception("Internal JSON-RPC error."))
        assert hints == [RPC_ERROR_HINTS[-32603]]

    def test_unknown_error(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert log_transaction_error(Exception("nonce too low")) == []
        assert "BID transaction error" in caplog.text
