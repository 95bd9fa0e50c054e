#!/usr/bin/env python3
"""
Tests for Bid event log shaping
"""

from auction_reader.services.bid_history import reconstruct_bid_history
from conftest import BIDDER_A, BIDDER_B, bid_log


class TestBidHistory:

    def test_empty_log(self):
        assert reconstruct_bid_history([]) == []

    def test_emission_order_is_kept(self):
        """Amounts are not sorted: [10, 25, 15] stays [10, 25, 15]"""
        logs = [bid_log(BIDDER_A, 10, 1), bid_log(BIDDER_B, 25, 2), bid_log(BIDDER_A, 15, 3)]
        history = reconstruct_bid_history(logs)
        assert [(bid.bidder, bid.amount) for bid in history] == [
            (BIDDER_A, 10),
            (BIDDER_B, 25),
            (BIDDER_A, 15),
        ]

    def test_repeat_bidders_are_not_merged(self):
        logs = [bid_log(BIDDER_A, amount, block) for block, amount in enumerate([1, 2, 3])]
        history = reconstruct_bid_history(logs)
        assert len(history) == 3
        assert {bid.bidder for bid in history} == {BIDDER_A}

    def test_identical_entries_are_not_deduplicated(self):
        logs = [bid_log(BIDDER_A, 5), bid_log(BIDDER_A, 5)]
        assert len(reconstruct_bid_history(logs)) == 2

    def test_accepts_plain_mappings(self):
        """web3 AttributeDict-style entries work as well as RawLogEntry"""
        logs = [{"args": {"bidder": BIDDER_B, "amount": 7}, "blockNumber": 12}]
        history = reconstruct_bid_history(logs)
        assert history[0].bidder == BIDDER_B
        assert history[0].amount == 7

    def test_malformed_entries_are_skipped(self):
        logs = [
            {"args": {"bidder": BIDDER_A}},
            {"args": {}},
            {"blockNumber": 3},
            bid_log(BIDDER_B, 9),
        ]
        history = reconstruct_bid_history(logs)
        assert [bid.amount for bid in history] == [9]
