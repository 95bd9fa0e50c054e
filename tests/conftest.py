#!/usr/bin/env python3
"""
Pytest configuration: in-memory chain, metadata gateway and clock fakes
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from auction_reader.chain_reader import BalanceReader, ChainReader, RawLogEntry
from auction_reader.errors import (
    ChainReadError,
    MetadataUnavailable,
    NativeBalanceReadFailure,
    ProposalNotFound,
    RegistryReadFailure,
    TokenBalanceReadFailure,
)
from auction_reader.metadata_resolver import MetadataResolver
from auction_reader.models.auction import ZERO_ADDRESS, AuctionProposal, ProposalStatus

# Hardhat default accounts / first deployment addresses
PROPOSER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BIDDER_A = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BIDDER_B = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
AUCTION = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OTHER_AUCTION = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
TOKEN = "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"

NOW = 1_750_000_000
ETHER = 10**18


def bid_log(bidder: str, amount: int, block: int = 1, log_index: int = 0) -> RawLogEntry:
    return RawLogEntry(args={"bidder": bidder, "amount": amount}, block_number=block, log_index=log_index)


def make_proposal(
    proposal_id: int = 1,
    auction_address: str = AUCTION,
    starting_bid: int = ETHER,
    metadata_uri: str = "ipfs://QmAsset",
    status: ProposalStatus = ProposalStatus.LIVE,
) -> AuctionProposal:
    return AuctionProposal(
        proposal_id=proposal_id,
        proposer=PROPOSER,
        metadata_uri=metadata_uri,
        starting_bid=starting_bid,
        duration=86400,
        status=status,
        auction_address=auction_address,
    )


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChainReader(ChainReader, BalanceReader):
    """Dictionary-backed chain with failure injection and call recording"""

    def __init__(self):
        self.proposals: Dict[int, AuctionProposal] = {}
        self.scalars: Dict[str, dict] = {}
        self.logs: Dict[str, List[RawLogEntry]] = {}
        self.native_balances: Dict[str, int] = {}
        self.token_balances: Dict[str, int] = {}
        self.failing_registry = set()
        self.failing_scalars = set()
        self.failing_logs = set()
        self.fail_native = False
        self.fail_token = False
        self.registry_gates: Dict[int, asyncio.Event] = {}
        self.calls: List[tuple] = []

    def add_auction(
        self,
        proposal: AuctionProposal,
        highest_bid: int = 0,
        end_time: int = NOW + 3600,
        highest_bidder: str = ZERO_ADDRESS,
        logs: Optional[List[RawLogEntry]] = None,
    ) -> None:
        self.proposals[proposal.proposal_id] = proposal
        self.scalars[proposal.auction_address] = {
            "highestBid": highest_bid,
            "endTime": end_time,
            "highestBidder": highest_bidder,
        }
        self.logs[proposal.auction_address] = list(logs or [])

    def ops(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def read_registry_field(self, proposal_id: int) -> AuctionProposal:
        self.calls.append(("read_registry_field", proposal_id))
        gate = self.registry_gates.get(proposal_id)
        if gate is not None:
            await gate.wait()
        if proposal_id in self.failing_registry:
            raise RegistryReadFailure("node unreachable", None, "proposals")
        if proposal_id not in self.proposals:
            raise ProposalNotFound(proposal_id)
        return self.proposals[proposal_id]

    async def read_proposal_count(self) -> int:
        self.calls.append(("read_proposal_count",))
        return max(self.proposals) + 1 if self.proposals else 0

    async def read_scalar(self, contract_address: str, field_name: str):
        self.calls.append(("read_scalar", contract_address, field_name))
        await asyncio.sleep(0)
        if (contract_address, field_name) in self.failing_scalars:
            raise ChainReadError(f"{field_name} reverted", contract_address, field_name)
        return self.scalars[contract_address][field_name]

    async def read_event_log(self, contract_address: str, event_name: str, from_block: int = 0):
        self.calls.append(("read_event_log", contract_address, event_name, from_block))
        await asyncio.sleep(0)
        if contract_address in self.failing_logs:
            raise ChainReadError("eth_getLogs failed", contract_address, event_name)
        return list(self.logs.get(contract_address, []))

    async def read_native_balance(self, account: str) -> int:
        self.calls.append(("read_native_balance", account))
        await asyncio.sleep(0)
        if self.fail_native:
            raise NativeBalanceReadFailure("rpc down", account)
        return self.native_balances.get(account, 0)

    async def read_token_balance(self, token_address: str, account: str) -> int:
        self.calls.append(("read_token_balance", token_address, account))
        await asyncio.sleep(0)
        if self.fail_token:
            raise TokenBalanceReadFailure("balanceOf reverted", account)
        return self.token_balances.get(account, 0)


class FakeMetadataResolver(MetadataResolver):
    """Serves documents from a dict instead of an HTTP gateway"""

    def __init__(self, documents: Optional[Dict[str, dict]] = None, gateway: str = "https://ipfs.io"):
        super().__init__(gateway=gateway, timeout=1)
        self.documents = dict(documents or {})
        self.failing = set()
        self.resolved: List[str] = []

    async def resolve(self, uri: str) -> dict:
        self.resolved.append(uri)
        await asyncio.sleep(0)
        if uri in self.failing or uri not in self.documents:
            raise MetadataUnavailable(f"no document for {uri}", self.gateway_url(uri))
        return self.documents[uri]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reader():
    return FakeChainReader()


@pytest.fixture
def resolver():
    return FakeMetadataResolver({
        "ipfs://QmAsset": {
            "name": "Jakarta Villa",
            "description": "Three bedroom villa",
            "shortDescription": "Villa",
            "type": "Property",
            "thumbnail": "ipfs://QmThumb",
            "imageUri": ["ipfs://QmImg1", "QmImg2"],
            "attributes": [{"name": "Area", "value": 250}],
        }
    })
