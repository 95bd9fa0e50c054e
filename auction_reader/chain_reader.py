#!/usr/bin/env python3
"""
Read-only access to the auction registry, live auction contracts and balances.

The aggregators only see the narrow ChainReader / BalanceReader interfaces;
Web3ChainReader is the adapter over web3.py's async client.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError

from auction_reader.config import Settings, get_settings, resolve_registry_address
from auction_reader.errors import (
    ChainReadError,
    NativeBalanceReadFailure,
    ProposalNotFound,
    RegistryReadFailure,
    TokenBalanceReadFailure,
)
from auction_reader.models.auction import AuctionProposal
from auction_reader.utils.formatting import short_address

logger = logging.getLogger(__name__)

ABI_DIR = Path(__file__).parent / "abis"

# Zero-argument reads exposed by a live auction contract
LIVE_AUCTION_FIELDS = ("highestBid", "endTime", "highestBidder")
BID_EVENT = "Bid"

# Provider errors worth retrying on a narrower block range
SPLIT_ERROR_MARKERS = (
    'too many results',
    'response size',
    'limit',
    'timeout',
    'gateway',
    'internal error',
    'server error',
)


class RawLogEntry(BaseModel):
    """Decoded event log as returned by the chain, before any shaping"""
    args: Dict[str, Any] = Field(default_factory=dict)
    block_number: int = 0
    transaction_index: int = 0
    log_index: int = 0
    transaction_hash: Optional[str] = None


class ChainReader(ABC):
    """Read operations the auction aggregators need from the chain"""

    @abstractmethod
    async def read_registry_field(self, proposal_id: int) -> AuctionProposal:
        """Registry entry for proposal_id; RegistryReadFailure / ProposalNotFound on failure"""

    @abstractmethod
    async def read_scalar(self, contract_address: str, field_name: str) -> Union[int, str]:
        """One of LIVE_AUCTION_FIELDS from a live auction contract"""

    @abstractmethod
    async def read_event_log(self, contract_address: str, event_name: str, from_block: int = 0) -> List[RawLogEntry]:
        """All matching events from from_block to the chain head, in emission order"""

    @abstractmethod
    async def read_proposal_count(self) -> int:
        """Number of proposals held by the registry"""


class BalanceReader(ABC):
    """Read operations the wallet aggregator needs"""

    @abstractmethod
    async def read_native_balance(self, account: str) -> int:
        """Native currency balance in wei"""

    @abstractmethod
    async def read_token_balance(self, token_address: str, account: str) -> int:
        """ERC-20 balanceOf(account) in base units"""


def load_abi(name: str) -> list:
    """Load a contract ABI shipped with the package.

    Accepts both a bare ABI array and an artifact dict with an 'abi' key.
    """
    path = ABI_DIR / f"{name}.json"
    with open(path, 'r') as f:
        data = json.load(f)
    if isinstance(data, dict) and 'abi' in data:
        return data['abi']
    if isinstance(data, list):
        return data
    raise ValueError(f"Invalid ABI format for {name}")


def should_split_range(error: Exception, span: int, min_span: int) -> bool:
    """Whether a get_logs failure is a provider limit that a narrower range avoids"""
    msg = str(error).lower()
    return span > min_span and any(marker in msg for marker in SPLIT_ERROR_MARKERS)


class Web3ChainReader(ChainReader, BalanceReader):
    """ChainReader/BalanceReader over an AsyncWeb3 client"""

    def __init__(self, w3: AsyncWeb3, registry_address: Optional[str], min_split_span: int = 500):
        self._w3 = w3
        self._registry_address = registry_address
        self._min_split_span = min_split_span
        self._abis = {name: load_abi(name) for name in ("AuctionFactory", "Auction", "ERC20")}
        self._contracts: Dict[tuple, Any] = {}

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None) -> "Web3ChainReader":
        """Build a reader for the configured RPC endpoint and registry"""
        current = current or get_settings()
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(current.rpc_url))
        registry_address = resolve_registry_address(current)
        if not registry_address:
            logger.warning("No registry address configured; registry reads will fail")
        return cls(w3, registry_address)

    def _get_contract_instance(self, address: str, contract_type: str):
        """Get (cached) contract instance for given address and type"""
        abi = self._abis.get(contract_type)
        if not abi:
            raise ValueError(f"Unknown contract type: {contract_type}")
        key = (address.lower(), contract_type)
        if key not in self._contracts:
            self._contracts[key] = self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return self._contracts[key]

    def _registry(self):
        if not self._registry_address:
            raise RegistryReadFailure("Registry address is not configured", None, "proposals")
        return self._get_contract_instance(self._registry_address, "AuctionFactory")

    async def read_registry_field(self, proposal_id: int) -> AuctionProposal:
        registry = self._registry()
        try:
            raw = await registry.functions.proposals(proposal_id).call()
        except ContractLogicError as e:
            # out-of-range index reverts
            raise ProposalNotFound(proposal_id, self._registry_address) from e
        except Exception as e:
            raise RegistryReadFailure(
                f"Failed to read proposal {proposal_id}: {e}", self._registry_address, "proposals"
            ) from e

        try:
            proposal = AuctionProposal.from_registry_tuple(proposal_id, raw)
        except ValueError as e:
            raise RegistryReadFailure(
                f"Malformed registry entry for proposal {proposal_id}: {e}", self._registry_address, "proposals"
            ) from e
        if proposal.is_empty:
            raise ProposalNotFound(proposal_id, self._registry_address)
        return proposal

    async def read_proposal_count(self) -> int:
        registry = self._registry()
        try:
            return int(await registry.functions.getProposalsCount().call())
        except Exception as e:
            raise RegistryReadFailure(
                f"Failed to read proposal count: {e}", self._registry_address, "getProposalsCount"
            ) from e

    async def read_scalar(self, contract_address: str, field_name: str) -> Union[int, str]:
        if field_name not in LIVE_AUCTION_FIELDS:
            raise ValueError(f"Unsupported auction field: {field_name}")
        contract = self._get_contract_instance(contract_address, "Auction")
        try:
            return await getattr(contract.functions, field_name)().call()
        except Exception as e:
            raise ChainReadError(
                f"Failed to read {field_name} from {short_address(contract_address)}: {e}",
                contract_address,
                field_name,
            ) from e

    async def read_event_log(self, contract_address: str, event_name: str, from_block: int = 0) -> List[RawLogEntry]:
        contract = self._get_contract_instance(contract_address, "Auction")
        event_cls = getattr(contract.events, event_name)
        try:
            events = await self._get_event_logs_with_split(event_cls, from_block)
        except Exception as e:
            raise ChainReadError(
                f"Failed to read {event_name} logs from {short_address(contract_address)}: {e}",
                contract_address,
                event_name,
            ) from e
        logger.debug(f"Fetched {len(events)} {event_name} logs for {short_address(contract_address)}")
        return [self._to_raw_entry(event) for event in events]

    async def _get_event_logs_with_split(self, event_cls, from_block: int, to_block: Optional[int] = None) -> List[Any]:
        """Fetch logs with eth_getLogs, halving the block range on provider size/limit errors.

        The first attempt asks for everything up to 'latest'; the chain head is only
        looked up when a split is needed. Halves are concatenated left then right so
        emission order is preserved.
        """
        try:
            return list(await event_cls.get_logs(
                from_block=from_block,
                to_block=to_block if to_block is not None else 'latest',
            ))
        except Exception as e:
            if to_block is None:
                to_block = await self._w3.eth.block_number
            span = to_block - from_block
            if should_split_range(e, span, self._min_split_span):
                mid = from_block + span // 2
                logger.debug(f"Splitting log range {from_block}-{to_block} at {mid}: {e}")
                left = await self._get_event_logs_with_split(event_cls, from_block, mid)
                right = await self._get_event_logs_with_split(event_cls, mid + 1, to_block)
                return left + right
            raise

    @staticmethod
    def _to_raw_entry(event) -> RawLogEntry:
        tx_hash = event.get('transactionHash')
        if tx_hash is not None and not isinstance(tx_hash, str):
            tx_hash = Web3.to_hex(tx_hash)
        return RawLogEntry(
            args=dict(event.get('args', {})),
            block_number=event.get('blockNumber') or 0,
            transaction_index=event.get('transactionIndex') or 0,
            log_index=event.get('logIndex') or 0,
            transaction_hash=tx_hash,
        )

    async def read_native_balance(self, account: str) -> int:
        try:
            return int(await self._w3.eth.get_balance(Web3.to_checksum_address(account)))
        except Exception as e:
            raise NativeBalanceReadFailure(f"Failed to read native balance: {e}", account) from e

    async def read_token_balance(self, token_address: str, account: str) -> int:
        token = self._get_contract_instance(token_address, "ERC20")
        try:
            return int(await token.functions.balanceOf(Web3.to_checksum_address(account)).call())
        except Exception as e:
            raise TokenBalanceReadFailure(
                f"Failed to read token balance from {short_address(token_address)}: {e}", account
            ) from e
