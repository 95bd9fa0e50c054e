#!/usr/bin/env python3
"""
Error taxonomy for the auction read layer.

Aggregators catch these at their outer boundary and degrade to documented
defaults; nothing here is meant to reach the UI as an exception.
"""

from typing import Optional


class AuctionReaderError(Exception):
    """Base class for every failure raised by this package"""


class ChainReadError(AuctionReaderError):
    """A read-only call against the chain failed"""

    def __init__(self, message: str, address: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.address = address
        self.operation = operation


class RegistryReadFailure(ChainReadError):
    """The mandatory registry lookup failed; the snapshot cannot be built"""


class ProposalNotFound(RegistryReadFailure):
    """The registry has no proposal under the requested identifier"""

    def __init__(self, proposal_id: int, address: Optional[str] = None):
        super().__init__(f"Proposal {proposal_id} not found in registry", address, "proposals")
        self.proposal_id = proposal_id


class LiveStateReadFailure(ChainReadError):
    """One of the live auction reads failed, so the whole batch is discarded"""


class MetadataUnavailable(AuctionReaderError):
    """The metadata document could not be fetched or was not a JSON object"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class BalanceReadFailure(AuctionReaderError):
    """A wallet balance read failed"""

    def __init__(self, message: str, account: Optional[str] = None):
        super().__init__(message)
        self.account = account


class NativeBalanceReadFailure(BalanceReadFailure):
    """Native currency balance read failed (surfaced to the user)"""


class TokenBalanceReadFailure(BalanceReadFailure):
    """Token balance read failed (coerced to a zero balance)"""
