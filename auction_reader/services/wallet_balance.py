#!/usr/bin/env python3
"""
Native and token balances of the connected wallet.

The two balances are read concurrently. A native balance failure is surfaced
as a user-facing error and neither balance changes; a token balance failure
is cosmetic and silently shows "0".
"""

import asyncio
import logging
from typing import Callable, List, Optional

from auction_reader.chain_reader import BalanceReader
from auction_reader.config import resolve_token_address
from auction_reader.models.wallet import WalletBalanceSnapshot
from auction_reader.utils.formatting import ETHER_DECIMALS, format_units, short_address

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load wallet balances"
REFRESH_ERROR = "Failed to refresh wallet balances"
ZERO_BALANCE = "0"


class WalletBalanceAggregator:
    """Balance view for one connected account at a time"""

    def __init__(
        self,
        balance_reader: Optional[BalanceReader],
        token_address: Optional[str] = None,
        token_decimals: int = ETHER_DECIMALS,
        hostname: Optional[str] = None,
    ):
        self.balance_reader = balance_reader
        self.token_address = token_address if token_address is not None else resolve_token_address(hostname)
        self.token_decimals = token_decimals
        self._account: Optional[str] = None
        self._is_connected = False
        self._state = WalletBalanceSnapshot()
        self._listeners: List[Callable[[WalletBalanceSnapshot], None]] = []

    @property
    def state(self) -> WalletBalanceSnapshot:
        return self._state

    def add_listener(self, callback: Callable[[WalletBalanceSnapshot], None]) -> None:
        self._listeners.append(callback)

    def _set_state(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        for callback in list(self._listeners):
            callback(self._state)

    def _ready(self) -> bool:
        return bool(self._account) and self._is_connected and self.balance_reader is not None

    async def set_account(self, account: Optional[str], is_connected: bool = True) -> None:
        """Account or connection changed; refetch automatically when usable"""
        changed = account != self._account or is_connected != self._is_connected
        self._account = account
        self._is_connected = is_connected
        if not changed:
            return
        if account != self._state.account:
            self._set_state(
                account=account,
                native_balance=ZERO_BALANCE,
                token_balance=ZERO_BALANCE,
                is_loading=False,
                error=None,
            )
        await self._fetch(LOAD_ERROR)

    async def set_connected(self, is_connected: bool) -> None:
        await self.set_account(self._account, is_connected)

    async def refresh(self) -> None:
        """Manual refresh; may overlap an automatic fetch (last write wins)"""
        await self._fetch(REFRESH_ERROR)

    async def _fetch(self, error_message: str) -> None:
        if not self._ready():
            if self._state.is_loading:
                self._set_state(is_loading=False)
            return
        account = self._account
        self._set_state(is_loading=True, error=None)

        native, token = await asyncio.gather(
            self._read_native(account),
            self._read_token(account),
            return_exceptions=True,
        )

        if account != self._account or not self._ready():
            logger.debug(f"Dropping balances for {short_address(account)}: account changed or disconnected")
            return

        if isinstance(native, BaseException):
            # both balances keep their last known values
            logger.error(f"Native balance read failed for {short_address(account)}: {native}")
            self._set_state(is_loading=False, error=error_message)
            return

        changes = {"is_loading": False, "native_balance": native}
        if isinstance(token, BaseException):
            # token balance failures are cosmetic
            logger.warning(f"Token balance read failed for {short_address(account)}: {token}")
            changes["token_balance"] = ZERO_BALANCE
        elif token is not None:
            changes["token_balance"] = token
        self._set_state(**changes)

    async def _read_native(self, account: str) -> str:
        wei = await self.balance_reader.read_native_balance(account)
        return format_units(wei)

    async def _read_token(self, account: str) -> Optional[str]:
        if not self.token_address:
            return None
        amount = await self.balance_reader.read_token_balance(self.token_address, account)
        return format_units(amount, self.token_decimals)
