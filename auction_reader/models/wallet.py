#!/usr/bin/env python3
"""
Pydantic model for the connected wallet's balances.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WalletBalanceSnapshot(BaseModel):
    """Native and token balances of one account, as display strings"""
    model_config = ConfigDict(frozen=True)

    account: Optional[str] = Field(None, description="Account the balances belong to")
    native_balance: str = Field("0", description="Native currency balance, decimal string")
    token_balance: str = Field("0", description="Fungible token balance, decimal string")
    is_loading: bool = False
    error: Optional[str] = Field(None, description="User-facing error; set only for native balance failures")
