"""
Token-ledger boundary: how a ledger derives the subaccount ("wallet") it keeps
for each holder.

The escrow unit never talks to the ledger's master; it only needs to know
which wallet address will notify it. Ledgers following the standard wallet
layout derive that address from a StateInit whose data cell is

    balance:coins(0) owner:address master:address ^wallet_code

so tooling can pre-compute the unit's token wallet and pass it in the deploy
body instead of letting the unit adopt the first notifier.
"""

from __future__ import annotations

import functools
from typing import Callable, Optional

from ..cell import Address, Cell, begin_cell, contract_address

__all__ = ["wallet_data", "derive_wallet_address", "wallet_resolver", "WalletResolver"]

WalletResolver = Callable[[Address], Address]


def wallet_data(owner: Address, master: Address, wallet_code: Cell) -> Cell:
    return (
        begin_cell()
        .store_coins(0)
        .store_address(owner)
        .store_address(master)
        .store_ref(wallet_code)
        .end_cell()
    )


def derive_wallet_address(
    owner: Address,
    master: Address,
    wallet_code: Cell,
    *,
    workchain: Optional[int] = None,
) -> Address:
    """Wallet address for `owner`; lives in the master's workchain unless overridden."""
    wc = master.workchain if workchain is None else workchain
    return contract_address(wc, wallet_code, wallet_data(owner, master, wallet_code))


def wallet_resolver(master: Address, wallet_code: Cell) -> WalletResolver:
    return functools.partial(derive_wallet_address, master=master, wallet_code=wallet_code)
