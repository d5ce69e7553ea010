"""
StateInit cells and the address an account derives from them.

    _ split_depth:(Maybe (## 5)) special:(Maybe TickTock)
      code:(Maybe ^Cell) data:(Maybe ^Cell)
      library:(Maybe ^Cell) = StateInit;

An account's address is `workchain:hash(StateInit)`, which is how both the
escrow unit and every token-ledger subaccount get their addresses.
"""

from __future__ import annotations

from typing import Optional

from .address import Address
from .cell import Cell, begin_cell

__all__ = ["state_init", "contract_address"]


def state_init(code: Optional[Cell], data: Optional[Cell]) -> Cell:
    return (
        begin_cell()
        .store_bit(0)
        .store_bit(0)
        .store_maybe_ref(code)
        .store_maybe_ref(data)
        .store_bit(0)
        .end_cell()
    )


def contract_address(workchain: int, code: Cell, data: Cell) -> Address:
    return Address(workchain, state_init(code, data).hash)
