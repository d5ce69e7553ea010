# -*- coding: utf-8 -*-
from __future__ import annotations

from escrow_py.cell import begin_cell, contract_address, state_init
from escrow_py.runtime import derive_wallet_address, wallet_data, wallet_resolver

from .conftest import addr

WALLET_CODE = begin_cell().store_uint(0xC0DE, 16).end_cell()


def test_wallet_data_layout() -> None:
    owner, master = addr("owner"), addr("master")
    s = wallet_data(owner, master, WALLET_CODE).begin_parse()
    assert s.load_coins() == 0
    assert s.load_address() == owner
    assert s.load_address() == master
    assert s.load_ref() == WALLET_CODE
    s.end_parse()


def test_derivation_is_state_init_hash() -> None:
    owner, master = addr("owner"), addr("master")
    got = derive_wallet_address(owner, master, WALLET_CODE)
    si = state_init(WALLET_CODE, wallet_data(owner, master, WALLET_CODE))
    assert got.workchain == 0 and got.hash_part == si.hash
    assert got == contract_address(0, WALLET_CODE, wallet_data(owner, master, WALLET_CODE))


def test_derivation_distinguishes_owners_and_workchains() -> None:
    master = addr("master", workchain=-1)
    a = derive_wallet_address(addr("a"), master, WALLET_CODE)
    b = derive_wallet_address(addr("b"), master, WALLET_CODE)
    assert a != b and a.workchain == -1
    assert derive_wallet_address(addr("a"), master, WALLET_CODE, workchain=0).workchain == 0


def test_resolver_matches_direct_call() -> None:
    master = addr("master")
    resolve = wallet_resolver(master, WALLET_CODE)
    assert resolve(addr("escrow")) == derive_wallet_address(addr("escrow"), master, WALLET_CODE)


def test_state_init_layout() -> None:
    data = begin_cell().store_uint(1, 1).end_cell()
    s = state_init(WALLET_CODE, data).begin_parse()
    assert (s.load_bit(), s.load_bit()) == (False, False)
    assert s.load_maybe_ref() == WALLET_CODE
    assert s.load_maybe_ref() == data
    assert s.load_bit() is False
    s.end_parse()
