# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

import pytest

import escrow_py
from escrow_py import config as config_mod
from escrow_py.config import MAX_FEE_BPS_WIDTH, load_config


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    for name in (
        "ESCROW_JETTON_TRANSFER_FEE",
        "ESCROW_FORWARD_TON_AMOUNT",
        "ESCROW_NOTIFICATION_VALUE",
        "ESCROW_MAX_FEE_BPS",
        "ESCROW_STRICT",
        "ESCROW_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def test_defaults() -> None:
    cfg = load_config()
    assert cfg.jetton_transfer_fee == 55_000_000
    assert cfg.forward_ton_amount == 1
    assert cfg.notification_value == 0
    assert cfg.max_fee_bps == MAX_FEE_BPS_WIDTH == 1023
    assert cfg.strict_mode is False
    assert cfg.log_level == "WARNING" and cfg.log_level_no == logging.WARNING


def test_cached() -> None:
    assert load_config() is load_config()


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ESCROW_JETTON_TRANSFER_FEE", "0x10")
    monkeypatch.setenv("ESCROW_STRICT", "yes")
    monkeypatch.setenv("ESCROW_LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.jetton_transfer_fee == 16
    assert cfg.strict_mode is True
    assert cfg.log_level_no == logging.DEBUG


def test_env_clamps_and_ignores_garbage(monkeypatch) -> None:
    monkeypatch.setenv("ESCROW_MAX_FEE_BPS", "5000")
    monkeypatch.setenv("ESCROW_NOTIFICATION_VALUE", "-3")
    monkeypatch.setenv("ESCROW_FORWARD_TON_AMOUNT", "lots")
    monkeypatch.setenv("ESCROW_LOG_LEVEL", "LOUD")
    cfg = load_config()
    assert cfg.max_fee_bps == 1023
    assert cfg.notification_value == 0
    assert cfg.forward_ton_amount == 1
    assert cfg.log_level == "WARNING"


def test_as_dict_roundtrips() -> None:
    cfg = load_config()
    assert config_mod.EscrowConfig(**cfg.as_dict()) == cfg


def test_version_without_installed_distribution() -> None:
    from escrow_py.version import BASE_VERSION, installed_version

    assert installed_version("escrow-py-not-installed") == BASE_VERSION
    assert escrow_py.__version__ == installed_version()
