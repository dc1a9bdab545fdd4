"""
Environment parsing.
"""
import pytest

import config
from config import build_instantiate_config, parse_address_list, parse_coins, parse_denom_limits, parse_streak_rewards
from database import Coin, StakeLimits, StreakReward

ADMIN_ADDR = "stars1" + "qz" * 19
TEAM_ADDR = "stars1" + "xy" * 19
RESERVE_ADDR = "stars1" + "pv" * 19


@pytest.fixture
def wallets(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_ADDRESS", ADMIN_ADDR)
    monkeypatch.setattr(config, "TEAM_WALLET", TEAM_ADDR)
    monkeypatch.setattr(config, "RESERVE_WALLET", RESERVE_ADDR)


def test_parse_denom_limits():
    limits = parse_denom_limits("ustars:5000000:25000000:30000000000; uusdc:1:2:0;")
    assert limits == {
        "ustars": StakeLimits(min=5_000_000, max=25_000_000, bank_floor=30_000_000_000),
        "uusdc": StakeLimits(min=1, max=2, bank_floor=0),
    }


@pytest.mark.parametrize("raw", ["ustars:1:2", "ustars:a:2:3"])
def test_parse_denom_limits_rejects_malformed(raw):
    with pytest.raises(ValueError, match="DENOM_LIMITS"):
        parse_denom_limits(raw)


def test_parse_streak_rewards():
    assert parse_streak_rewards("2:100000, 5:300000") == [
        StreakReward(streak_length=2, cash_amount=100_000),
        StreakReward(streak_length=5, cash_amount=300_000),
    ]
    with pytest.raises(ValueError, match="STREAK_REWARDS"):
        parse_streak_rewards("2-100000")


def test_parse_coins():
    assert parse_coins("ustars:100000000000; uusdc:5;") == [Coin("ustars", 100_000_000_000), Coin("uusdc", 5)]
    assert parse_coins("") == []
    with pytest.raises(ValueError, match="CONTRACT_FUNDS"):
        parse_coins("ustars=5")


def test_parse_address_list():
    assert parse_address_list(" stars1a, ,stars1b ") == ["stars1a", "stars1b"]
    assert parse_address_list("") == []


def test_build_instantiate_config(wallets, monkeypatch):
    monkeypatch.setattr(config, "ALLOWED_TO_SEND_NFT", "")
    assert build_instantiate_config()[2] == []

    monkeypatch.setattr(config, "ALLOWED_TO_SEND_NFT", ADMIN_ADDR)
    monkeypatch.setattr(config, "DENOM_LIMITS", "ustars:5000000:25000000:30000000000")
    monkeypatch.setattr(config, "STREAK_REWARDS", "2:100000,4:200000,5:300000")

    cfg, rewards, allowed = build_instantiate_config()

    assert cfg.admin == ADMIN_ADDR
    assert cfg.denoms == ["ustars"]
    assert cfg.fees.flip_bps == config.FEE_FLIP_BPS
    assert [r.streak_length for r in rewards] == [2, 4, 5]
    assert allowed == [ADMIN_ADDR]


def test_build_instantiate_config_rejects_bad_wallet(wallets, monkeypatch):
    monkeypatch.setattr(config, "TEAM_WALLET", "not-an-address")
    with pytest.raises(ValueError, match="TEAM_WALLET"):
        build_instantiate_config()


def test_build_instantiate_config_requires_wallets(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_ADDRESS", "")
    with pytest.raises(ValueError, match="must be set"):
        build_instantiate_config()
