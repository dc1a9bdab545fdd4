"""Database module for Coinflip engine."""
from .models import (
    NATIVE_DENOM,
    Coin,
    Config,
    EngineState,
    FeeSchedule,
    FeesToPay,
    FlipScore,
    NftReward,
    PendingWager,
    PickType,
    SettledFlip,
    StakeLimits,
    StreakRecord,
    StreakReward,
    Wallets,
)
from .repo import Database, InMemoryStore, StateStore

__all__ = [
    "NATIVE_DENOM",
    "Coin",
    "Config",
    "EngineState",
    "FeeSchedule",
    "FeesToPay",
    "FlipScore",
    "NftReward",
    "PendingWager",
    "PickType",
    "SettledFlip",
    "StakeLimits",
    "StreakRecord",
    "StreakReward",
    "Wallets",
    "Database",
    "InMemoryStore",
    "StateStore",
]
