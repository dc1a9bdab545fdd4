"""Game logic module for Coinflip."""
from .chain_ops import (
    BlockInfo,
    BlockClock,
    BankSend,
    NftTransfer,
    Event,
    Response,
    InMemoryBank,
    InMemoryNftRegistry,
    SqliteBank,
)
from .coinflip import get_random, flip_coin, do_a_flip, verify_flip_result
from .commands import (
    EnqueueWager,
    SettleReady,
    ClaimStreak,
    DepositNftToPool,
    Distribute,
    AddDenom,
    RemoveDenom,
    UpdateFees,
    UpdateStakeLimits,
    UpdateBankFloor,
    UpdateHolderRegistry,
    UpdatePause,
    UpdateStreakConfig,
    WithdrawNftFromPool,
    SendExcessFunds,
    TransferMisplacedNft,
)
from .engine import FlipEngine
from .errors import ErrorCategory, FlipError
from .fees import DryDistribution

__all__ = [
    "BlockInfo",
    "BlockClock",
    "BankSend",
    "NftTransfer",
    "Event",
    "Response",
    "InMemoryBank",
    "InMemoryNftRegistry",
    "SqliteBank",
    "get_random",
    "flip_coin",
    "do_a_flip",
    "verify_flip_result",
    "EnqueueWager",
    "SettleReady",
    "ClaimStreak",
    "DepositNftToPool",
    "Distribute",
    "AddDenom",
    "RemoveDenom",
    "UpdateFees",
    "UpdateStakeLimits",
    "UpdateBankFloor",
    "UpdateHolderRegistry",
    "UpdatePause",
    "UpdateStreakConfig",
    "WithdrawNftFromPool",
    "SendExcessFunds",
    "TransferMisplacedNft",
    "FlipEngine",
    "ErrorCategory",
    "FlipError",
    "DryDistribution",
]
