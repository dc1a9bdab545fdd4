"""
Commands accepted by the flip engine.

User commands are open to any sender; admin commands require the configured
admin. `Command` is the closed union the dispatcher matches on.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union, get_args

from database.models import FeeSchedule, PickType, StakeLimits, StreakReward


# === User commands ===

@dataclass(frozen=True)
class EnqueueWager:
    pick: PickType
    amount: int


@dataclass(frozen=True)
class SettleReady:
    pass


@dataclass(frozen=True)
class ClaimStreak:
    pass


@dataclass(frozen=True)
class DepositNftToPool:
    """NFT-transfer notification; the command sender is the NFT contract."""
    sender: str
    token_id: str


# === Admin commands ===

@dataclass(frozen=True)
class Distribute:
    denom: str


@dataclass(frozen=True)
class AddDenom:
    denom: str
    limits: StakeLimits


@dataclass(frozen=True)
class RemoveDenom:
    denoms: Tuple[str, ...]


@dataclass(frozen=True)
class UpdateFees:
    fees: FeeSchedule


@dataclass(frozen=True)
class UpdateStakeLimits:
    denom: str
    min_bet: int
    max_bet: int


@dataclass(frozen=True)
class UpdateBankFloor:
    denom: str
    bank_floor: int


@dataclass(frozen=True)
class UpdateHolderRegistry:
    address: str


@dataclass(frozen=True)
class UpdatePause:
    is_paused: bool


@dataclass(frozen=True)
class UpdateStreakConfig:
    nft_pool_max: Optional[int] = None
    streak_nft_winning_amount: Optional[int] = None
    streak_rewards: Optional[Tuple[StreakReward, ...]] = None
    allowed_to_send_nft: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class WithdrawNftFromPool:
    index: Optional[int] = None
    withdraw_all: bool = False


@dataclass(frozen=True)
class SendExcessFunds:
    denom: str


@dataclass(frozen=True)
class TransferMisplacedNft:
    contract: str
    token_id: str


UserCommand = Union[EnqueueWager, SettleReady, ClaimStreak, DepositNftToPool]

AdminCommand = Union[
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
]

Command = Union[UserCommand, AdminCommand]

ADMIN_COMMANDS = get_args(AdminCommand)
PAUSABLE_COMMANDS = (EnqueueWager, SettleReady, ClaimStreak)
