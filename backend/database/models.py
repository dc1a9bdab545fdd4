"""
Data models for the Coinflip settlement engine.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict
from enum import Enum

NATIVE_DENOM = "ustars"


class PickType(Enum):
    """Side of the coin a flipper bets on."""
    HEADS = "heads"
    TAILS = "tails"


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination, in minor units."""
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass
class StakeLimits:
    """Bet limits and bank floor for one denomination."""
    min: int
    max: int
    bank_floor: int  # Liquid balance the contract must keep after distribution


@dataclass
class FeeSchedule:
    """Fee split in basis points (1 bps = 0.01%)."""
    team_bps: int
    holders_bps: int
    reserve_bps: int
    flip_bps: int  # Charged on top of every wager


@dataclass
class Wallets:
    """Payout destinations for distributed fees and withdrawn NFTs."""
    team: str
    reserve: str


@dataclass
class StreakRecord:
    """Consecutive identical outcomes for one account."""
    length: int
    last_outcome: bool

    @classmethod
    def new(cls, outcome: bool) -> "StreakRecord":
        return cls(length=1, last_outcome=outcome)

    def update(self, outcome: bool):
        if outcome == self.last_outcome:
            self.length += 1
        else:
            self.length = 1
            self.last_outcome = outcome

    def reset(self):
        """Reward consumed; keep the last outcome so the next flip can extend or break it."""
        self.length = 0


@dataclass
class FlipScore:
    """Streak plus the time of the account's last settlement."""
    streak: StreakRecord
    last_flip_time: int  # nanoseconds

    @classmethod
    def new(cls, outcome: bool, time_nanos: int) -> "FlipScore":
        return cls(streak=StreakRecord.new(outcome), last_flip_time=time_nanos)

    def update(self, outcome: bool, time_nanos: int):
        self.streak.update(outcome)
        self.last_flip_time = time_nanos


@dataclass
class StreakReward:
    """Cash paid when a streak of exactly `streak_length` is claimed."""
    streak_length: int
    cash_amount: int


@dataclass(frozen=True)
class NftReward:
    """An NFT held in the streak reward pool."""
    contract: str
    token_id: str


@dataclass
class PendingWager:
    """A wager waiting for a later block to be settled."""
    id: int
    account: str
    stake: Coin
    pick: PickType
    enqueued_at_block: int
    enqueued_at_time: int  # nanoseconds


@dataclass
class SettledFlip:
    """Public history entry for a settled wager."""
    account: str
    stake: Coin
    outcome: bool  # True = won
    streak_after: StreakRecord
    settled_at_time: int  # nanoseconds


@dataclass
class FeesToPay:
    """Fee shares computed from one denomination's ledger balance."""
    team: int
    holders: int
    reserve: int


@dataclass
class Config:
    """Engine configuration. Mutated only through admin commands."""
    admin: str
    denoms: List[str]
    denom_limits: Dict[str, StakeLimits]
    wallets: Wallets
    fees: FeeSchedule
    flips_per_block_limit: int = 10
    holder_registry: Optional[str] = None  # NFT collection whose holders share fees
    is_paused: bool = False

    # Streak mini game
    nft_pool_max: int = 0
    streak_nft_winning_amount: int = 0
    reward_denom: str = NATIVE_DENOM


@dataclass
class EngineState:
    """Everything the engine persists between commands."""
    config: Config
    pending: List[PendingWager] = field(default_factory=list)
    last_flips: List[SettledFlip] = field(default_factory=list)
    fees: Dict[str, int] = field(default_factory=dict)
    nft_pool: List[NftReward] = field(default_factory=list)
    streak_rewards: List[StreakReward] = field(default_factory=list)
    allowed_to_send_nft: List[str] = field(default_factory=list)
    scores: Dict[str, FlipScore] = field(default_factory=dict)
    last_flip_id: int = 0
