"""
Shared constants and helpers for the engine tests.
"""
from database import Coin, Config, FeeSchedule, PickType, StakeLimits, StreakReward, Wallets
from game import BlockInfo, EnqueueWager, SettleReady
from game.coinflip import flip_coin, get_random

ADMIN = "stars1admin"
TEAM = "stars1team"
RESERVE = "stars1reserve"
CONTRACT = "stars1coinflip"
NFT_CONTRACT = "stars1nftcollection"
NFT_SENDER = "stars1nftsender"
HOLDER_COLLECTION = "stars1holders"

DENOM = "ustars"
USDC = "uusdc"

MIN_BET = 5_000_000
MAX_BET = 25_000_000
BANK_FLOOR = 30_000_000_000
CONTRACT_BALANCE = 100_000_000_000
FLIPPER_BALANCE = 10_000_000_000
FLIP_BPS = 350

STREAK_REWARDS = [
    StreakReward(streak_length=2, cash_amount=100_000),
    StreakReward(streak_length=4, cash_amount=200_000),
    StreakReward(streak_length=5, cash_amount=300_000),
]

FLIPPERS = [f"stars1flipper{i}" for i in range(12)]
FLIPPER = FLIPPERS[0]

BLOCK_NANOS = 6_000_000_000


class ManualClock:
    """Clock the tests move by hand."""

    def __init__(self, height: int = 100):
        self.height = height

    def current(self) -> BlockInfo:
        return env(self.height)

    def advance(self, blocks: int = 1):
        self.height += blocks


def env(height: int, tx_index: int = 0) -> BlockInfo:
    return BlockInfo(height=height, time_nanos=1_700_000_000_000_000_000 + height * BLOCK_NANOS, tx_index=tx_index)


def make_config(**overrides) -> Config:
    values = dict(
        admin=ADMIN,
        denoms=[DENOM, USDC],
        denom_limits={
            DENOM: StakeLimits(min=MIN_BET, max=MAX_BET, bank_floor=BANK_FLOOR),
            USDC: StakeLimits(min=MIN_BET, max=MAX_BET, bank_floor=BANK_FLOOR),
        },
        wallets=Wallets(team=TEAM, reserve=RESERVE),
        fees=FeeSchedule(team_bps=1500, holders_bps=7000, reserve_bps=1500, flip_bps=FLIP_BPS),
        nft_pool_max=4,
        streak_nft_winning_amount=5,
    )
    values.update(overrides)
    return Config(**values)


def fee_for(amount: int) -> int:
    return amount * FLIP_BPS // 10_000


def funds_for(amount: int, denom: str = DENOM):
    return [Coin(denom=denom, amount=amount + fee_for(amount))]


def pick_for(account: str, settle_env: BlockInfo, win: bool) -> PickType:
    """Pick that makes `account` win (or lose) when settled at `settle_env`."""
    coin = flip_coin(account, get_random(settle_env))
    return PickType.HEADS if coin == win else PickType.TAILS


def play(engine, account: str, win: bool, height: int, amount: int = MIN_BET, denom: str = DENOM):
    """Enqueue at `height` and settle at `height + 1` with a forced outcome.

    Returns:
        Response of the settlement
    """
    settle_env = env(height + 1)
    pick = pick_for(account, settle_env, win)
    engine.execute(account, EnqueueWager(pick=pick, amount=amount), funds_for(amount, denom), env(height))
    return engine.execute(account, SettleReady(), env=settle_env)


def play_streak(engine, account: str, outcomes, start_height: int = 100):
    """Play one forced flip per outcome, two blocks apart. Returns the last settlement response."""
    response = None
    for i, win in enumerate(outcomes):
        response = play(engine, account, win, start_height + 2 * i)
    return response
