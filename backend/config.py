"""
Coinflip engine configuration.

Everything is read from the environment (optionally through a .env file).
`build_instantiate_config()` turns it into the initial engine configuration.
"""
import os
import logging
from typing import Dict, List, Tuple

from dotenv import load_dotenv

from database.models import NATIVE_DENOM, Coin, Config, FeeSchedule, StakeLimits, StreakReward, Wallets
from utils.validation import is_valid_address

load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================================
# SERVICE
# =============================================================================

DB_PATH = os.getenv("COINFLIP_DB_PATH", "coinflip.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
BLOCK_TIME_SECONDS = float(os.getenv("BLOCK_TIME_SECONDS", "6"))

# =============================================================================
# ENGINE
# =============================================================================

ADMIN_ADDRESS = os.getenv("ADMIN_ADDRESS", "")
TEAM_WALLET = os.getenv("TEAM_WALLET", "")
RESERVE_WALLET = os.getenv("RESERVE_WALLET", "")
CONTRACT_ADDRESS = os.getenv("CONTRACT_ADDRESS", "coinflip-contract")
HOLDER_REGISTRY = os.getenv("HOLDER_REGISTRY") or None
REWARD_DENOM = os.getenv("REWARD_DENOM", NATIVE_DENOM)

# denom:amount;... credited to the contract when the engine is first instantiated
CONTRACT_FUNDS = os.getenv("CONTRACT_FUNDS", "")

# denom:min:max:bank_floor;...
DENOM_LIMITS = os.getenv("DENOM_LIMITS", f"{NATIVE_DENOM}:5000000:25000000:30000000000")

FEE_TEAM_BPS = int(os.getenv("FEE_TEAM_BPS", "1500"))
FEE_HOLDERS_BPS = int(os.getenv("FEE_HOLDERS_BPS", "7000"))
FEE_RESERVE_BPS = int(os.getenv("FEE_RESERVE_BPS", "1500"))
FEE_FLIP_BPS = int(os.getenv("FEE_FLIP_BPS", "350"))
FLIPS_PER_BLOCK_LIMIT = int(os.getenv("FLIPS_PER_BLOCK_LIMIT", "10"))

# =============================================================================
# STREAK MINI GAME
# =============================================================================

NFT_POOL_MAX = int(os.getenv("NFT_POOL_MAX", "4"))
STREAK_NFT_WINNING_AMOUNT = int(os.getenv("STREAK_NFT_WINNING_AMOUNT", "5"))
# streak_length:cash_amount,...
STREAK_REWARDS = os.getenv("STREAK_REWARDS", "2:100000,4:200000,5:300000")
ALLOWED_TO_SEND_NFT = os.getenv("ALLOWED_TO_SEND_NFT", "")


def parse_denom_limits(raw: str) -> Dict[str, StakeLimits]:
    """Parse "denom:min:max:bank_floor;..." into limits per denom."""
    limits: Dict[str, StakeLimits] = {}
    for entry in filter(None, (part.strip() for part in raw.split(";"))):
        try:
            denom, min_bet, max_bet, bank_floor = entry.split(":")
            limits[denom] = StakeLimits(min=int(min_bet), max=int(max_bet), bank_floor=int(bank_floor))
        except ValueError:
            raise ValueError(f"Invalid DENOM_LIMITS entry '{entry}', expected denom:min:max:bank_floor")
    return limits


def parse_coins(raw: str) -> List[Coin]:
    """Parse "denom:amount;..." into coins."""
    coins = []
    for entry in filter(None, (part.strip() for part in raw.split(";"))):
        try:
            denom, amount = entry.split(":")
            coins.append(Coin(denom=denom, amount=int(amount)))
        except ValueError:
            raise ValueError(f"Invalid CONTRACT_FUNDS entry '{entry}', expected denom:amount")
    return coins


def parse_streak_rewards(raw: str) -> List[StreakReward]:
    """Parse "length:amount,..." into reward tiers."""
    rewards = []
    for entry in filter(None, (part.strip() for part in raw.split(","))):
        try:
            length, amount = entry.split(":")
            rewards.append(StreakReward(streak_length=int(length), cash_amount=int(amount)))
        except ValueError:
            raise ValueError(f"Invalid STREAK_REWARDS entry '{entry}', expected length:amount")
    return rewards


def parse_address_list(raw: str) -> List[str]:
    return [addr.strip() for addr in raw.split(",") if addr.strip()]


def build_instantiate_config() -> Tuple[Config, List[StreakReward], List[str]]:
    """Initial configuration, streak tiers and NFT-deposit allow-list from the environment."""
    if not ADMIN_ADDRESS or not TEAM_WALLET or not RESERVE_WALLET:
        raise ValueError("ADMIN_ADDRESS, TEAM_WALLET and RESERVE_WALLET must be set")

    for name, address in (("ADMIN_ADDRESS", ADMIN_ADDRESS), ("TEAM_WALLET", TEAM_WALLET),
                          ("RESERVE_WALLET", RESERVE_WALLET)):
        is_valid, error = is_valid_address(address)
        if not is_valid:
            raise ValueError(f"{name}: {error}")

    denom_limits = parse_denom_limits(DENOM_LIMITS)
    config = Config(
        admin=ADMIN_ADDRESS,
        denoms=list(denom_limits),
        denom_limits=denom_limits,
        wallets=Wallets(team=TEAM_WALLET, reserve=RESERVE_WALLET),
        fees=FeeSchedule(
            team_bps=FEE_TEAM_BPS,
            holders_bps=FEE_HOLDERS_BPS,
            reserve_bps=FEE_RESERVE_BPS,
            flip_bps=FEE_FLIP_BPS,
        ),
        flips_per_block_limit=FLIPS_PER_BLOCK_LIMIT,
        holder_registry=HOLDER_REGISTRY,
        nft_pool_max=NFT_POOL_MAX,
        streak_nft_winning_amount=STREAK_NFT_WINNING_AMOUNT,
        reward_denom=REWARD_DENOM,
    )
    logger.info(f"Loaded config for denoms {', '.join(config.denoms)} (admin {ADMIN_ADDRESS})")
    return config, parse_streak_rewards(STREAK_REWARDS), parse_address_list(ALLOWED_TO_SEND_NFT)
