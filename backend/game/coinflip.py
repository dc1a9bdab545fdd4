"""
Outcome resolution for queued flips.

Randomness comes from chain-observable values (transaction index, block
height, block time) and is NOT cryptographically secure. The derivation is
kept bit-for-bit so settled outcomes stay reproducible; do not strengthen it
without accepting that every historical outcome changes.
"""
import hashlib
import logging

from database.models import PendingWager, PickType
from .chain_ops import BlockInfo

logger = logging.getLogger(__name__)


def byte_sum(value: str) -> int:
    """Sum of the UTF-8 bytes of `value`."""
    return sum(value.encode())


def get_random(env: BlockInfo) -> int:
    """Batch-wide seed for one settlement call.

    SHA-256 of "{tx_index}{height}{time_nanos}" rendered as a hex string,
    reduced to an integer by summing the bytes of that string.

    Args:
        env: Block the settlement executes in

    Returns:
        Non-negative integer seed shared by every wager in the batch
    """
    tx_index = env.tx_index if env.tx_index is not None else 0
    seed = f"{tx_index}{env.height}{env.time_nanos}"
    hash_digest = hashlib.sha256(seed.encode()).hexdigest()
    rand = byte_sum(hash_digest)

    logger.debug(f"[SETTLE] Seed {rand} from block {env.height} (hash: {hash_digest[:16]}...)")
    return rand


def flip_coin(account: str, rand: int) -> bool:
    """Coin value for `account` under batch seed `rand` (True = heads)."""
    return (rand + byte_sum(account)) % 2 == 0


def do_a_flip(wager: PendingWager, rand: int) -> bool:
    """Whether the wager won under batch seed `rand`."""
    coin = flip_coin(wager.account, rand)
    won_heads = wager.pick == PickType.HEADS and coin
    won_tails = wager.pick == PickType.TAILS and not coin
    return won_heads or won_tails


def verify_flip_result(account: str, pick: PickType, env: BlockInfo, claimed_won: bool) -> bool:
    """Recompute a settled outcome from public block data.

    Args:
        account: Flipper address
        pick: Side the flipper picked
        env: Block the settlement executed in
        claimed_won: Result reported for the flip

    Returns:
        True if the recomputed result matches
    """
    coin = flip_coin(account, get_random(env))
    won = (pick == PickType.HEADS) == coin
    return won == claimed_won
