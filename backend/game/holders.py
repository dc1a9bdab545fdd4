"""
Holder share resolution for fee distribution.

Each token of the holder collection carries a weight; an owner's share of
the holders' fees is the sum of its tokens' weights over the collection
total.
"""
import logging
from typing import Dict, Tuple

from database.models import NftReward
from .chain_ops import NftRegistry
from .money import to_atomics

logger = logging.getLogger(__name__)

FIRST_TOKEN_ID = 1
LAST_TOKEN_ID = 777


def get_share(token_id: int) -> int:
    """Weight of one token as 18-decimal atomics (1, 1.5 or 2)."""
    if 650 <= token_id <= 727:
        return to_atomics(1, 5)
    if token_id >= 728:
        return to_atomics(2)
    return to_atomics(1)


def get_holders_list(registry: NftRegistry, collection: str) -> Tuple[int, Dict[str, int]]:
    """Resolve the owner of every token and sum their weights.

    Args:
        registry: Ownership lookups
        collection: Holder collection contract

    Returns:
        Tuple of (total weight, {owner: weight}), weights in atomics
    """
    total_shares = 0
    holders: Dict[str, int] = {}

    for token_id in range(FIRST_TOKEN_ID, LAST_TOKEN_ID + 1):
        owner = registry.resolve_owner(NftReward(contract=collection, token_id=str(token_id)))
        if owner is None:
            continue
        share = get_share(token_id)
        total_shares += share
        holders[owner] = holders.get(owner, 0) + share

    logger.debug(f"[DISTRIBUTE] {len(holders)} holders of {collection}, total shares {total_shares}")
    return total_shares, holders
