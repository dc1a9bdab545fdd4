"""
Streak mini game: reward tiers, the automatic NFT award and explicit claims.
"""
import logging
from typing import List

from database.models import Coin, Config, EngineState, FlipScore, NftReward, PendingWager, StreakReward
from .chain_ops import BankSend, Event, NftTransfer, Response
from .errors import (
    InvalidStreakRewards,
    NftPoolFull,
    NftWinNotMatchLastStreakReward,
    NotEligible,
    StreakTooLow,
    UnauthorizedToSendNft,
)

logger = logging.getLogger(__name__)


def validate_streak_config(streak_rewards: List[StreakReward], streak_nft_winning_amount: int):
    """Reject tier lists the allocator cannot use.

    Tiers must be non-empty and strictly ascending by streak length, and the
    longest tier must be the NFT trigger length.
    """
    if not streak_rewards:
        raise InvalidStreakRewards()

    lengths = [r.streak_length for r in streak_rewards]
    if any(a >= b for a, b in zip(lengths, lengths[1:])):
        raise InvalidStreakRewards()

    if lengths[-1] != streak_nft_winning_amount:
        raise NftWinNotMatchLastStreakReward()


def is_streak_nft_winner(config: Config, score: FlipScore) -> bool:
    return score.streak.length == config.streak_nft_winning_amount


def allocate_streak_reward(state: EngineState, wager: PendingWager, score: FlipScore, rand: int,
                           response: Response):
    """Award the NFT-trigger streak and reset it.

    Draws `rand % len(pool)` from the NFT pool when it holds anything,
    otherwise pays the cash amount of the longest tier.
    """
    event = Event("streak-claim", {"flipper": wager.account, "flip_id": str(wager.id)})

    if not state.nft_pool:
        top_tier = state.streak_rewards[-1]
        prize = Coin(denom=state.config.reward_denom, amount=top_tier.cash_amount)
        response.messages.append(BankSend(to_address=wager.account, amount=prize))
        event.attributes["claim"] = str(prize)
        logger.info(f"[STREAK] {wager.account} hit streak {score.streak.length}, pool empty, paying {prize}")
    else:
        index = rand % len(state.nft_pool)
        nft = state.nft_pool.pop(index)
        response.messages.append(NftTransfer(nft=nft, recipient=wager.account))
        event.attributes["claim"] = f"{nft.contract}/{nft.token_id}"
        logger.info(f"[STREAK] {wager.account} hit streak {score.streak.length}, won NFT "
                    f"{nft.contract}/{nft.token_id} ({len(state.nft_pool)} left in pool)")

    score.streak.reset()
    response.events.append(event)


def claim_streak(state: EngineState, account: str) -> Response:
    """Pay the tier matching the account's current streak length exactly.

    Args:
        state: Working state of the command
        account: Claiming flipper

    Returns:
        Response with a "streak-claim" event and the cash payout
    """
    lowest = state.streak_rewards[0].streak_length
    score = state.scores.get(account)
    length = score.streak.length if score else 0

    if length < lowest:
        raise StreakTooLow(lowest)

    reward = next((r for r in state.streak_rewards if r.streak_length == length), None)
    if reward is None:
        raise NotEligible(length)

    score.streak.reset()
    prize = Coin(denom=state.config.reward_denom, amount=reward.cash_amount)

    logger.info(f"[STREAK] {account} claimed streak {length} for {prize}")
    return Response(
        events=[Event("streak-claim", {
            "flipper": account,
            "streak": str(reward.streak_length),
            "claim": str(prize),
        })],
        messages=[BankSend(to_address=account, amount=prize)],
    )


def receive_nft(state: EngineState, nft_contract: str, sender: str, token_id: str) -> Response:
    """Add a deposited NFT to the reward pool.

    Args:
        state: Working state of the command
        nft_contract: Collection the NFT belongs to (the notifying contract)
        sender: Address that sent the NFT
        token_id: Deposited token

    Returns:
        Response describing the new pool size
    """
    if sender not in state.allowed_to_send_nft:
        raise UnauthorizedToSendNft()

    if len(state.nft_pool) >= state.config.nft_pool_max:
        raise NftPoolFull()

    state.nft_pool.append(NftReward(contract=nft_contract, token_id=token_id))

    logger.info(f"[STREAK] NFT {nft_contract}/{token_id} added to pool by {sender} "
                f"({len(state.nft_pool)}/{state.config.nft_pool_max})")
    return Response(attributes={
        "action": "add_nft",
        "nft_contract": nft_contract,
        "token_id": token_id,
        "nft_pool_size": str(len(state.nft_pool)),
    })
