"""
Deferred flip queue: enqueueing wagers and settling them in batches.

A wager enqueued at block N becomes ready at block N+1 or later, so the
settlement seed (taken from the settling block) is unknown when the wager is
placed.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Sequence

from database.models import Coin, EngineState, FlipScore, PendingWager, PickType, SettledFlip, StreakRecord
from .chain_ops import Bank, BankSend, BlockInfo, Event, Response
from .coinflip import do_a_flip, get_random
from .errors import (
    AlreadyPending,
    BetTooLarge,
    BetTooSmall,
    InsufficientContractFunds,
    NoLimitsConfigured,
    NothingReadyThisBlock,
    NothingToSettle,
    QueueFull,
    UnsupportedDenom,
    WrongFundsAmount,
    WrongFundsSent,
)
from .money import apply_bps, checked_add, checked_mul
from .streaks import allocate_streak_reward, is_streak_nft_winner

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5
DISPLAY_UNIT = 1_000_000  # Minor units per whole token in limit errors


def required_fee(amount: int, flip_bps: int) -> int:
    """Flip fee charged on top of a wager of `amount`."""
    return apply_bps(amount, flip_bps)


def _liquid_balance(bank: Bank, state: EngineState, denom: str) -> int:
    return bank.balance(denom) - state.fees.get(denom, 0)


def enqueue(
    state: EngineState,
    bank: Bank,
    env: BlockInfo,
    account: str,
    pick: PickType,
    amount: int,
    funds: Sequence[Coin],
) -> Response:
    """Validate a wager and add it to the queue.

    Args:
        state: Working state of the command
        bank: Contract balances, already including the attached funds
        env: Block the wager is placed in
        account: Flipper address
        pick: Side the flipper bets on
        amount: Stake in minor units, excluding the fee
        funds: Coins attached to the command

    Returns:
        Response carrying a "start_flip" event with the assigned id
    """
    config = state.config

    if any(w.account == account for w in state.pending):
        raise AlreadyPending()

    if len(state.pending) >= config.flips_per_block_limit:
        raise QueueFull()

    if len(funds) != 1:
        raise WrongFundsAmount()
    sent = funds[0]

    if sent.denom not in config.denoms:
        raise UnsupportedDenom(sent.denom)

    limits = config.denom_limits.get(sent.denom)
    if limits is None:
        raise NoLimitsConfigured(sent.denom)

    if amount > limits.max:
        raise BetTooLarge(str(limits.max // DISPLAY_UNIT))
    if amount < limits.min:
        raise BetTooSmall(str(limits.min // DISPLAY_UNIT))

    fee = required_fee(amount, config.fees.flip_bps)
    if sent.amount != checked_add(amount, fee):
        raise WrongFundsSent()

    if _liquid_balance(bank, state, sent.denom) < checked_mul(amount, 2):
        raise InsufficientContractFunds(sent.denom)

    state.fees[sent.denom] = checked_add(state.fees.get(sent.denom, 0), fee)
    state.last_flip_id += 1
    wager = PendingWager(
        id=state.last_flip_id,
        account=account,
        stake=Coin(denom=sent.denom, amount=amount),
        pick=pick,
        enqueued_at_block=env.height,
        enqueued_at_time=env.time_nanos,
    )
    state.pending.append(wager)

    logger.info(f"[ENQUEUE] Flip {wager.id}: {account} bet {wager.stake} on {pick.value} (fee {fee})")
    return Response(events=[Event("start_flip", {"id": str(wager.id)})])


def should_settle(state: EngineState, env: BlockInfo) -> bool:
    """Whether any queued wager is ready at `env`."""
    return any(env.height > w.enqueued_at_block for w in state.pending)


def drain_ready(state: EngineState, bank: Bank, env: BlockInfo) -> List[PendingWager]:
    """Remove and return the wagers ready to settle at `env`.

    Wagers enqueued at the current block or later stay queued in their
    original order. The contract must be able to pay double every ready
    stake, per denomination, or the whole batch fails.
    """
    if not state.pending:
        raise NothingToSettle()

    ready: List[PendingWager] = []
    waiting: List[PendingWager] = []
    totals: Dict[str, int] = OrderedDict()
    for wager in state.pending:
        if wager.enqueued_at_block >= env.height:
            waiting.append(wager)
            continue
        ready.append(wager)
        totals[wager.stake.denom] = checked_add(totals.get(wager.stake.denom, 0), wager.stake.amount)

    if not ready:
        raise NothingReadyThisBlock()

    state.pending = waiting

    for denom, total in totals.items():
        if _liquid_balance(bank, state, denom) < checked_mul(total, 2):
            raise InsufficientContractFunds(denom)

    return ready


def settle_ready(state: EngineState, bank: Bank, env: BlockInfo) -> Response:
    """Resolve every ready wager, update streaks and pay winners.

    The seed is fixed once for the batch; wagers resolve in queue order.
    """
    ready = drain_ready(state, bank, env)
    rand = get_random(env)
    response = Response()

    for wager in ready:
        won = do_a_flip(wager, rand)

        score = state.scores.get(wager.account)
        if score is None:
            score = FlipScore.new(won, env.time_nanos)
        else:
            score.update(won, env.time_nanos)

        flip = SettledFlip(
            account=wager.account,
            stake=wager.stake,
            outcome=won,
            streak_after=StreakRecord(length=score.streak.length, last_outcome=score.streak.last_outcome),
            settled_at_time=env.time_nanos,
        )

        if is_streak_nft_winner(state.config, score):
            allocate_streak_reward(state, wager, score, rand, response)

        state.scores[wager.account] = score

        if len(state.last_flips) >= HISTORY_SIZE:
            state.last_flips.pop(0)
        state.last_flips.append(flip)

        if won:
            response.messages.append(BankSend(
                to_address=wager.account,
                amount=Coin(denom=wager.stake.denom, amount=checked_mul(wager.stake.amount, 2)),
            ))

        response.events.append(Event("flip", {
            "flipper": wager.account,
            "flip_id": str(wager.id),
            "flip_amount": str(wager.stake),
            "flip_pick": wager.pick.value.capitalize(),
            "result": "won" if won else "lost",
        }))
        logger.info(f"[SETTLE] Flip {wager.id}: {wager.account} {'won' if won else 'lost'} {wager.stake} "
                    f"(streak {score.streak.length})")

    response.attributes["flip_action"] = "do_flips"
    logger.info(f"[SETTLE] Settled {len(ready)} flips at block {env.height}, {len(state.pending)} still queued")
    return response
