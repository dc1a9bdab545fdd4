"""
Admin operations on the engine configuration, NFT pool and contract funds.

Authorization happens in the dispatcher; every function here assumes the
sender is the configured admin.
"""
import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from database.models import Coin, EngineState, FeeSchedule, NftReward, StakeLimits, StreakReward
from .chain_ops import Bank, BankSend, NftTransfer, Response
from .errors import (
    DenomAlreadyExists,
    DenomNotFound,
    DenomStillHasFees,
    EmptyWithdrawParams,
    InvalidFeeSchedule,
    InvalidStakeLimits,
    NftIndexOutOfRange,
    NftInPool,
    NoExcessFunds,
)
from .money import BPS_DENOMINATOR
from .streaks import validate_streak_config

logger = logging.getLogger(__name__)


def validate_stake_limits(denom: str, limits: StakeLimits):
    if limits.min < 0 or limits.bank_floor < 0 or limits.min > limits.max:
        raise InvalidStakeLimits(denom)


def validate_fee_schedule(fees: FeeSchedule):
    for name in ("team_bps", "holders_bps", "reserve_bps", "flip_bps"):
        value = getattr(fees, name)
        if not 0 <= value <= BPS_DENOMINATOR:
            raise InvalidFeeSchedule(name, value)


def _limits_for(state: EngineState, denom: str) -> StakeLimits:
    limits = state.config.denom_limits.get(denom)
    if limits is None:
        raise DenomNotFound(denom)
    return limits


def add_denom(state: EngineState, denom: str, limits: StakeLimits) -> Response:
    """Support a new denomination with a zeroed fee ledger."""
    if denom in state.fees or denom in state.config.denoms:
        raise DenomAlreadyExists()
    validate_stake_limits(denom, limits)

    state.fees[denom] = 0
    state.config.denom_limits[denom] = replace(limits)
    state.config.denoms.append(denom)

    logger.info(f"[ADMIN] Added denom {denom} (min {limits.min}, max {limits.max}, floor {limits.bank_floor})")
    return Response(attributes={"method": "add_new_denom"})


def remove_denoms(state: EngineState, denoms: Iterable[str]) -> Response:
    """Drop denominations. Each must exist and hold no unpaid fees."""
    config = state.config
    for denom in dict.fromkeys(denoms):
        if denom not in config.denoms:
            raise DenomNotFound(denom)
        if state.fees.get(denom, 0):
            raise DenomStillHasFees(denom)

        config.denom_limits.pop(denom, None)
        config.denoms.remove(denom)
        state.fees.pop(denom, None)
        logger.info(f"[ADMIN] Removed denom {denom}")

    return Response(attributes={"method": "remove_denoms"})


def update_fees(state: EngineState, fees: FeeSchedule) -> Response:
    validate_fee_schedule(fees)
    state.config.fees = replace(fees)
    logger.info(f"[ADMIN] Fees updated: {fees}")
    return Response(attributes={"method": "update_fees"})


def update_stake_limits(state: EngineState, denom: str, min_bet: int, max_bet: int) -> Response:
    limits = replace(_limits_for(state, denom), min=min_bet, max=max_bet)
    validate_stake_limits(denom, limits)
    state.config.denom_limits[denom] = limits
    logger.info(f"[ADMIN] Bet limits for {denom}: {min_bet} - {max_bet}")
    return Response(attributes={"method": "update_bet_limit"})


def update_bank_floor(state: EngineState, denom: str, bank_floor: int) -> Response:
    limits = replace(_limits_for(state, denom), bank_floor=bank_floor)
    validate_stake_limits(denom, limits)
    state.config.denom_limits[denom] = limits
    logger.info(f"[ADMIN] Bank floor for {denom}: {bank_floor}")
    return Response(attributes={"method": "update_bank_limit"})


def update_holder_registry(state: EngineState, address: str) -> Response:
    state.config.holder_registry = address
    logger.info(f"[ADMIN] Holder registry set to {address}")
    return Response(attributes={"method": "update_sg721"})


def update_pause(state: EngineState, is_paused: bool) -> Response:
    state.config.is_paused = is_paused
    logger.warning(f"[ADMIN] Engine {'paused' if is_paused else 'resumed'}")
    return Response(attributes={"method": "update_pause"})


def update_streak_config(
    state: EngineState,
    nft_pool_max: Optional[int] = None,
    streak_nft_winning_amount: Optional[int] = None,
    streak_rewards: Optional[Iterable[StreakReward]] = None,
    allowed_to_send_nft: Optional[Iterable[str]] = None,
) -> Response:
    """Merge the given streak settings into the current ones and re-validate.

    Args:
        state: Working state of the command
        nft_pool_max: New pool capacity
        streak_nft_winning_amount: New NFT trigger length
        streak_rewards: Replacement tier list
        allowed_to_send_nft: Replacement NFT-deposit allow-list

    Returns:
        Response tagged with the method name
    """
    config = state.config
    if nft_pool_max is not None:
        config.nft_pool_max = nft_pool_max
    if streak_nft_winning_amount is not None:
        config.streak_nft_winning_amount = streak_nft_winning_amount
    if streak_rewards is not None:
        state.streak_rewards = [replace(r) for r in streak_rewards]
    if allowed_to_send_nft is not None:
        state.allowed_to_send_nft = list(allowed_to_send_nft)

    validate_streak_config(state.streak_rewards, config.streak_nft_winning_amount)

    logger.info(f"[ADMIN] Streak config: pool max {config.nft_pool_max}, "
                f"NFT trigger {config.streak_nft_winning_amount}, {len(state.streak_rewards)} tiers")
    return Response(attributes={"method": "update_streak_config"})


def withdraw_nft_from_pool(state: EngineState, index: Optional[int], withdraw_all: bool) -> Response:
    """Send one pooled NFT, or all of them, to the team wallet."""
    team = state.config.wallets.team
    response = Response(attributes={"action": "withdraw_nft_from_pool"})

    if withdraw_all:
        withdrawn: List[NftReward] = list(state.nft_pool)
        state.nft_pool = []
        response.messages.extend(NftTransfer(nft=nft, recipient=team) for nft in withdrawn)
        response.attributes["withdraw"] = f"All NFTs withdrawn from pool ({len(withdrawn)})"
    elif index is not None:
        if not 0 <= index < len(state.nft_pool):
            raise NftIndexOutOfRange()
        nft = state.nft_pool.pop(index)
        response.messages.append(NftTransfer(nft=nft, recipient=team))
        response.attributes["withdraw"] = f"withdraw: {nft.contract} / {nft.token_id}"
    else:
        raise EmptyWithdrawParams()

    logger.info(f"[ADMIN] {response.attributes['withdraw']}")
    return response


def send_excess_funds(state: EngineState, bank: Bank, denom: str) -> Response:
    """Pay everything above the bank floor and unpaid fees to the reserve wallet."""
    limits = _limits_for(state, denom)
    liquid = bank.balance(denom) - state.fees.get(denom, 0)

    if liquid <= limits.bank_floor:
        raise NoExcessFunds()

    excess = Coin(denom=denom, amount=liquid - limits.bank_floor)
    logger.info(f"[ADMIN] Sending excess {excess} to reserve {state.config.wallets.reserve}")
    return Response(
        messages=[BankSend(to_address=state.config.wallets.reserve, amount=excess)],
        attributes={"action": "send_excess_funds", "amount": str(excess)},
    )


def transfer_misplaced_nft(state: EngineState, contract: str, token_id: str) -> Response:
    """Return an NFT the contract holds outside the reward pool to the team wallet."""
    nft = NftReward(contract=contract, token_id=token_id)
    if nft in state.nft_pool:
        raise NftInPool()

    logger.info(f"[ADMIN] Transferring misplaced NFT {contract}/{token_id} to team wallet")
    return Response(
        messages=[NftTransfer(nft=nft, recipient=state.config.wallets.team)],
        attributes={"action": "transfer_nft"},
    )
