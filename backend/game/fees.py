"""
Fee ledger distribution.

Unpaid fees per denomination are split between the team, the holders of the
configured collection and the reserve. Every split floors to whole minor
units; whatever rounding leaves behind stays in the ledger for the next
distribution.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from database.models import Coin, EngineState, FeeSchedule, FeesToPay
from .chain_ops import Bank, BankSend, NftRegistry, Response
from .errors import DenomNotFound, NoFeesToPay, NotEnoughFundsToPayFees
from .holders import get_holders_list
from .money import apply_bps, checked_add, checked_sub, floor_atomics, format_atomics, mul_atomics, ratio_atomics

logger = logging.getLogger(__name__)

DUST_THRESHOLD = 1000


@dataclass
class DryDistribution:
    """What a distribution would pay right now."""
    total_fees: int
    team_total_fee: int
    reserve_total_fee: int  # after the bank floor guard
    holders_total_fee: int
    holders_total_shares: int  # 18-decimal atomics
    fees_per_token: int  # 18-decimal atomics
    pay_to_holders: int
    number_of_holders: int


@dataclass
class _Plan:
    total_fees: int
    split: FeesToPay
    reserve_to_send: int
    total_shares: int = 0
    fees_per_token: int = 0
    holder_payouts: List[Tuple[str, int]] = field(default_factory=list)
    paid_to_holders: int = 0
    number_of_holders: int = 0


def calculate_split(total_fees: int, schedule: FeeSchedule, holder_registry: Optional[str]) -> FeesToPay:
    """Split `total_fees` into team, holders and reserve shares.

    Args:
        total_fees: Unpaid fees of one denomination
        schedule: Basis points per destination
        holder_registry: Holder collection, if one is configured

    Returns:
        FeesToPay, each share floored; without a registry the fees go
        half to the team and half to the reserve
    """
    if total_fees <= DUST_THRESHOLD:
        raise NoFeesToPay()

    if holder_registry is None:
        half = total_fees // 2
        return FeesToPay(team=half, holders=0, reserve=half)

    return FeesToPay(
        team=apply_bps(total_fees, schedule.team_bps),
        holders=apply_bps(total_fees, schedule.holders_bps),
        reserve=apply_bps(total_fees, schedule.reserve_bps),
    )


def verify_reserve_cap(contract_balance: int, total_fees: int, proposed_reserve: int, bank_floor: int) -> int:
    """Reduce the reserve payout so the liquid balance keeps its floor.

    Liquid balance is the contract balance minus unpaid fees. When it is
    already under `bank_floor`, the shortfall comes out of the reserve
    payout, never below zero.
    """
    if contract_balance < total_fees:
        raise NotEnoughFundsToPayFees()

    liquid = contract_balance - total_fees
    if liquid >= bank_floor:
        return proposed_reserve

    shortfall = bank_floor - liquid
    return max(0, proposed_reserve - shortfall)


def _plan(state: EngineState, bank: Bank, registry: NftRegistry, denom: str) -> _Plan:
    config = state.config
    limits = config.denom_limits.get(denom)
    if limits is None:
        raise DenomNotFound(denom)

    total_fees = state.fees.get(denom, 0)
    split = calculate_split(total_fees, config.fees, config.holder_registry)
    reserve_to_send = verify_reserve_cap(bank.balance(denom), total_fees, split.reserve, limits.bank_floor)
    plan = _Plan(total_fees=total_fees, split=split, reserve_to_send=reserve_to_send)

    if split.holders:
        plan.total_shares, holders = get_holders_list(registry, config.holder_registry)
        plan.number_of_holders = len(holders)
        plan.fees_per_token = ratio_atomics(split.holders, plan.total_shares)

        for address, shares in holders.items():
            amount = floor_atomics(mul_atomics(plan.fees_per_token, shares))
            if amount:
                plan.holder_payouts.append((address, amount))
            plan.paid_to_holders = checked_add(plan.paid_to_holders, amount)

    return plan


def distribute(state: EngineState, bank: Bank, registry: NftRegistry, denom: str) -> Response:
    """Pay out the fee ledger of `denom` and keep the remainder.

    The ledger is reduced by what holders actually received plus the team
    share plus the nominal reserve share, so holder rounding dust stays.
    """
    plan = _plan(state, bank, registry, denom)
    config = state.config
    response = Response()

    for address, amount in plan.holder_payouts:
        response.messages.append(BankSend(to_address=address, amount=Coin(denom=denom, amount=amount)))

    if plan.split.team:
        response.messages.append(BankSend(
            to_address=config.wallets.team,
            amount=Coin(denom=denom, amount=plan.split.team),
        ))

    if plan.reserve_to_send:
        response.messages.append(BankSend(
            to_address=config.wallets.reserve,
            amount=Coin(denom=denom, amount=plan.reserve_to_send),
        ))

    remaining = checked_sub(plan.total_fees, plan.paid_to_holders)
    remaining = checked_sub(remaining, plan.split.team)
    remaining = checked_sub(remaining, plan.split.reserve)
    state.fees[denom] = remaining

    response.attributes.update({
        "total_fees": str(plan.total_fees),
        "reserve_paid": str(plan.split.reserve),
        "team_paid": str(plan.split.team),
        "holders_paid": str(plan.paid_to_holders),
        "fees_per_token": format_atomics(plan.fees_per_token),
        "total_shares": format_atomics(plan.total_shares),
    })

    logger.info(f"[DISTRIBUTE] {denom}: total {plan.total_fees}, team {plan.split.team}, "
                f"reserve {plan.reserve_to_send}/{plan.split.reserve}, holders {plan.paid_to_holders} "
                f"to {len(plan.holder_payouts)} wallets, {remaining} left in ledger")
    return response


def dry_distribution(state: EngineState, bank: Bank, registry: NftRegistry, denom: str) -> DryDistribution:
    """Same arithmetic as `distribute`, without touching the ledger."""
    plan = _plan(state, bank, registry, denom)
    return DryDistribution(
        total_fees=plan.total_fees,
        team_total_fee=plan.split.team,
        reserve_total_fee=plan.reserve_to_send,
        holders_total_fee=plan.split.holders,
        holders_total_shares=plan.total_shares,
        fees_per_token=plan.fees_per_token,
        pay_to_holders=plan.paid_to_holders,
        number_of_holders=plan.number_of_holders,
    )
