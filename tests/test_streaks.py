"""
Streak tracking, claims and the NFT reward pool.
"""
import pytest

from database import Coin, NftReward, StreakRecord
from game import ClaimStreak, DepositNftToPool, FlipEngine, NftTransfer
from game.coinflip import get_random
from game.errors import NftPoolFull, NotEligible, StreakTooLow, UnauthorizedToSendNft

from helpers import (
    DENOM,
    FLIPPER,
    FLIPPERS,
    MIN_BET,
    NFT_CONTRACT,
    NFT_SENDER,
    STREAK_REWARDS,
    ManualClock,
    env,
    make_config,
    play,
    play_streak,
)


def deposit(engine, token_id, sender=NFT_SENDER, contract=NFT_CONTRACT):
    return engine.execute(contract, DepositNftToPool(sender=sender, token_id=token_id), env=env(90))


def claim(engine, account=FLIPPER):
    return engine.execute(account, ClaimStreak(), env=env(500))


# === Streak tracking ===

def test_streak_follows_outcomes(engine):
    play_streak(engine, FLIPPER, [True, True, True])
    assert engine.get_score(FLIPPER).streak == StreakRecord(length=3, last_outcome=True)

    play(engine, FLIPPER, win=False, height=200)
    assert engine.get_score(FLIPPER).streak == StreakRecord(length=1, last_outcome=False)


def test_unknown_account_has_no_score(engine):
    assert engine.get_score(FLIPPER) is None


def test_history_records_streak_after_flip(engine):
    play_streak(engine, FLIPPER, [False, False])
    last = engine.get_last_flips()[-1]
    assert last.outcome is False
    assert last.streak_after == StreakRecord(length=2, last_outcome=False)


# === Claims ===

def test_claim_exact_tier(engine):
    """Four identical outcomes, claim pays the 4-streak tier and resets."""
    play_streak(engine, FLIPPER, [True] * 4)
    assert engine.get_score(FLIPPER).streak.length == 4

    response = claim(engine)

    assert [(s.to_address, s.amount) for s in response.bank_sends] == [(FLIPPER, Coin(DENOM, 200_000))]
    event = response.events_of("streak-claim")[0]
    assert event.attributes == {"flipper": FLIPPER, "streak": "4", "claim": "200000ustars"}
    assert engine.get_score(FLIPPER).streak == StreakRecord(length=0, last_outcome=True)


def test_claim_below_lowest_tier(engine):
    play(engine, FLIPPER, win=True, height=100)
    with pytest.raises(StreakTooLow) as exc:
        claim(engine)
    assert exc.value.min_streak == 2


def test_claim_without_any_flip(engine):
    with pytest.raises(StreakTooLow):
        claim(engine)


def test_claim_needs_exact_match(engine):
    play_streak(engine, FLIPPER, [False] * 3)
    with pytest.raises(NotEligible) as exc:
        claim(engine)
    assert exc.value.streak == 3
    assert engine.get_score(FLIPPER).streak.length == 3


def test_claimed_streak_cannot_be_claimed_twice(engine):
    play_streak(engine, FLIPPER, [True, True])
    claim(engine)
    with pytest.raises(StreakTooLow):
        claim(engine)


# === Automatic award at the NFT trigger ===

def test_trigger_with_empty_pool_pays_top_tier(engine):
    response = play_streak(engine, FLIPPER, [True] * 5)

    event = response.events_of("streak-claim")[0]
    assert event.attributes["claim"] == "300000ustars"
    assert event.attributes["flipper"] == FLIPPER

    sends = [(s.to_address, s.amount) for s in response.bank_sends]
    assert (FLIPPER, Coin(DENOM, 300_000)) in sends
    assert (FLIPPER, Coin(DENOM, 2 * MIN_BET)) in sends
    assert response.nft_transfers == []

    assert engine.get_score(FLIPPER).streak == StreakRecord(length=0, last_outcome=True)
    # History keeps the streak that triggered the award
    assert engine.get_last_flips()[-1].streak_after.length == 5


def test_losing_streak_also_triggers(engine):
    response = play_streak(engine, FLIPPER, [False] * 5)
    assert response.events_of("streak-claim")[0].attributes["claim"] == "300000ustars"
    assert [(s.to_address, s.amount) for s in response.bank_sends] == [(FLIPPER, Coin(DENOM, 300_000))]


def test_trigger_draws_nft_from_pool(engine, registry):
    deposit(engine, "1")
    deposit(engine, "2")
    pool = engine.get_nft_pool()

    response = play_streak(engine, FLIPPER, [True] * 5, start_height=100)

    # The fifth flip settles at block 109
    expected = pool[get_random(env(109)) % len(pool)]
    assert response.nft_transfers == [NftTransfer(nft=expected, recipient=FLIPPER)]
    assert response.events_of("streak-claim")[0].attributes["claim"] == f"{expected.contract}/{expected.token_id}"
    assert engine.get_nft_pool() == [nft for nft in pool if nft != expected]
    assert registry.resolve_owner(expected) == FLIPPER
    assert engine.get_score(FLIPPER).streak.length == 0


def test_each_award_shrinks_pool_by_one(engine):
    deposit(engine, "1")
    deposit(engine, "2")

    play_streak(engine, FLIPPERS[1], [True] * 5, start_height=100)
    assert len(engine.get_nft_pool()) == 1

    play_streak(engine, FLIPPERS[2], [False] * 5, start_height=200)
    assert engine.get_nft_pool() == []


# === NFT deposits ===

def test_deposit_adds_to_pool(engine):
    response = deposit(engine, "42")
    assert engine.get_nft_pool() == [NftReward(contract=NFT_CONTRACT, token_id="42")]
    assert response.attributes["nft_pool_size"] == "1"
    assert response.attributes["nft_contract"] == NFT_CONTRACT


def test_deposit_from_unknown_sender(engine):
    with pytest.raises(UnauthorizedToSendNft):
        deposit(engine, "1", sender="stars1stranger")
    assert engine.get_nft_pool() == []


def test_instantiate_without_nft_senders(store, bank, registry):
    engine = FlipEngine(store=store, bank=bank, nft_registry=registry, clock=ManualClock())
    engine.instantiate(make_config(), STREAK_REWARDS, [])

    with pytest.raises(UnauthorizedToSendNft):
        deposit(engine, "1")
    assert engine.get_nft_pool() == []


def test_deposit_into_full_pool(engine):
    for token_id in ("1", "2", "3", "4"):
        deposit(engine, token_id)

    with pytest.raises(NftPoolFull):
        deposit(engine, "5")
    assert len(engine.get_nft_pool()) == 4
