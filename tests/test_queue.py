"""
Enqueueing wagers and settling ready batches.
"""
import hashlib

import pytest

from database import Coin, PendingWager, PickType
from game import BlockClock, BlockInfo, EnqueueWager, FlipEngine, InMemoryBank, SettleReady, UpdatePause
from game.coinflip import do_a_flip, get_random, verify_flip_result
from game.errors import (
    AlreadyPending,
    BetTooLarge,
    BetTooSmall,
    InsufficientContractFunds,
    InsufficientSenderFunds,
    NoLimitsConfigured,
    NothingReadyThisBlock,
    NothingToSettle,
    Paused,
    QueueFull,
    UnsupportedDenom,
    WrongFundsAmount,
    WrongFundsSent,
)

from helpers import (
    ADMIN,
    CONTRACT,
    CONTRACT_BALANCE,
    DENOM,
    FLIPPER,
    FLIPPER_BALANCE,
    FLIPPERS,
    MAX_BET,
    MIN_BET,
    NFT_SENDER,
    STREAK_REWARDS,
    env,
    fee_for,
    funds_for,
    make_config,
    play,
)


def enqueue(engine, account=FLIPPER, amount=MIN_BET, funds=None, height=100, pick=PickType.HEADS):
    if funds is None:
        funds = funds_for(amount)
    return engine.execute(account, EnqueueWager(pick=pick, amount=amount), funds, env(height))


def wager(pick):
    return PendingWager(id=1, account=FLIPPER, stake=Coin(DENOM, MIN_BET), pick=pick,
                        enqueued_at_block=100, enqueued_at_time=0)


# === Enqueue ===

def test_enqueue_accrues_fee_and_assigns_ids(engine, bank):
    first = enqueue(engine, FLIPPERS[0])
    second = enqueue(engine, FLIPPERS[1])

    assert first.events[0].kind == "start_flip"
    assert first.events[0].attributes == {"id": "1"}
    assert second.events[0].attributes == {"id": "2"}

    assert engine.get_fees(DENOM) == 2 * fee_for(MIN_BET)
    assert bank.balance(DENOM) == CONTRACT_BALANCE + 2 * (MIN_BET + fee_for(MIN_BET))
    assert bank.balance_of(FLIPPERS[0], DENOM) == FLIPPER_BALANCE - MIN_BET - fee_for(MIN_BET)


def test_second_wager_while_pending_fails(engine):
    enqueue(engine)
    with pytest.raises(AlreadyPending):
        enqueue(engine, height=101)


def test_queue_limit(engine):
    for account in FLIPPERS[:10]:
        enqueue(engine, account)

    with pytest.raises(QueueFull):
        enqueue(engine, FLIPPERS[10])


@pytest.mark.parametrize("funds", [
    [],
    [Coin(DENOM, MIN_BET), Coin(DENOM, fee_for(MIN_BET))],
])
def test_exactly_one_coin_required(engine, funds):
    with pytest.raises(WrongFundsAmount):
        enqueue(engine, funds=funds)


def test_unsupported_denom(engine):
    with pytest.raises(UnsupportedDenom) as exc:
        enqueue(engine, funds=[Coin("uatom", MIN_BET + fee_for(MIN_BET))])
    assert exc.value.denom == "uatom"


def test_denom_without_limits(make_engine):
    engine = make_engine(denoms=[DENOM, "uextra"])
    with pytest.raises(NoLimitsConfigured):
        enqueue(engine, funds=[Coin("uextra", MIN_BET + fee_for(MIN_BET))])


def test_bet_limits_report_whole_tokens(engine):
    with pytest.raises(BetTooLarge) as too_large:
        enqueue(engine, amount=MAX_BET + 1)
    assert str(too_large.value) == "You cannot bet above our limit = 25"

    with pytest.raises(BetTooSmall) as too_small:
        enqueue(engine, amount=MIN_BET - 1)
    assert str(too_small.value) == "You cannot bet under our limit = 5"


def test_funds_must_include_fee(engine):
    with pytest.raises(WrongFundsSent):
        enqueue(engine, funds=[Coin(DENOM, MIN_BET)])


def test_contract_must_cover_double_stake(registry, store):
    bank = InMemoryBank(CONTRACT)
    bank.mint(FLIPPER, Coin(DENOM, FLIPPER_BALANCE))
    engine = FlipEngine(store=store, bank=bank, nft_registry=registry)
    engine.instantiate(make_config(), STREAK_REWARDS, [NFT_SENDER])

    with pytest.raises(InsufficientContractFunds):
        enqueue(engine)


def test_failed_enqueue_changes_nothing(engine, bank):
    with pytest.raises(WrongFundsSent):
        enqueue(engine, funds=[Coin(DENOM, MIN_BET)])

    assert engine.get_fees(DENOM) == 0
    assert bank.balance(DENOM) == CONTRACT_BALANCE
    assert bank.balance_of(FLIPPER, DENOM) == FLIPPER_BALANCE
    assert not engine.should_settle(env(500))


def test_sender_must_hold_attached_funds(engine, bank):
    with pytest.raises(InsufficientSenderFunds):
        enqueue(engine, account="stars1broke")

    assert engine.get_fees(DENOM) == 0
    assert bank.balance(DENOM) == CONTRACT_BALANCE
    assert not engine.should_settle(env(500))


def test_pause_blocks_flips(engine):
    engine.execute(ADMIN, UpdatePause(is_paused=True), env=env(99))
    with pytest.raises(Paused):
        enqueue(engine)

    engine.execute(ADMIN, UpdatePause(is_paused=False), env=env(99))
    enqueue(engine)


# === Settlement ===

def test_nothing_to_settle(engine):
    with pytest.raises(NothingToSettle):
        engine.execute(FLIPPER, SettleReady(), env=env(100))


def test_wager_not_ready_in_its_own_block(engine):
    enqueue(engine, height=100)
    assert not engine.should_settle(env(100))

    with pytest.raises(NothingReadyThisBlock):
        engine.execute(FLIPPER, SettleReady(), env=env(100))

    assert engine.should_settle(env(101))


def test_only_ready_wagers_settle(engine):
    enqueue(engine, FLIPPERS[0], height=100)
    enqueue(engine, FLIPPERS[1], height=101)

    response = engine.execute(FLIPPER, SettleReady(), env=env(101))

    flips = response.events_of("flip")
    assert [e.attributes["flipper"] for e in flips] == [FLIPPERS[0]]
    assert response.attributes["flip_action"] == "do_flips"
    assert engine.should_settle(env(102))
    assert [f.account for f in engine.get_last_flips()] == [FLIPPERS[0]]


def test_outcome_is_deterministic(engine):
    settle_env = env(101)
    enqueue(engine, pick=PickType.TAILS)
    response = engine.execute(FLIPPER, SettleReady(), env=settle_env)

    expected = do_a_flip(wager(PickType.TAILS), get_random(settle_env))
    event = response.events_of("flip")[0]
    assert event.attributes["result"] == ("won" if expected else "lost")
    assert event.attributes["flip_pick"] == "Tails"
    assert event.attributes["flip_amount"] == f"{MIN_BET}{DENOM}"
    assert engine.get_last_flips()[0].outcome is expected


def test_seed_sums_hex_digest_bytes():
    block = BlockInfo(height=12345, time_nanos=1_571_797_419_879_305_533, tx_index=None)
    digest = hashlib.sha256(b"0123451571797419879305533").hexdigest()
    assert get_random(block) == sum(digest.encode())
    assert get_random(block) == get_random(BlockInfo(12345, 1_571_797_419_879_305_533, 0))


def test_heads_and_tails_are_complementary():
    rand = get_random(env(42))
    assert do_a_flip(wager(PickType.HEADS), rand) != do_a_flip(wager(PickType.TAILS), rand)


def test_winner_paid_double_loser_nothing(engine, bank):
    won = play(engine, FLIPPERS[0], win=True, height=100)
    assert [(s.to_address, s.amount) for s in won.bank_sends] == [(FLIPPERS[0], Coin(DENOM, 2 * MIN_BET))]

    lost = play(engine, FLIPPERS[1], win=False, height=102)
    assert lost.bank_sends == []
    assert lost.events_of("flip")[0].attributes["result"] == "lost"

    # Winner paid 2x stake plus fee in, 2x stake out
    assert bank.balance_of(FLIPPERS[0], DENOM) == FLIPPER_BALANCE + MIN_BET - fee_for(MIN_BET)


def test_batch_payouts_bounded_by_double_stakes(engine):
    stakes = 0
    for i, account in enumerate(FLIPPERS[:8]):
        amount = MIN_BET + i * 1_000_000
        pick = PickType.HEADS if i % 2 else PickType.TAILS
        enqueue(engine, account, amount=amount, pick=pick)
        stakes += amount

    response = engine.execute(FLIPPER, SettleReady(), env=env(101))

    paid = sum(s.amount.amount for s in response.bank_sends)
    assert paid <= 2 * stakes
    assert len(response.events_of("flip")) == 8
    assert engine.get_fees(DENOM) == sum(fee_for(MIN_BET + i * 1_000_000) for i in range(8))


def test_history_keeps_last_five(engine):
    for account in FLIPPERS[:7]:
        enqueue(engine, account)
    engine.execute(FLIPPER, SettleReady(), env=env(101))

    history = engine.get_last_flips()
    assert [f.account for f in history] == FLIPPERS[2:7]


def test_batch_fails_when_contract_cannot_cover(registry, store):
    bank = InMemoryBank(CONTRACT)
    bank.mint(CONTRACT, Coin(DENOM, MIN_BET))
    for account in FLIPPERS[:2]:
        bank.mint(account, Coin(DENOM, FLIPPER_BALANCE))
    engine = FlipEngine(store=store, bank=bank, nft_registry=registry)
    engine.instantiate(make_config(), STREAK_REWARDS, [NFT_SENDER])

    # Each wager alone is covered, both together are not
    enqueue(engine, FLIPPERS[0])
    enqueue(engine, FLIPPERS[1])

    with pytest.raises(InsufficientContractFunds):
        engine.execute(FLIPPER, SettleReady(), env=env(101))

    assert engine.should_settle(env(101))
    assert engine.get_last_flips() == []


def test_settled_outcome_verifiable_from_block_data(engine):
    settle_env = env(101)
    enqueue(engine, pick=PickType.HEADS)
    won = engine.execute(FLIPPER, SettleReady(), env=settle_env).events_of("flip")[0].attributes["result"] == "won"

    assert verify_flip_result(FLIPPER, PickType.HEADS, settle_env, won)
    assert not verify_flip_result(FLIPPER, PickType.HEADS, settle_env, not won)


def test_block_clock_numbers_transactions_within_a_block():
    clock = BlockClock(block_time_seconds=3600, genesis_height=50)
    first, second = clock.current(), clock.current()

    assert first.height == second.height == 50
    assert (first.tx_index, second.tx_index) == (0, 1)
