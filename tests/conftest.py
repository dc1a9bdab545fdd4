import pytest

from database import Coin, InMemoryStore
from game import FlipEngine, InMemoryBank, InMemoryNftRegistry

from helpers import (
    CONTRACT,
    CONTRACT_BALANCE,
    DENOM,
    FLIPPER_BALANCE,
    FLIPPERS,
    NFT_SENDER,
    STREAK_REWARDS,
    USDC,
    ManualClock,
    make_config,
)


@pytest.fixture
def bank():
    bank = InMemoryBank(CONTRACT)
    for denom in (DENOM, USDC):
        bank.mint(CONTRACT, Coin(denom=denom, amount=CONTRACT_BALANCE))
        for flipper in FLIPPERS:
            bank.mint(flipper, Coin(denom=denom, amount=FLIPPER_BALANCE))
    return bank


@pytest.fixture
def registry():
    return InMemoryNftRegistry()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_engine(bank, registry, store):
    """Build and instantiate an engine, optionally overriding config fields."""
    def _make(**overrides):
        engine = FlipEngine(store=store, bank=bank, nft_registry=registry, clock=ManualClock())
        engine.instantiate(make_config(**overrides), STREAK_REWARDS, [NFT_SENDER])
        return engine
    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
