"""
Chain-side collaborators for the Coinflip engine.

The engine never moves funds or NFTs itself. It reads balances through a
`Bank`, resolves NFT owners through an `NftRegistry`, and returns transfer
instructions that the dispatcher hands back to those collaborators once a
command has committed.
"""
import time
import logging
import sqlite3
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple, Union

from database.models import Coin, NftReward
from .errors import InsufficientContractFunds, InsufficientSenderFunds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockInfo:
    """Execution environment of one command."""
    height: int
    time_nanos: int
    tx_index: Optional[int] = None


@dataclass(frozen=True)
class BankSend:
    """Pay `amount` from the contract to `to_address`."""
    to_address: str
    amount: Coin


@dataclass(frozen=True)
class NftTransfer:
    """Hand `nft` from the contract to `recipient`."""
    nft: NftReward
    recipient: str


Message = Union[BankSend, NftTransfer]


@dataclass
class Event:
    """Structured record of something a command did."""
    kind: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """Everything a successful command emits."""
    events: List[Event] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def bank_sends(self) -> List[BankSend]:
        return [m for m in self.messages if isinstance(m, BankSend)]

    @property
    def nft_transfers(self) -> List[NftTransfer]:
        return [m for m in self.messages if isinstance(m, NftTransfer)]

    def events_of(self, kind: str) -> List[Event]:
        return [e for e in self.events if e.kind == kind]


class Bank(Protocol):
    """Balance source and payout sink for the contract account."""

    def balance(self, denom: str) -> int:
        ...

    def apply(self, sender: str, received: List[Coin], sends: List[BankSend]):
        ...


class NftRegistry(Protocol):
    """Ownership lookups and transfers for NFT collections."""

    def resolve_owner(self, item: NftReward) -> Optional[str]:
        ...

    def transfer_ownership(self, item: NftReward, recipient: str):
        ...


class InMemoryBank:
    """Per-address balances kept in process memory."""

    def __init__(self, contract_address: str):
        self.contract_address = contract_address
        self._balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def balance(self, denom: str) -> int:
        return self.balance_of(self.contract_address, denom)

    def balance_of(self, address: str, denom: str) -> int:
        return self._balances[address][denom]

    def mint(self, address: str, coin: Coin):
        """Credit funds out of thin air (test setup and top-ups)."""
        self._balances[address][coin.denom] += coin.amount

    def apply(self, sender: str, received: List[Coin], sends: List[BankSend]):
        """Move attached funds in and payouts out, all or nothing."""
        needed: Dict[str, int] = defaultdict(int)
        for coin in received:
            if self.balance_of(sender, coin.denom) < coin.amount:
                raise InsufficientSenderFunds(coin.denom)
        for send in sends:
            needed[send.amount.denom] += send.amount.amount
        incoming = defaultdict(int)
        for coin in received:
            incoming[coin.denom] += coin.amount
        for denom, amount in needed.items():
            if self.balance(denom) + incoming[denom] < amount:
                raise InsufficientContractFunds(denom)

        for coin in received:
            self._balances[sender][coin.denom] -= coin.amount
            self._balances[self.contract_address][coin.denom] += coin.amount
        for send in sends:
            self._balances[self.contract_address][send.amount.denom] -= send.amount.amount
            self._balances[send.to_address][send.amount.denom] += send.amount.amount
            logger.info(f"[BANK] Sent {send.amount} to {send.to_address}")


class SqliteBank:
    """Contract balances persisted in the engine's SQLite database.

    Attached funds were already paid by the sender outside this service, so
    they are credited to the contract without debiting a sender ledger.
    Payouts are debited from the contract and credited to the recipient.
    """

    def __init__(self, db_path: str, contract_address: str):
        self.db_path = db_path
        self.contract_address = contract_address
        self._init_bank_table()

    def _init_bank_table(self):
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS bank_balances (
                        address TEXT NOT NULL,
                        denom TEXT NOT NULL,
                        amount TEXT NOT NULL,
                        PRIMARY KEY (address, denom)
                    )
                """)
        finally:
            conn.close()

    def balance(self, denom: str) -> int:
        return self.balance_of(self.contract_address, denom)

    def balance_of(self, address: str, denom: str) -> int:
        conn = sqlite3.connect(self.db_path)
        try:
            return _stored_amount(conn, address, denom)
        finally:
            conn.close()

    def mint(self, address: str, coin: Coin):
        """Credit funds that arrived outside the engine (initial funding, top-ups)."""
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                _credit(conn, address, coin.denom, coin.amount)
        finally:
            conn.close()
        logger.info(f"[BANK] Credited {coin} to {address}")

    def apply(self, sender: str, received: List[Coin], sends: List[BankSend]):
        """Credit attached funds and pay out sends in one transaction."""
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                for coin in received:
                    _credit(conn, self.contract_address, coin.denom, coin.amount)
                for send in sends:
                    _credit(conn, self.contract_address, send.amount.denom, -send.amount.amount)
                    _credit(conn, send.to_address, send.amount.denom, send.amount.amount)
        finally:
            conn.close()

        for send in sends:
            logger.info(f"[BANK] Sent {send.amount} to {send.to_address}")


class InMemoryNftRegistry:
    """Owners of NFTs across any number of collections."""

    def __init__(self):
        self._owners: Dict[Tuple[str, str], str] = {}

    def mint(self, item: NftReward, owner: str):
        self._owners[(item.contract, item.token_id)] = owner

    def resolve_owner(self, item: NftReward) -> Optional[str]:
        return self._owners.get((item.contract, item.token_id))

    def transfer_ownership(self, item: NftReward, recipient: str):
        self._owners[(item.contract, item.token_id)] = recipient
        logger.info(f"[NFT] Transferred {item.contract}/{item.token_id} to {recipient}")


class BlockClock:
    """Derives block height from wall-clock time for the HTTP surface.

    Heights advance every `block_time_seconds`; each call within the same
    height gets the next transaction index.
    """

    def __init__(self, block_time_seconds: float = 6.0, genesis_height: int = 1,
                 genesis_time_nanos: Optional[int] = None):
        self.block_time_nanos = int(block_time_seconds * 1_000_000_000)
        self.genesis_height = genesis_height
        self.genesis_time_nanos = genesis_time_nanos if genesis_time_nanos is not None else time.time_ns()
        self._last_height = None
        self._tx_index = 0

    def current(self) -> BlockInfo:
        now = time.time_ns()
        height = self.genesis_height + (now - self.genesis_time_nanos) // self.block_time_nanos
        if height == self._last_height:
            self._tx_index += 1
        else:
            self._last_height = height
            self._tx_index = 0
        return BlockInfo(height=height, time_nanos=now, tx_index=self._tx_index)


def _stored_amount(conn: sqlite3.Connection, address: str, denom: str) -> int:
    row = conn.execute(
        "SELECT amount FROM bank_balances WHERE address = ? AND denom = ?", (address, denom)
    ).fetchone()
    return int(row[0]) if row else 0


def _credit(conn: sqlite3.Connection, address: str, denom: str, delta: int):
    # Amounts are stored as text; they can exceed SQLite's 64-bit integers.
    amount = _stored_amount(conn, address, denom) + delta
    if amount < 0:
        raise InsufficientContractFunds(denom)
    conn.execute(
        "INSERT OR REPLACE INTO bank_balances (address, denom, amount) VALUES (?, ?, ?)",
        (address, denom, str(amount)),
    )
