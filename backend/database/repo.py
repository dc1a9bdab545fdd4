"""
State storage for the Coinflip engine.

The engine only needs to load the whole state and save it back after a
command succeeds. `InMemoryStore` serves tests and embedded use; `Database`
keeps each persisted record as one JSON row in SQLite.
"""
import copy
import json
import sqlite3
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional, Protocol

from .models import (
    Coin,
    Config,
    EngineState,
    FeeSchedule,
    FlipScore,
    NftReward,
    PendingWager,
    PickType,
    SettledFlip,
    StakeLimits,
    StreakRecord,
    StreakReward,
    Wallets,
)

logger = logging.getLogger(__name__)

STATE_KEYS = (
    "config",
    "pending",
    "last_flips",
    "fees",
    "nft_pool",
    "streak_rewards",
    "allowed_to_send_nft",
    "scores",
    "last_flip_id",
)


class StateStore(Protocol):
    """Where the engine keeps its state between commands."""

    def load(self) -> Optional[EngineState]:
        ...

    def save(self, state: EngineState):
        ...


class InMemoryStore:
    """Process-local store. Hands out copies so callers can't mutate committed state."""

    def __init__(self, state: Optional[EngineState] = None):
        self._state = copy.deepcopy(state)

    def load(self) -> Optional[EngineState]:
        return copy.deepcopy(self._state)

    def save(self, state: EngineState):
        self._state = copy.deepcopy(state)


class Database:
    """SQLite-backed state store."""

    def __init__(self, db_path: str = "coinflip.db"):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS engine_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        conn.commit()
        conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    # === State Operations ===

    def load(self) -> Optional[EngineState]:
        """Load the full engine state, or None before instantiation."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()

        cursor.execute("SELECT key, value FROM engine_state")
        rows = {row["key"]: json.loads(row["value"]) for row in cursor.fetchall()}
        conn.close()

        if "config" not in rows:
            return None

        return EngineState(
            config=_dict_to_config(rows["config"]),
            pending=[_dict_to_pending(p) for p in rows.get("pending", [])],
            last_flips=[_dict_to_settled(f) for f in rows.get("last_flips", [])],
            fees={denom: int(amount) for denom, amount in rows.get("fees", {}).items()},
            nft_pool=[NftReward(**n) for n in rows.get("nft_pool", [])],
            streak_rewards=[StreakReward(**r) for r in rows.get("streak_rewards", [])],
            allowed_to_send_nft=list(rows.get("allowed_to_send_nft", [])),
            scores={addr: _dict_to_score(s) for addr, s in rows.get("scores", {}).items()},
            last_flip_id=int(rows.get("last_flip_id", 0)),
        )

    def save(self, state: EngineState):
        """Write every record in one transaction."""
        values = {
            "config": asdict(state.config),
            "pending": [_pending_to_dict(p) for p in state.pending],
            "last_flips": [asdict(f) for f in state.last_flips],
            "fees": dict(state.fees),
            "nft_pool": [asdict(n) for n in state.nft_pool],
            "streak_rewards": [asdict(r) for r in state.streak_rewards],
            "allowed_to_send_nft": list(state.allowed_to_send_nft),
            "scores": {addr: asdict(s) for addr, s in state.scores.items()},
            "last_flip_id": state.last_flip_id,
        }
        now = datetime.utcnow().isoformat()

        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO engine_state (key, value, updated_at) VALUES (?, ?, ?)",
                    [(key, json.dumps(values[key]), now) for key in STATE_KEYS],
                )
        finally:
            conn.close()


def _pending_to_dict(wager: PendingWager) -> dict:
    data = asdict(wager)
    data["pick"] = wager.pick.value
    return data


def _dict_to_pending(data: dict) -> PendingWager:
    return PendingWager(
        id=data["id"],
        account=data["account"],
        stake=Coin(**data["stake"]),
        pick=PickType(data["pick"]),
        enqueued_at_block=data["enqueued_at_block"],
        enqueued_at_time=data["enqueued_at_time"],
    )


def _dict_to_settled(data: dict) -> SettledFlip:
    return SettledFlip(
        account=data["account"],
        stake=Coin(**data["stake"]),
        outcome=data["outcome"],
        streak_after=StreakRecord(**data["streak_after"]),
        settled_at_time=data["settled_at_time"],
    )


def _dict_to_score(data: dict) -> FlipScore:
    return FlipScore(
        streak=StreakRecord(**data["streak"]),
        last_flip_time=data["last_flip_time"],
    )


def _dict_to_config(data: dict) -> Config:
    return Config(
        admin=data["admin"],
        denoms=list(data["denoms"]),
        denom_limits={denom: StakeLimits(**limits) for denom, limits in data["denom_limits"].items()},
        wallets=Wallets(**data["wallets"]),
        fees=FeeSchedule(**data["fees"]),
        flips_per_block_limit=data["flips_per_block_limit"],
        holder_registry=data.get("holder_registry"),
        is_paused=data.get("is_paused", False),
        nft_pool_max=data.get("nft_pool_max", 0),
        streak_nft_winning_amount=data.get("streak_nft_winning_amount", 0),
        reward_denom=data["reward_denom"],
    )
