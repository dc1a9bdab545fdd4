"""
FastAPI web backend for the Coinflip settlement engine.
Exposes every engine command and query over HTTP.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import config
from database import Coin, Database, FeeSchedule, PickType, StakeLimits, StreakReward
from game import (
    AddDenom,
    BankSend,
    BlockClock,
    ClaimStreak,
    DepositNftToPool,
    Distribute,
    EnqueueWager,
    ErrorCategory,
    FlipEngine,
    FlipError,
    InMemoryNftRegistry,
    RemoveDenom,
    Response,
    SendExcessFunds,
    SettleReady,
    SqliteBank,
    TransferMisplacedNft,
    UpdateBankFloor,
    UpdateFees,
    UpdateHolderRegistry,
    UpdatePause,
    UpdateStakeLimits,
    UpdateStreakConfig,
    WithdrawNftFromPool,
)
from game.money import format_atomics
from security import AuditLogger
from utils import (
    format_bps,
    format_timestamp,
    format_units,
    format_win_rate,
    is_valid_amount,
    is_valid_denom,
    is_valid_token_id,
    truncate_address,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.CAPACITY: 400,
    ErrorCategory.STATE: 400,
    ErrorCategory.SOLVENCY: 400,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.OPERATIONAL: 503,
}


# ===== MODELS =====

class CoinModel(BaseModel):
    denom: str
    amount: int


class StartFlipRequest(BaseModel):
    sender: str
    pick: str  # "heads" or "tails"
    amount: int
    funds: List[CoinModel]


class SenderRequest(BaseModel):
    sender: str


class ReceiveNftRequest(BaseModel):
    """NFT-transfer notification; `sender` is the NFT contract."""
    sender: str
    from_address: str
    token_id: str


class DenomRequest(BaseModel):
    sender: str
    denom: str


class AddDenomRequest(BaseModel):
    sender: str
    denom: str
    min_bet: int
    max_bet: int
    bank_floor: int


class RemoveDenomsRequest(BaseModel):
    sender: str
    denoms: List[str]


class UpdateFeesRequest(BaseModel):
    sender: str
    team_bps: int
    holders_bps: int
    reserve_bps: int
    flip_bps: int


class UpdateStakeLimitsRequest(BaseModel):
    sender: str
    denom: str
    min_bet: int
    max_bet: int


class UpdateBankFloorRequest(BaseModel):
    sender: str
    denom: str
    bank_floor: int


class UpdateHolderRegistryRequest(BaseModel):
    sender: str
    address: str


class UpdatePauseRequest(BaseModel):
    sender: str
    is_paused: bool


class StreakRewardModel(BaseModel):
    streak_length: int
    cash_amount: int


class UpdateStreakConfigRequest(BaseModel):
    sender: str
    nft_pool_max: Optional[int] = None
    streak_nft_winning_amount: Optional[int] = None
    streak_rewards: Optional[List[StreakRewardModel]] = None
    allowed_to_send_nft: Optional[List[str]] = None


class WithdrawNftRequest(BaseModel):
    sender: str
    index: Optional[int] = None
    all: Optional[bool] = None


class TransferNftRequest(BaseModel):
    sender: str
    contract: str
    token_id: str


# ===== SERIALIZATION =====

def _coin_dict(coin: Coin) -> dict:
    return {"denom": coin.denom, "amount": str(coin.amount)}


def _response_dict(response: Response) -> dict:
    messages = []
    for msg in response.messages:
        if isinstance(msg, BankSend):
            messages.append({"type": "bank_send", "to_address": msg.to_address, "amount": _coin_dict(msg.amount)})
        else:
            messages.append({
                "type": "nft_transfer",
                "contract": msg.nft.contract,
                "token_id": msg.nft.token_id,
                "recipient": msg.recipient,
            })
    return {
        "events": [{"kind": e.kind, "attributes": e.attributes} for e in response.events],
        "messages": messages,
        "attributes": response.attributes,
    }


def _streak_dict(streak) -> dict:
    return {"length": streak.length, "last_outcome": streak.last_outcome}


# ===== APP =====

def build_engine() -> FlipEngine:
    """Engine backed by SQLite, instantiated and funded from the environment on first start."""
    store = Database(config.DB_PATH)
    bank = SqliteBank(config.DB_PATH, config.CONTRACT_ADDRESS)
    engine = FlipEngine(
        store=store,
        bank=bank,
        nft_registry=InMemoryNftRegistry(),
        audit=AuditLogger(config.DB_PATH),
        clock=BlockClock(config.BLOCK_TIME_SECONDS),
    )
    if store.load() is None:
        initial_funds = config.parse_coins(config.CONTRACT_FUNDS)
        engine.instantiate(*config.build_instantiate_config())
        for coin in initial_funds:
            bank.mint(config.CONTRACT_ADDRESS, coin)
    return engine


def create_app(engine: FlipEngine) -> FastAPI:
    """FastAPI app serving `engine`."""
    app = FastAPI(title="Coinflip Engine API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def run(sender: str, command, funds: Optional[List[Coin]] = None) -> dict:
        try:
            response = engine.execute(sender, command, funds or [])
        except FlipError as e:
            logger.warning(f"{type(command).__name__} from {truncate_address(sender)} rejected: {e}")
            raise HTTPException(status_code=ERROR_STATUS[e.category], detail=str(e))
        return _response_dict(response)

    def query(fn, *args):
        try:
            return fn(*args)
        except FlipError as e:
            raise HTTPException(status_code=ERROR_STATUS[e.category], detail=str(e))

    def check_denom(denom: str):
        is_valid, error = is_valid_denom(denom)
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)

    # === STATUS ===

    @app.get("/")
    async def root():
        """API root."""
        return {"name": "Coinflip Engine API", "version": "1.0.0", "status": "online"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

    # === FLIP ENDPOINTS ===

    @app.post("/api/flip/start")
    async def start_flip(request: StartFlipRequest):
        """Enqueue a wager; attach stake plus flip fee as funds."""
        try:
            pick = PickType(request.pick.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid pick. Must be 'heads' or 'tails'")

        is_valid, error = is_valid_amount(request.amount)
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)

        funds = [Coin(denom=c.denom, amount=c.amount) for c in request.funds]
        return run(request.sender, EnqueueWager(pick=pick, amount=request.amount), funds)

    @app.post("/api/flip/settle")
    async def settle_flips(request: SenderRequest):
        """Settle every wager that is ready this block."""
        return run(request.sender, SettleReady())

    @app.post("/api/streak/claim")
    async def claim_streak(request: SenderRequest):
        """Claim the cash reward for the current streak."""
        return run(request.sender, ClaimStreak())

    @app.post("/api/nft/receive")
    async def receive_nft(request: ReceiveNftRequest):
        """NFT deposited into the reward pool."""
        is_valid, error = is_valid_token_id(request.token_id)
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)
        return run(request.sender, DepositNftToPool(sender=request.from_address, token_id=request.token_id))

    # === ADMIN ENDPOINTS ===

    @app.post("/api/admin/distribute")
    async def distribute(request: DenomRequest):
        check_denom(request.denom)
        return run(request.sender, Distribute(denom=request.denom))

    @app.post("/api/admin/denoms")
    async def add_denom(request: AddDenomRequest):
        check_denom(request.denom)
        limits = StakeLimits(min=request.min_bet, max=request.max_bet, bank_floor=request.bank_floor)
        return run(request.sender, AddDenom(denom=request.denom, limits=limits))

    @app.post("/api/admin/denoms/remove")
    async def remove_denoms(request: RemoveDenomsRequest):
        return run(request.sender, RemoveDenom(denoms=tuple(request.denoms)))

    @app.post("/api/admin/fees")
    async def update_fees(request: UpdateFeesRequest):
        fees = FeeSchedule(
            team_bps=request.team_bps,
            holders_bps=request.holders_bps,
            reserve_bps=request.reserve_bps,
            flip_bps=request.flip_bps,
        )
        return run(request.sender, UpdateFees(fees=fees))

    @app.post("/api/admin/stake-limits")
    async def update_stake_limits(request: UpdateStakeLimitsRequest):
        return run(request.sender, UpdateStakeLimits(
            denom=request.denom, min_bet=request.min_bet, max_bet=request.max_bet,
        ))

    @app.post("/api/admin/bank-floor")
    async def update_bank_floor(request: UpdateBankFloorRequest):
        return run(request.sender, UpdateBankFloor(denom=request.denom, bank_floor=request.bank_floor))

    @app.post("/api/admin/holder-registry")
    async def update_holder_registry(request: UpdateHolderRegistryRequest):
        return run(request.sender, UpdateHolderRegistry(address=request.address))

    @app.post("/api/admin/pause")
    async def update_pause(request: UpdatePauseRequest):
        return run(request.sender, UpdatePause(is_paused=request.is_paused))

    @app.post("/api/admin/streak-config")
    async def update_streak_config(request: UpdateStreakConfigRequest):
        rewards = None
        if request.streak_rewards is not None:
            rewards = tuple(StreakReward(streak_length=r.streak_length, cash_amount=r.cash_amount)
                            for r in request.streak_rewards)
        allowed = tuple(request.allowed_to_send_nft) if request.allowed_to_send_nft is not None else None
        return run(request.sender, UpdateStreakConfig(
            nft_pool_max=request.nft_pool_max,
            streak_nft_winning_amount=request.streak_nft_winning_amount,
            streak_rewards=rewards,
            allowed_to_send_nft=allowed,
        ))

    @app.post("/api/admin/nft-pool/withdraw")
    async def withdraw_nft_from_pool(request: WithdrawNftRequest):
        return run(request.sender, WithdrawNftFromPool(index=request.index, withdraw_all=bool(request.all)))

    @app.post("/api/admin/excess-funds")
    async def send_excess_funds(request: DenomRequest):
        return run(request.sender, SendExcessFunds(denom=request.denom))

    @app.post("/api/admin/nft/transfer")
    async def transfer_misplaced_nft(request: TransferNftRequest):
        return run(request.sender, TransferMisplacedNft(contract=request.contract, token_id=request.token_id))

    # === QUERY ENDPOINTS ===

    @app.get("/api/config")
    async def get_config():
        cfg = query(engine.get_config)
        return {
            "admin": cfg.admin,
            "denoms": cfg.denoms,
            "denom_limits": {
                denom: {"min": str(lim.min), "max": str(lim.max), "bank_floor": str(lim.bank_floor)}
                for denom, lim in cfg.denom_limits.items()
            },
            "wallets": {"team": cfg.wallets.team, "reserve": cfg.wallets.reserve},
            "fees": {
                "team_bps": cfg.fees.team_bps,
                "holders_bps": cfg.fees.holders_bps,
                "reserve_bps": cfg.fees.reserve_bps,
                "flip_bps": cfg.fees.flip_bps,
                "flip_fee": format_bps(cfg.fees.flip_bps),
            },
            "flips_per_block_limit": cfg.flips_per_block_limit,
            "holder_registry": cfg.holder_registry,
            "is_paused": cfg.is_paused,
            "nft_pool_max": cfg.nft_pool_max,
            "streak_nft_winning_amount": cfg.streak_nft_winning_amount,
            "reward_denom": cfg.reward_denom,
        }

    @app.get("/api/fees")
    async def get_all_fees():
        return [_coin_dict(c) for c in query(engine.get_all_fees)]

    @app.get("/api/fees/{denom}")
    async def get_fees(denom: str):
        amount = query(engine.get_fees, denom)
        return {"denom": denom, "amount": str(amount), "display": format_units(amount, denom)}

    @app.get("/api/fees/{denom}/dry-distribution")
    async def dry_distribution(denom: str):
        dry = query(engine.dry_distribution, denom)
        return {
            "total_fees": str(dry.total_fees),
            "team_total_fee": str(dry.team_total_fee),
            "reserve_total_fee": str(dry.reserve_total_fee),
            "holders_total_fee": str(dry.holders_total_fee),
            "holders_total_shares": format_atomics(dry.holders_total_shares),
            "fees_per_token": format_atomics(dry.fees_per_token),
            "pay_to_holders": str(dry.pay_to_holders),
            "number_of_holders": dry.number_of_holders,
        }

    @app.get("/api/flips/recent")
    async def get_last_flips():
        flips = query(engine.get_last_flips)
        return {
            "flips": [
                {
                    "account": f.account,
                    "amount": _coin_dict(f.stake),
                    "result": f.outcome,
                    "streak": _streak_dict(f.streak_after),
                    "timestamp": str(f.settled_at_time),
                    "settled_at": format_timestamp(f.settled_at_time),
                }
                for f in flips
            ],
            "win_rate": format_win_rate(len(flips), sum(1 for f in flips if f.outcome)),
        }

    @app.get("/api/flips/should-settle")
    async def should_settle():
        return {"should_settle": query(engine.should_settle)}

    @app.get("/api/score/{address}")
    async def get_score(address: str):
        score = query(engine.get_score, address)
        if score is None:
            raise HTTPException(status_code=404, detail="No flips settled for this address")
        return {"streak": _streak_dict(score.streak), "last_flip": str(score.last_flip_time)}

    @app.get("/api/nft-pool")
    async def get_nft_pool():
        return [{"contract": n.contract, "token_id": n.token_id} for n in query(engine.get_nft_pool)]

    @app.get("/api/streak/rewards")
    async def get_streak_rewards():
        return [
            {"streak_length": r.streak_length, "cash_amount": str(r.cash_amount)}
            for r in query(engine.get_streak_rewards)
        ]

    return app


# ===== MAIN =====

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL)

    logger.info("="*50)
    logger.info("Coinflip Engine API Starting...")
    logger.info("="*50)

    uvicorn.run(create_app(build_engine()), host="0.0.0.0", port=8000)
