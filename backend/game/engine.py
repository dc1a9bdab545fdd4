"""
Flip engine: command dispatch, atomic commit and read-only queries.

Every command runs against a freshly loaded working copy of the state. The
copy is saved only if the handler returns, after the bank has accepted the
attached funds and the emitted payouts; a FlipError anywhere leaves the
stored state, the bank and the NFT registry untouched.
"""
import logging
from typing import List, Optional, Sequence

from database.models import Coin, Config, EngineState, FlipScore, NftReward, SettledFlip, StreakReward
from database.repo import StateStore
from security.audit import AuditEventType, AuditSeverity, NullAuditLogger
from . import admin, fees, queue, streaks
from .chain_ops import Bank, BlockClock, BlockInfo, NftRegistry, Response
from .commands import (
    ADMIN_COMMANDS,
    PAUSABLE_COMMANDS,
    AddDenom,
    ClaimStreak,
    Command,
    DepositNftToPool,
    Distribute,
    EnqueueWager,
    RemoveDenom,
    SendExcessFunds,
    SettleReady,
    TransferMisplacedNft,
    UpdateBankFloor,
    UpdateFees,
    UpdateHolderRegistry,
    UpdatePause,
    UpdateStakeLimits,
    UpdateStreakConfig,
    WithdrawNftFromPool,
)
from .errors import AlreadyInstantiated, NotInstantiated, Paused, Unauthorized, UnauthorizedToSendNft

logger = logging.getLogger(__name__)


class FundedBank:
    """Contract balances as seen while a command runs: attached funds included."""

    def __init__(self, bank: Bank, funds: Sequence[Coin]):
        self._bank = bank
        self._funds = funds

    def balance(self, denom: str) -> int:
        attached = sum(c.amount for c in self._funds if c.denom == denom)
        return self._bank.balance(denom) + attached


class FlipEngine:
    """Single entry point for commands and queries."""

    def __init__(
        self,
        store: StateStore,
        bank: Bank,
        nft_registry: NftRegistry,
        audit=None,
        clock: Optional[BlockClock] = None,
    ):
        self.store = store
        self.bank = bank
        self.nft_registry = nft_registry
        self.audit = audit or NullAuditLogger()
        self.clock = clock or BlockClock()

    # === Lifecycle ===

    def instantiate(
        self,
        config: Config,
        streak_rewards: Sequence[StreakReward],
        allowed_to_send_nft: Sequence[str],
    ) -> EngineState:
        """Validate and write the initial state.

        Args:
            config: Initial configuration; `config.admin` becomes the admin
            streak_rewards: Reward tiers, ascending by streak length
            allowed_to_send_nft: Addresses allowed to deposit pool NFTs

        Returns:
            The stored state
        """
        if self.store.load() is not None:
            raise AlreadyInstantiated()

        for denom, limits in config.denom_limits.items():
            admin.validate_stake_limits(denom, limits)
        admin.validate_fee_schedule(config.fees)
        streaks.validate_streak_config(list(streak_rewards), config.streak_nft_winning_amount)

        state = EngineState(
            config=config,
            fees={denom: 0 for denom in config.denoms},
            streak_rewards=list(streak_rewards),
            allowed_to_send_nft=list(allowed_to_send_nft),
        )
        self.store.save(state)

        logger.info(f"Engine instantiated by {config.admin} with denoms {', '.join(config.denoms)}")
        return state

    def _load(self) -> EngineState:
        state = self.store.load()
        if state is None:
            raise NotInstantiated()
        return state

    # === Commands ===

    def execute(
        self,
        sender: str,
        command: Command,
        funds: Sequence[Coin] = (),
        env: Optional[BlockInfo] = None,
    ) -> Response:
        """Run one command atomically.

        Args:
            sender: Address that sent the command
            command: Command to run
            funds: Coins attached by the sender
            env: Block to execute in (defaults to the engine clock)

        Returns:
            Response with the emitted events, payouts and attributes
        """
        env = env or self.clock.current()
        funds = list(funds)
        state = self._load()

        try:
            response = self._dispatch(state, sender, command, funds, env)
        except (Unauthorized, UnauthorizedToSendNft) as e:
            self.audit.log(AuditEventType.UNAUTHORIZED_ATTEMPT, AuditSeverity.WARNING, actor=sender,
                           block_height=env.height, details=f"{type(command).__name__}: {e}")
            raise

        self.bank.apply(sender, funds, response.bank_sends)
        self.store.save(state)
        for transfer in response.nft_transfers:
            self.nft_registry.transfer_ownership(transfer.nft, transfer.recipient)

        self._audit(sender, command, response, env)
        return response

    def _dispatch(
        self,
        state: EngineState,
        sender: str,
        command: Command,
        funds: List[Coin],
        env: BlockInfo,
    ) -> Response:
        config = state.config

        if isinstance(command, ADMIN_COMMANDS) and sender != config.admin:
            raise Unauthorized()
        if isinstance(command, PAUSABLE_COMMANDS) and config.is_paused:
            raise Paused()

        bank = FundedBank(self.bank, funds)

        if isinstance(command, EnqueueWager):
            return queue.enqueue(state, bank, env, sender, command.pick, command.amount, funds)
        if isinstance(command, SettleReady):
            return queue.settle_ready(state, bank, env)
        if isinstance(command, ClaimStreak):
            return streaks.claim_streak(state, sender)
        if isinstance(command, DepositNftToPool):
            return streaks.receive_nft(state, sender, command.sender, command.token_id)

        if isinstance(command, Distribute):
            return fees.distribute(state, bank, self.nft_registry, command.denom)
        if isinstance(command, AddDenom):
            return admin.add_denom(state, command.denom, command.limits)
        if isinstance(command, RemoveDenom):
            return admin.remove_denoms(state, command.denoms)
        if isinstance(command, UpdateFees):
            return admin.update_fees(state, command.fees)
        if isinstance(command, UpdateStakeLimits):
            return admin.update_stake_limits(state, command.denom, command.min_bet, command.max_bet)
        if isinstance(command, UpdateBankFloor):
            return admin.update_bank_floor(state, command.denom, command.bank_floor)
        if isinstance(command, UpdateHolderRegistry):
            return admin.update_holder_registry(state, command.address)
        if isinstance(command, UpdatePause):
            return admin.update_pause(state, command.is_paused)
        if isinstance(command, UpdateStreakConfig):
            return admin.update_streak_config(
                state,
                nft_pool_max=command.nft_pool_max,
                streak_nft_winning_amount=command.streak_nft_winning_amount,
                streak_rewards=command.streak_rewards,
                allowed_to_send_nft=command.allowed_to_send_nft,
            )
        if isinstance(command, WithdrawNftFromPool):
            return admin.withdraw_nft_from_pool(state, command.index, command.withdraw_all)
        if isinstance(command, SendExcessFunds):
            return admin.send_excess_funds(state, bank, command.denom)
        if isinstance(command, TransferMisplacedNft):
            return admin.transfer_misplaced_nft(state, command.contract, command.token_id)

        raise TypeError(f"Unknown command: {command!r}")

    def _audit(self, sender: str, command: Command, response: Response, env: BlockInfo):
        name = type(command).__name__

        for event in response.events_of("streak-claim"):
            self.audit.log(AuditEventType.STREAK_REWARD, actor=event.attributes["flipper"],
                           block_height=env.height, details=f"claim={event.attributes['claim']}")

        if isinstance(command, DepositNftToPool):
            self.audit.log(AuditEventType.NFT_DEPOSITED, actor=command.sender, block_height=env.height,
                           details=f"{sender}/{command.token_id}")
            return

        if not isinstance(command, ADMIN_COMMANDS):
            return

        details = f"{name}: " + ", ".join(f"{k}={v}" for k, v in response.attributes.items())
        if isinstance(command, Distribute):
            event_type, severity = AuditEventType.FEES_DISTRIBUTED, AuditSeverity.INFO
        elif isinstance(command, UpdatePause):
            event_type, severity = AuditEventType.ENGINE_PAUSED, AuditSeverity.WARNING
            details = f"{name}: is_paused={command.is_paused}"
        elif isinstance(command, SendExcessFunds):
            event_type, severity = AuditEventType.EXCESS_FUNDS_SENT, AuditSeverity.INFO
        elif isinstance(command, (WithdrawNftFromPool, TransferMisplacedNft)):
            event_type, severity = AuditEventType.NFT_WITHDRAWN, AuditSeverity.INFO
        else:
            event_type, severity = AuditEventType.ADMIN_ACTION, AuditSeverity.INFO

        self.audit.log(event_type, severity, actor=sender, block_height=env.height, details=details)

    # === Queries ===

    def get_config(self) -> Config:
        return self._load().config

    def get_fees(self, denom: str) -> int:
        return self._load().fees.get(denom, 0)

    def get_all_fees(self) -> List[Coin]:
        return [Coin(denom=denom, amount=amount) for denom, amount in self._load().fees.items()]

    def get_last_flips(self) -> List[SettledFlip]:
        """Up to five most recent settlements, oldest first."""
        return self._load().last_flips

    def get_score(self, address: str) -> Optional[FlipScore]:
        """Streak record of `address`, or None if it never settled a flip."""
        return self._load().scores.get(address)

    def should_settle(self, env: Optional[BlockInfo] = None) -> bool:
        return queue.should_settle(self._load(), env or self.clock.current())

    def dry_distribution(self, denom: str) -> fees.DryDistribution:
        return fees.dry_distribution(self._load(), self.bank, self.nft_registry, denom)

    def get_nft_pool(self) -> List[NftReward]:
        return self._load().nft_pool

    def get_streak_rewards(self) -> List[StreakReward]:
        return self._load().streak_rewards
